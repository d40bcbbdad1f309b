from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Sequence

_DARWIN = ("darwin", "macos", "apple")
_WINDOWS = ("win32", "windows")
_ARM64 = ("arm64", "aarch64")
_X64 = ("x86_64", "x64")

_ABI_SUFFIX = re.compile(r"-(gnu|musl|msvc)$")


def sha256_file(path: Path) -> str:
    h = hashlib.sha256()
    with path.open("rb") as fp:
        for chunk in iter(lambda: fp.read(1024 * 1024), b""):
            h.update(chunk)
    return h.hexdigest()


def _any(s: str, needles: Sequence[str]) -> bool:
    return any(n in s for n in needles)


def architecture_from_filename(filename: str) -> str:
    n = filename.lower()
    if _any(n, _DARWIN) and _any(n, _ARM64):
        return "darwin-arm64"
    if _any(n, _DARWIN) and _any(n, _X64):
        return "darwin-x64"
    if "linux" in n and _any(n, _ARM64):
        return "linux-arm64"
    if "linux" in n and _any(n, ("armv7", "arm")):
        return "linux-arm"
    if "linux" in n and _any(n, _X64):
        return "linux-x64"
    if _any(n, _WINDOWS) and _any(n, _ARM64):
        return "win32-arm64"
    if _any(n, _WINDOWS) and _any(n, _X64):
        return "win32-x64"
    if "freebsd" in n:
        return "freebsd-x64"
    return "unknown"


def normalize_arch(arch: str) -> str:
    return _ABI_SUFFIX.sub("", arch)


def arch_matches(binary_arch: str, host_arch: str) -> bool:
    if binary_arch == "unknown":
        return False
    return normalize_arch(binary_arch) == normalize_arch(host_arch)


@dataclass(frozen=True)
class BinaryInfo:
    path: Path
    size: int
    sha256: str
    architecture: str
    executable: bool

    @property
    def filename(self) -> str:
        return self.path.name

    @classmethod
    def from_path(cls, path: Path) -> "BinaryInfo":
        st = path.stat()
        return cls(
            path=path,
            size=st.st_size,
            sha256=sha256_file(path),
            architecture=architecture_from_filename(path.name),
            executable=bool(st.st_mode & 0o111),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "filename": self.filename,
            "size": self.size,
            "sha256": self.sha256,
            "architecture": self.architecture,
            "executable": self.executable,
        }


def find_binaries(dist_dir: Path) -> List[BinaryInfo]:
    """Distributable binaries in ``dist_dir`` (``tailwindcss*``), sorted by name."""
    d = Path(dist_dir)
    if not d.is_dir():
        return []
    return [BinaryInfo.from_path(p) for p in sorted(d.glob("tailwindcss*")) if p.is_file()]


def validate_binaries(binaries: Iterable[BinaryInfo]) -> List[str]:
    """Returns a problem description per unusable binary; empty when all are fine."""
    problems: List[str] = []
    for b in binaries:
        if b.size == 0:
            problems.append(f"{b.filename}: empty file")
    return problems


def filter_for_host(binaries: Iterable[BinaryInfo], host_arch: str) -> List[BinaryInfo]:
    return [b for b in binaries if arch_matches(b.architecture, host_arch)]
