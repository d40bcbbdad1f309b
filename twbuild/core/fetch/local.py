from __future__ import annotations

import logging
import tarfile
from pathlib import Path, PurePosixPath
from typing import Dict, Optional

from ..capabilities.matrix import analyze_extracted_structure
from ..capabilities.registry import classify
from ..errors import FetchFailed, SourceLayoutInvalid
from .base import Downloader, ExtractionResult

_log = logging.getLogger("twbuild.fetch")


def validate_layout(root_path: Path, version: str) -> ExtractionResult:
    result = ExtractionResult(root_path=Path(root_path), version=version)
    info = analyze_extracted_structure(result.source_dir, version)
    if not info["valid_structure"]:
        raise SourceLayoutInvalid(
            f"{result.source_dir} does not look like tailwindcss {version}",
            details=info,
        )
    return result


class ExtractedTreeSource(Downloader):
    """Sources that are already on disk, e.g. a CI checkout or a previous run."""

    name = "extracted"

    def __init__(self, tree_root: Path):
        self.tree_root = Path(tree_root)

    def fetch(self, version: str, dest_root: Optional[Path] = None) -> ExtractionResult:
        # dest_root is ignored: the tree is used in place
        return validate_layout(self.tree_root, version)


def _safe_members(tf: tarfile.TarFile, dest: Path):
    dest_resolved = dest.resolve()
    for m in tf.getmembers():
        name = PurePosixPath(m.name)
        if name.is_absolute() or ".." in name.parts:
            raise FetchFailed(f"archive member escapes destination: {m.name}", details={"member": m.name})
        if m.issym() or m.islnk():
            link = PurePosixPath(m.linkname)
            target = (dest_resolved / name.parent / link) if m.issym() else (dest_resolved / link)
            if link.is_absolute() or not target.resolve().is_relative_to(dest_resolved):
                raise FetchFailed(f"archive link escapes destination: {m.name}", details={"member": m.name})
        if m.isdev():
            raise FetchFailed(f"archive contains a device file: {m.name}", details={"member": m.name})
        yield m


class LocalArchiveDownloader(Downloader):
    """Extracts a local ``.tar.gz`` of the upstream sources.

    Looks for ``tailwindcss-<version>.tar.gz`` then ``v<version>.tar.gz`` in
    ``archive_dir`` unless an explicit path is registered for the version.
    """

    name = "local_archive"

    def __init__(self, archive_dir: Path, *, archives: Optional[Dict[str, Path]] = None):
        self.archive_dir = Path(archive_dir)
        self.archives = {k: Path(v) for k, v in (archives or {}).items()}

    def archive_for(self, version: str) -> Path:
        if version in self.archives:
            return self.archives[version]
        for name in (f"tailwindcss-{version}.tar.gz", f"v{version}.tar.gz"):
            p = self.archive_dir / name
            if p.is_file():
                return p
        raise FetchFailed(f"no archive for version {version}", details={"archive_dir": str(self.archive_dir)})

    def fetch(self, version: str, dest_root: Path) -> ExtractionResult:
        version = classify(version).normalized
        dest = Path(dest_root)
        if (dest / f"tailwindcss-{version}").exists():
            _log.info("sources for %s already extracted in %s", version, dest)
            return validate_layout(dest, version)

        archive = self.archive_for(version)
        dest.mkdir(parents=True, exist_ok=True)

        _log.info("extracting %s into %s", archive, dest)
        try:
            with tarfile.open(archive, mode="r:gz") as tf:
                tf.extractall(dest, members=_safe_members(tf, dest), filter="data")
        except (tarfile.TarError, OSError) as e:
            raise FetchFailed(f"cannot extract {archive}: {e}", details={"archive": str(archive)}) from e

        return validate_layout(dest, version)
