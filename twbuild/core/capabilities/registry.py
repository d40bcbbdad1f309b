from __future__ import annotations

import logging
import platform
import re
from typing import FrozenSet, Optional, Tuple

from packaging.version import InvalidVersion, Version

from .builtins import BUILTIN_PROFILES
from .models import CapabilityProfile, Lineage, VersionSpec

_log = logging.getLogger("twbuild.capabilities")

_MAJOR_RE = re.compile(r"^v?(\d+)(?:\.|$)")

# Majors that are never real releases; used by tooling as "obviously wrong" placeholders.
_RESERVED_MAJORS = frozenset({999})

_MAJOR_LINEAGE = {
    3: Lineage.LEGACY,
    4: Lineage.MODERN,
    5: Lineage.FUTURE_A,
    6: Lineage.FUTURE_B,
}

_BOUNDARIES: Tuple[Tuple[Version, Lineage], ...] = (
    (Version("4.0.0"), Lineage.LEGACY),
    (Version("5.0.0"), Lineage.MODERN),
    (Version("6.0.0"), Lineage.FUTURE_A),
)

_OS_NAMES = {
    "darwin": "darwin",
    "linux": "linux",
    "freebsd": "freebsd",
    "windows": "win32",
    "win32": "win32",
}


def _unsupported(raw: str) -> VersionSpec:
    return VersionSpec(raw=raw, lineage=Lineage.UNSUPPORTED, major=None)


def classify(version: str) -> VersionSpec:
    """Classify a version string into a lineage.

    Never raises: anything unparseable (or a reserved sentinel major) is
    ``Lineage.UNSUPPORTED``. Lineage is recomputed on every call.
    """
    if not isinstance(version, str):
        return _unsupported(str(version))

    raw = version.strip()
    m = _MAJOR_RE.match(raw)
    if m and int(m.group(1)) in _RESERVED_MAJORS:
        _log.debug("version %r matches a reserved sentinel major", raw)
        return _unsupported(raw)

    try:
        parsed = Version(raw)
    except InvalidVersion:
        _log.debug("version %r is not parseable", raw)
        return _unsupported(raw)

    major = parsed.release[0] if parsed.release else None

    # numeric major prefix wins; pre-releases like 4.0.0-beta.1 stay in their family
    if m:
        lineage = _MAJOR_LINEAGE.get(int(m.group(1)))
        if lineage is not None:
            return VersionSpec(raw=raw, lineage=lineage, major=major)

    for boundary, lineage in _BOUNDARIES:
        if parsed < boundary:
            return VersionSpec(raw=raw, lineage=lineage, major=major)
    return VersionSpec(raw=raw, lineage=Lineage.FUTURE_B, major=major)


def profile_for(lineage: Lineage) -> CapabilityProfile:
    return BUILTIN_PROFILES[lineage]


def resolve(version: str) -> CapabilityProfile:
    return profile_for(classify(version).lineage)


def supports_cross_compile(version: str) -> bool:
    return resolve(version).cross_compilation


def in_production_support(version: str) -> bool:
    profile = resolve(version)
    return not profile.is_empty and not profile.experimental


def host_architecture(system: Optional[str] = None, machine: Optional[str] = None) -> str:
    """Return ``{os}-{cpu}`` for the host (or for the given uname values)."""
    sys_name = (system if system is not None else platform.system()).strip().lower()
    arch = (machine if machine is not None else platform.machine()).strip().lower()

    os_name = _OS_NAMES.get(sys_name)
    if os_name is None:
        if sys_name.startswith(("cygwin", "msys", "mingw")):
            os_name = "win32"
        else:
            os_name = "unknown"

    if "x86_64" in arch or "amd64" in arch or arch == "x64":
        cpu = "x64"
    elif "aarch64" in arch or "arm64" in arch:
        cpu = "arm64"
    elif "arm" in arch:
        cpu = "arm"
    else:
        cpu = "unknown"

    return f"{os_name}-{cpu}"


def compilable_targets(version: str, host_arch: Optional[str] = None) -> FrozenSet[str]:
    profile = resolve(version)
    if profile.is_empty:
        return frozenset()
    if profile.cross_compilation:
        return frozenset(profile.supported_targets)
    return frozenset({host_arch or host_architecture()})


def can_compile_for_target(version: str, target_arch: str, host_arch: Optional[str] = None) -> bool:
    return target_arch in compilable_targets(version, host_arch)
