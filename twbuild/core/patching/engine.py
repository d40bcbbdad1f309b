from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from ..capabilities.models import CapabilityProfile
from ..capabilities.registry import classify, resolve
from ..errors import ErrorKind
from .atomic import atomic_write_text
from .legacy_stub import patch_legacy_stub
from .loader import loader_has_plugin, patch_loader
from .manifest import manifest_has_plugin, patch_manifest
from .models import FileOutcome, PatchReport, PatchStatus, PluginSpec, SourceFile, TextPatch

_log = logging.getLogger("twbuild.patch")


def source_dir(root_path: Path, version: str) -> Path:
    """``<root>/tailwindcss-<version>``; the directory an archive extracts to."""
    return Path(root_path) / f"tailwindcss-{classify(version).normalized}"


def standalone_root(root_path: Path, version: str) -> Optional[Path]:
    profile = resolve(version)
    if profile.file_layout is None:
        return None
    return source_dir(root_path, version) / profile.file_layout.standalone_dir


def _strategy_for(filename: str, profile: CapabilityProfile) -> Callable[[str, PluginSpec], TextPatch]:
    if filename == "package.json":
        section = profile.dependency_section or "dependencies"
        return lambda content, plugin: patch_manifest(content, plugin, section)
    if filename == "standalone.js":
        return patch_legacy_stub
    if filename == "index.ts":
        return patch_loader
    raise ValueError(f"no patch strategy for {filename!r}")


def _failed(path: Path, target: str, kind: ErrorKind, detail: str) -> FileOutcome:
    return FileOutcome(target=target, path=path, status=PatchStatus.FAILED, error_kind=kind, detail=detail)


def _patch_target(path: Path, target: str, plugin: PluginSpec, profile: CapabilityProfile) -> FileOutcome:
    try:
        src = SourceFile.read(path)
    except FileNotFoundError:
        _log.error("patch target missing: %s", path)
        return _failed(path, target, ErrorKind.FILE_NOT_FOUND, f"{path} does not exist")
    except (UnicodeDecodeError, OSError) as e:
        _log.error("cannot read patch target %s: %s", path, e)
        return _failed(path, target, ErrorKind.FILE_UNREADABLE, f"{path} could not be read: {e}")

    strategy = _strategy_for(path.name, profile)
    res = strategy(src.content, plugin)

    if res.content is not None and res.content != src.content:
        try:
            atomic_write_text(path, res.content)
        except OSError as e:
            _log.error("cannot write patch target %s: %s", path, e)
            return _failed(path, target, ErrorKind.PATCH_FAILED, f"{path} could not be written: {e}")
        _log.info("patched %s for plugin %s (%s)", target, plugin.name, res.status.value)
    elif res.status == PatchStatus.FAILED:
        _log.error("could not patch %s for plugin %s: %s", target, plugin.name, res.detail)

    return FileOutcome(
        target=target,
        path=path,
        status=res.status,
        error_kind=res.error_kind,
        detail=res.detail,
        warnings=list(res.warnings),
        insertions=list(res.insertions),
    )


def apply_plugin(plugin: PluginSpec, version: str, root_path: Path) -> PatchReport:
    """Inject ``plugin`` into the extracted sources for ``version`` under ``root_path``.

    Every patch target is attempted even if an earlier one failed; a failed
    target is never written. Re-applying the same plugin is a no-op that
    reports ALREADY_PATCHED per file.
    """
    spec = classify(version)
    report = PatchReport(plugin=plugin.name, version=version, lineage=spec.lineage.value)

    profile = resolve(version)
    base = standalone_root(root_path, version)
    if profile.file_layout is None or base is None:
        report.error_kind = ErrorKind.VERSION_UNSUPPORTED
        report.detail = f"no patch layout for version {version!r}"
        return report

    for t in profile.file_layout.patch_targets:
        path = base / t.relative_path
        report.files.append(_patch_target(path, t.relative_path, plugin, profile))

    return report


def plugin_already_applied(plugin: PluginSpec, version: str, root_path: Path) -> bool:
    profile = resolve(version)
    base = standalone_root(root_path, version)
    if profile.file_layout is None or base is None:
        return False

    for t in profile.file_layout.patch_targets:
        path = base / t.relative_path
        if not path.is_file():
            return False
        try:
            content = SourceFile.read(path).content
        except (UnicodeDecodeError, OSError):
            return False
        if t.filename == "package.json":
            if not manifest_has_plugin(content, plugin, profile.dependency_section or "dependencies"):
                return False
        elif t.filename == "standalone.js":
            if plugin.require_statement is None or plugin.require_statement not in content:
                return False
        elif t.filename == "index.ts":
            if not loader_has_plugin(content, plugin):
                return False
    return True


def plugin_compatibility(plugin: PluginSpec, version: str) -> Dict[str, Any]:
    """Whether ``plugin`` can be injected into ``version``, and which files it touches."""
    profile = resolve(version)
    if profile.file_layout is None or profile.plugin_system is None:
        return {"compatible": False, "reason": "plugin_system_not_available", "files": []}

    files = [t.relative_path for t in profile.file_layout.patch_targets]
    needs_statement = any(t.filename == "standalone.js" for t in profile.file_layout.patch_targets)
    if needs_statement and plugin.require_statement is None:
        return {"compatible": False, "reason": "require_statement_missing", "files": files}

    return {
        "compatible": True,
        "reason": None,
        "files": files,
        "dependency_section": profile.plugin_system.dependency_section,
        "requires_bundling": profile.plugin_system.requires_bundling,
        "supports_dynamic_import": profile.plugin_system.supports_dynamic_import,
    }
