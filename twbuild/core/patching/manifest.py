from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Tuple

from ..errors import ErrorKind
from .anchors import InsertMode, PatchAnchor, SplitAmbiguous, SplitNotFound
from .models import PatchStatus, PluginSpec, TextPatch

_log = logging.getLogger("twbuild.patch")


class ManifestStructureError(ValueError):
    pass


def _reject_duplicates(pairs: List[Tuple[str, Any]]) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for k, v in pairs:
        if k in out:
            raise ManifestStructureError(f"duplicate key {k!r}")
        out[k] = v
    return out


def load_manifest(content: str) -> Dict[str, Any]:
    """Parse package.json keeping key order; duplicate keys are an error."""
    data = json.loads(content, object_pairs_hook=_reject_duplicates)
    if not isinstance(data, dict):
        raise ManifestStructureError("manifest root is not an object")
    return data


def section_anchor(section: str) -> PatchAnchor:
    return PatchAnchor(
        text=f'"{section}": {{\n',
        mode=InsertMode.AFTER,
        trailing_delimiter=True,
        spacer="    ",
    )


def manifest_has_plugin(content: str, plugin: PluginSpec, section: str) -> bool:
    if plugin.dependency_line in content:
        return True
    try:
        data = load_manifest(content)
    except ValueError:
        return False
    deps = data.get(section)
    return isinstance(deps, dict) and deps.get(plugin.name) == plugin.version_range


def patch_manifest(content: str, plugin: PluginSpec, section: str) -> TextPatch:
    if manifest_has_plugin(content, plugin, section):
        _log.info("package.json already declares %s, skipping", plugin.name)
        return TextPatch(status=PatchStatus.ALREADY_PATCHED)

    try:
        data = load_manifest(content)
        deps = data.setdefault(section, {})
        if not isinstance(deps, dict):
            raise ManifestStructureError(f"{section!r} is not an object")
        deps[plugin.name] = plugin.version_range
    except ValueError as e:
        return _patch_textually(content, plugin, section, reason=str(e))

    out = json.dumps(data, indent=2, ensure_ascii=False)
    if content.endswith("\n"):
        out += "\n"
    return TextPatch(status=PatchStatus.PATCHED, content=out)


def _patch_textually(content: str, plugin: PluginSpec, section: str, *, reason: str) -> TextPatch:
    warning = f"package.json could not be parsed ({reason}); falling back to textual patch"
    _log.warning("%s for plugin %s", warning, plugin.name)

    result = section_anchor(section).apply(content, plugin.dependency_line)
    if isinstance(result, SplitNotFound):
        return TextPatch(
            status=PatchStatus.FAILED,
            error_kind=ErrorKind.ANCHOR_NOT_FOUND,
            detail=f'no "{section}" section found',
            warnings=[warning],
        )
    if isinstance(result, SplitAmbiguous):
        return TextPatch(
            status=PatchStatus.FAILED,
            error_kind=ErrorKind.ANCHOR_AMBIGUOUS,
            detail=f'"{section}" section appears {result.occurrences} times',
            warnings=[warning],
        )
    return TextPatch(status=PatchStatus.DEGRADED, content=result, warnings=[warning])
