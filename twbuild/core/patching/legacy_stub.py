from __future__ import annotations

import logging

from ..errors import ErrorKind
from .anchors import InsertMode, PatchAnchor, SplitAmbiguous, SplitNotFound
from .models import PatchStatus, PluginSpec, TextPatch

_log = logging.getLogger("twbuild.patch")

LOCAL_MODULES_ANCHOR = PatchAnchor(
    text="let localModules = {\n",
    mode=InsertMode.AFTER,
    trailing_delimiter=True,
    spacer="  ",
)


def patch_legacy_stub(content: str, plugin: PluginSpec) -> TextPatch:
    """Register the plugin's require statement in standalone.js."""
    statement = plugin.require_statement
    if statement is None:
        return TextPatch(
            status=PatchStatus.FAILED,
            error_kind=ErrorKind.INVALID_PLUGIN_SPEC,
            detail=f"standalone.js needs a require statement for {plugin.name}",
        )

    if statement in content:
        _log.info("standalone.js already registers %s, skipping", plugin.name)
        return TextPatch(status=PatchStatus.ALREADY_PATCHED)

    result = LOCAL_MODULES_ANCHOR.apply(content, statement)
    if isinstance(result, SplitNotFound):
        return TextPatch(
            status=PatchStatus.FAILED,
            error_kind=ErrorKind.ANCHOR_NOT_FOUND,
            detail="localModules table not found",
        )
    if isinstance(result, SplitAmbiguous):
        return TextPatch(
            status=PatchStatus.FAILED,
            error_kind=ErrorKind.ANCHOR_AMBIGUOUS,
            detail=f"localModules table appears {result.occurrences} times",
        )
    return TextPatch(status=PatchStatus.PATCHED, content=result)
