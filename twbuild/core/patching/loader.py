from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List

from ..errors import ErrorKind
from .anchors import InsertMode, PatchAnchor, SplitAmbiguous, SplitNotFound
from .models import InsertionOutcome, PatchStatus, PluginSpec, TextPatch

_log = logging.getLogger("twbuild.patch")

_JS_REGEX_SPECIALS = set("\\^$.|?*+()[]{}/")


def js_regex_escape(text: str) -> str:
    return "".join("\\" + ch if ch in _JS_REGEX_SPECIALS else ch for ch in text)


def _bundled_import_line(module: str) -> str:
    return f"  '{module}': await import('{module}'),"


@dataclass(frozen=True)
class LoaderInsertion:
    key: str
    anchor: PatchAnchor
    fragment: str


def loader_insertions(plugin: PluginSpec) -> List[LoaderInsertion]:
    """The registration points index.ts needs for ``plugin``, in application order."""
    name = plugin.name
    pattern = f"/(\\/)?{js_regex_escape(name)}(\\/.+)?$/"

    out = [
        LoaderInsertion(
            key="id_prefix",
            anchor=PatchAnchor(
                text="id.startsWith('@tailwindcss/') ||\n",
                mode=InsertMode.AFTER,
                spacer="    ",
            ),
            fragment=f"id.startsWith('{name}') ||",
        ),
        LoaderInsertion(
            key="special_path",
            anchor=PatchAnchor(text="  switch (id) {", mode=InsertMode.BEFORE),
            fragment=f"  if ({pattern}.test(id)) {{ return id }}",
        ),
        LoaderInsertion(
            key="require_dispatch",
            anchor=PatchAnchor(
                text="    return require('@tailwindcss/aspect-ratio')",
                mode=InsertMode.AFTER,
                line_break=False,
            ),
            fragment=f"\n  }} else if ({pattern}.test(id)) {{\n    return require('{name}')",
        ),
        LoaderInsertion(
            key="bundled_import",
            anchor=PatchAnchor(
                text="  'tailwindcss/defaultTheme.js': await import('tailwindcss/defaultTheme'),\n",
                mode=InsertMode.AFTER,
            ),
            fragment=_bundled_import_line(name),
        ),
    ]

    # each subpath chains after the previous entry so declared order is kept
    previous = _bundled_import_line(name)
    for sp in plugin.subpaths:
        module = f"{name}/{sp}"
        out.append(
            LoaderInsertion(
                key=f"subpath:{sp}",
                anchor=PatchAnchor(text=previous + "\n", mode=InsertMode.AFTER),
                fragment=_bundled_import_line(module),
            )
        )
        previous = _bundled_import_line(module)
    return out


def loader_has_plugin(content: str, plugin: PluginSpec) -> bool:
    return all(i.anchor.is_applied(content, i.fragment) for i in loader_insertions(plugin))


def patch_loader(content: str, plugin: PluginSpec) -> TextPatch:
    """Apply every loader insertion independently.

    A missing or ambiguous anchor is recorded on that insertion only; the
    others still apply. The file is PARTIAL when some insertion failed and
    FAILED only when none of them took effect.
    """
    outcomes: List[InsertionOutcome] = []
    current = content

    for ins in loader_insertions(plugin):
        if ins.anchor.is_applied(current, ins.fragment):
            outcomes.append(InsertionOutcome(key=ins.key, status=PatchStatus.ALREADY_PATCHED))
            continue

        result = ins.anchor.apply(current, ins.fragment)
        if isinstance(result, SplitNotFound):
            outcomes.append(
                InsertionOutcome(
                    key=ins.key,
                    status=PatchStatus.FAILED,
                    error_kind=ErrorKind.ANCHOR_NOT_FOUND,
                    detail=f"anchor not found: {ins.anchor.text.strip()!r}",
                )
            )
            continue
        if isinstance(result, SplitAmbiguous):
            outcomes.append(
                InsertionOutcome(
                    key=ins.key,
                    status=PatchStatus.FAILED,
                    error_kind=ErrorKind.ANCHOR_AMBIGUOUS,
                    detail=f"anchor occurs {result.occurrences} times: {ins.anchor.text.strip()!r}",
                )
            )
            continue

        current = result
        outcomes.append(InsertionOutcome(key=ins.key, status=PatchStatus.PATCHED))

    failed = [o for o in outcomes if o.status == PatchStatus.FAILED]
    applied = [o for o in outcomes if o.status == PatchStatus.PATCHED]

    if not failed and not applied:
        _log.info("index.ts already wired for %s, skipping", plugin.name)
        return TextPatch(status=PatchStatus.ALREADY_PATCHED, insertions=outcomes)

    if failed and len(failed) == len(outcomes):
        return TextPatch(
            status=PatchStatus.FAILED,
            error_kind=failed[0].error_kind,
            detail="no loader insertion could be applied",
            insertions=outcomes,
        )

    if failed:
        warnings = [f"index.ts insertion {o.key} skipped: {o.detail}" for o in failed]
        for w in warnings:
            _log.warning("%s (plugin %s)", w, plugin.name)
        return TextPatch(
            status=PatchStatus.PARTIAL,
            content=current if applied else None,
            error_kind=failed[0].error_kind,
            detail=f"{len(failed)} of {len(outcomes)} insertions skipped",
            warnings=warnings,
            insertions=outcomes,
        )

    return TextPatch(status=PatchStatus.PATCHED, content=current, insertions=outcomes)
