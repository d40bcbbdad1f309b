from __future__ import annotations

from typing import Dict, Set, Tuple

from .models import PipelineState


_ALLOWED: Set[Tuple[PipelineState, PipelineState]] = {
    (PipelineState.IDLE, PipelineState.FETCHED),
    (PipelineState.FETCHED, PipelineState.PATCHED),
    (PipelineState.PATCHED, PipelineState.BUILT),
    (PipelineState.BUILT, PipelineState.DEPLOYED),

    # any stage may fail
    (PipelineState.IDLE, PipelineState.FAILED),
    (PipelineState.FETCHED, PipelineState.FAILED),
    (PipelineState.PATCHED, PipelineState.FAILED),
    (PipelineState.BUILT, PipelineState.FAILED),
}

_TERMINAL: Set[PipelineState] = {
    PipelineState.DEPLOYED,
    PipelineState.FAILED,
}


def is_terminal(state: PipelineState) -> bool:
    return state in _TERMINAL


def can_transition(src: PipelineState, dst: PipelineState) -> bool:
    if src == dst:
        return True
    if src in _TERMINAL:
        return False
    return (src, dst) in _ALLOWED


def ensure_transition(src: PipelineState, dst: PipelineState) -> None:
    if not can_transition(src, dst):
        raise ValueError(f"Illegal transition: {src.value} -> {dst.value}")


def allowed_next(src: PipelineState) -> Dict[str, bool]:
    out: Dict[str, bool] = {}
    for a, b in _ALLOWED:
        if a == src:
            out[b.value] = True
    return out
