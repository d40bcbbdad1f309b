from __future__ import annotations

from collections import Counter
from typing import Dict, Optional

from prometheus_client import Counter as PromCounter
from prometheus_client import Histogram

# Named counters (in-process)
_NAMED = Counter()

_PROM_STAGES = PromCounter(
    "twbuild_pipeline_stages_total",
    "Pipeline stage completions",
    ["stage", "status"],
)

_PROM_STAGE_SECONDS = Histogram(
    "twbuild_pipeline_stage_duration_seconds",
    "Pipeline stage wall time",
    ["stage"],
    buckets=(0.1, 1.0, 5.0, 30.0, 60.0, 300.0, 900.0, 1800.0),
)

_PROM_PATCHES = PromCounter(
    "twbuild_patch_outcomes_total",
    "Per-file patch outcomes",
    ["target", "status"],
)


def reset_metrics() -> None:
    """
    Test helper: clears in-process counters to avoid cross-test leakage.
    Prometheus collectors are process-global and are not reset.
    """
    _NAMED.clear()


def inc_named(name: str, value: int = 1) -> None:
    if not name:
        return
    _NAMED[name] += int(value)


def snapshot_named() -> Dict[str, int]:
    return dict(_NAMED)


def observe_stage(stage: str, status: str, duration_seconds: Optional[float] = None) -> None:
    inc_named(f"stage_{stage}|{status}")
    _PROM_STAGES.labels(stage=stage, status=status).inc()
    if duration_seconds is not None:
        _PROM_STAGE_SECONDS.labels(stage=stage).observe(max(0.0, float(duration_seconds)))


def observe_patch(target: str, status: str) -> None:
    inc_named(f"patch_{target}|{status}")
    _PROM_PATCHES.labels(target=target, status=status).inc()
