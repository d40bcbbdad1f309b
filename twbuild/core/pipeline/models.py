from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from ..errors import ErrorKind
from ..patching.models import PatchReport, PluginSpec


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class PipelineState(str, Enum):
    IDLE = "IDLE"
    FETCHED = "FETCHED"
    PATCHED = "PATCHED"
    BUILT = "BUILT"
    DEPLOYED = "DEPLOYED"
    FAILED = "FAILED"


class Stage(str, Enum):
    RESOLVE = "resolve"
    FETCH = "fetch"
    PATCH = "patch"
    BUILD = "build"
    DEPLOY = "deploy"


class StageStatus(str, Enum):
    OK = "ok"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class StageOutcome:
    stage: Stage
    status: StageStatus
    error_kind: Optional[ErrorKind] = None
    detail: str = ""
    duration_seconds: float = 0.0
    warnings: List[str] = field(default_factory=list)
    data: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stage": self.stage.value,
            "status": self.status.value,
            "error_kind": self.error_kind.value if self.error_kind else None,
            "detail": self.detail,
            "duration_seconds": self.duration_seconds,
            "warnings": list(self.warnings),
            "data": self.data,
        }


@dataclass
class PipelineRequest:
    version: str
    work_dir: Path
    # catalog names or ready-made specs
    plugins: List[Union[str, PluginSpec]] = field(default_factory=list)
    deploy_target: Optional[str] = None
    target_arch: Optional[str] = None
    run_id: Optional[str] = None


@dataclass
class PipelineResult:
    version: str
    lineage: str
    state: PipelineState = PipelineState.IDLE
    stages: List[StageOutcome] = field(default_factory=list)
    patch_reports: List[PatchReport] = field(default_factory=list)
    deploy: Optional[Dict[str, Any]] = None
    run_id: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.state != PipelineState.FAILED

    @property
    def failed_stage(self) -> Optional[Stage]:
        for s in self.stages:
            if s.status == StageStatus.FAILED:
                return s.stage
        return None

    @property
    def error_kind(self) -> Optional[ErrorKind]:
        for s in self.stages:
            if s.status == StageStatus.FAILED:
                return s.error_kind
        return None

    @property
    def already_patched(self) -> bool:
        return bool(self.patch_reports) and all(r.already_patched for r in self.patch_reports)

    def outcome(self, stage: Stage) -> Optional[StageOutcome]:
        for s in self.stages:
            if s.stage == stage:
                return s
        return None

    def summary(self) -> str:
        if self.ok:
            return f"{self.version}: {self.state.value}"
        failed = self.outcome(self.failed_stage) if self.failed_stage else None
        kind = failed.error_kind.value if failed and failed.error_kind else "unknown"
        detail = failed.detail if failed else ""
        return f"{self.version}: failed at {self.failed_stage.value if self.failed_stage else '?'} ({kind}) {detail}".rstrip()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "lineage": self.lineage,
            "state": self.state.value,
            "ok": self.ok,
            "run_id": self.run_id,
            "failed_stage": self.failed_stage.value if self.failed_stage else None,
            "error_kind": self.error_kind.value if self.error_kind else None,
            "stages": [s.to_dict() for s in self.stages],
            "patch_reports": [r.to_dict() for r in self.patch_reports],
            "deploy": self.deploy,
        }


@dataclass
class PipelineEvent:
    ts: str
    state: PipelineState
    stage: Optional[str] = None
    message: str = ""
    data: Dict[str, Any] = field(default_factory=dict)


@dataclass
class PipelineRecord:
    run_id: str
    version: str
    state: PipelineState
    created_ts: str
    updated_ts: str
    work_dir: Optional[str] = None
    plugins: List[str] = field(default_factory=list)
    failed_stage: Optional[str] = None
    last_error: Optional[Dict[str, Any]] = None
    events: List[PipelineEvent] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "version": self.version,
            "state": self.state.value,
            "created_ts": self.created_ts,
            "updated_ts": self.updated_ts,
            "work_dir": self.work_dir,
            "plugins": list(self.plugins),
            "failed_stage": self.failed_stage,
            "last_error": self.last_error,
            "events": [
                {
                    "ts": e.ts,
                    "state": e.state.value,
                    "stage": e.stage,
                    "message": e.message,
                    "data": e.data,
                }
                for e in self.events
            ],
        }

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "PipelineRecord":
        evs: List[PipelineEvent] = []
        for e in d.get("events", []) or []:
            evs.append(
                PipelineEvent(
                    ts=e["ts"],
                    state=PipelineState(e["state"]),
                    stage=e.get("stage"),
                    message=e.get("message", ""),
                    data=e.get("data", {}) or {},
                )
            )
        return PipelineRecord(
            run_id=d["run_id"],
            version=d["version"],
            state=PipelineState(d["state"]),
            created_ts=d.get("created_ts") or _utc_now_iso(),
            updated_ts=d.get("updated_ts") or _utc_now_iso(),
            work_dir=d.get("work_dir"),
            plugins=list(d.get("plugins") or []),
            failed_stage=d.get("failed_stage"),
            last_error=d.get("last_error"),
            events=evs,
        )
