from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..patching.atomic import atomic_write_text
from .models import PipelineEvent, PipelineRecord, PipelineState, _utc_now_iso
from .state_machine import ensure_transition


def _runs_dir(state_dir: Path) -> Path:
    d = state_dir / "runs"
    d.mkdir(parents=True, exist_ok=True)
    return d


def _run_path(state_dir: Path, run_id: str) -> Path:
    return _runs_dir(state_dir) / f"{run_id}.json"


def append_events(state_dir: Path, events: List[Dict[str, Any]]) -> None:
    """
    Append JSONL events to <state_dir>/events.log
    If the existing file doesn't end with a newline, add one first.
    """
    if not events:
        return

    log = state_dir / "events.log"
    log.parent.mkdir(parents=True, exist_ok=True)

    with log.open("ab+") as f:
        f.seek(0, 2)
        if f.tell() > 0:
            f.seek(-1, 2)
            if f.read(1) != b"\n":
                f.write(b"\n")
        for e in events:
            f.write((json.dumps(e, sort_keys=True) + "\n").encode("utf-8"))


def read_events(state_dir: Path) -> List[Dict[str, Any]]:
    log = state_dir / "events.log"
    if not log.exists():
        return []
    out: List[Dict[str, Any]] = []
    for line in log.read_text(encoding="utf-8").splitlines():
        if line.strip():
            out.append(json.loads(line))
    return out


class PipelineRegistry:
    """File-backed pipeline run records.

    Path: <state_dir>/runs/{run_id}.json, events in <state_dir>/events.log
    """

    def __init__(self, *, state_dir: Path):
        self.state_dir = Path(state_dir)

    def get(self, run_id: str) -> Optional[PipelineRecord]:
        p = _run_path(self.state_dir, run_id)
        if not p.exists():
            return None
        return PipelineRecord.from_dict(json.loads(p.read_text(encoding="utf-8")))

    def upsert(self, rec: PipelineRecord) -> None:
        p = _run_path(self.state_dir, rec.run_id)
        atomic_write_text(p, json.dumps(rec.to_dict(), indent=2, sort_keys=True))

    def init(self, *, run_id: str, version: str, work_dir: Optional[str], plugins: List[str]) -> PipelineRecord:
        now = _utc_now_iso()
        rec = PipelineRecord(
            run_id=run_id,
            version=version,
            state=PipelineState.IDLE,
            created_ts=now,
            updated_ts=now,
            work_dir=work_dir,
            plugins=list(plugins),
            events=[PipelineEvent(ts=now, state=PipelineState.IDLE, message="initialized")],
        )
        self.upsert(rec)
        self._log_event(rec, rec.events[-1])
        return rec

    def transition(
        self,
        *,
        run_id: str,
        dst: PipelineState,
        stage: Optional[str] = None,
        message: str = "",
        data: Optional[Dict[str, Any]] = None,
    ) -> PipelineRecord:
        rec = self.get(run_id)
        if rec is None:
            raise FileNotFoundError(f"pipeline run not found for run_id={run_id}")

        ensure_transition(rec.state, dst)

        now = _utc_now_iso()
        rec.state = dst
        rec.updated_ts = now
        if dst == PipelineState.FAILED:
            rec.failed_stage = stage
            rec.last_error = dict(data or {})
        ev = PipelineEvent(ts=now, state=dst, stage=stage, message=message, data=data or {})
        rec.events.append(ev)
        self.upsert(rec)
        self._log_event(rec, ev)
        return rec

    def history(self, run_id: str) -> List[Dict[str, Any]]:
        rec = self.get(run_id)
        if rec is None:
            return []
        return rec.to_dict()["events"]

    def _log_event(self, rec: PipelineRecord, ev: PipelineEvent) -> None:
        append_events(
            self.state_dir,
            [
                {
                    "ts": ev.ts,
                    "run_id": rec.run_id,
                    "version": rec.version,
                    "state": ev.state.value,
                    "stage": ev.stage,
                    "message": ev.message,
                    "data": ev.data,
                }
            ],
        )
