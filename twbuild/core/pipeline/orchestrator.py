from __future__ import annotations

import logging
import threading
import time
import uuid
from dataclasses import replace
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Set

from ..capabilities.registry import classify, host_architecture, resolve
from ..config.provider import ConfigProvider, DefaultConfigProvider
from ..deploy.base import Deployer, DeployRequest
from ..deploy.binaries import filter_for_host, find_binaries
from ..errors import BuilderError, DeployFailed, ErrorKind, PipelineBusy, PolicyBlocked, VersionUnsupported
from ..execution.builder import Builder
from ..fetch.base import Downloader, ExtractionResult
from ..observability.telemetry import NullTelemetry, TelemetrySink
from ..patching.engine import apply_plugin
from ..patching.models import PluginSpec
from ..policy.models import Decision, Operation
from ..routing.strategy import BuildStrategy, select_build_strategy
from .models import PipelineRequest, PipelineResult, PipelineState, Stage, StageOutcome, StageStatus
from .record import PipelineRegistry
from .state_machine import ensure_transition

_log = logging.getLogger("twbuild.pipeline")

# work dirs with a run in flight; entries are removed when the run ends
_BUSY: Set[str] = set()
_BUSY_GUARD = threading.Lock()


def _claim_work_dir(path: Path) -> str:
    key = str(Path(path).resolve())
    with _BUSY_GUARD:
        if key in _BUSY:
            raise PipelineBusy(f"a pipeline is already running in {path}", details={"work_dir": str(path)})
        _BUSY.add(key)
    return key


def _release_work_dir(key: str) -> None:
    with _BUSY_GUARD:
        _BUSY.discard(key)


class _StageFailed(Exception):
    def __init__(self, outcome: StageOutcome):
        super().__init__(outcome.detail)
        self.outcome = outcome


class Orchestrator:
    """Runs resolve -> fetch -> patch -> build -> deploy for one version.

    Stops at the first failing stage; nothing already on disk is rolled back.
    """

    def __init__(
        self,
        *,
        downloader: Downloader,
        config: Optional[ConfigProvider] = None,
        builder: Optional[Builder] = None,
        deployer: Optional[Deployer] = None,
        telemetry: Optional[TelemetrySink] = None,
        state_dir: Optional[Path] = None,
        host_arch: Optional[str] = None,
    ):
        self.downloader = downloader
        self.config = config or DefaultConfigProvider()
        self.telemetry = telemetry or NullTelemetry()
        self.builder = builder or Builder(telemetry=self.telemetry)
        self.deployer = deployer
        self.registry = PipelineRegistry(state_dir=state_dir) if state_dir is not None else None
        self.host_arch = host_arch

    # ---- public ----

    def run(self, request: PipelineRequest) -> PipelineResult:
        key = _claim_work_dir(request.work_dir)
        try:
            return self._run(replace(request, version=classify(request.version).normalized))
        finally:
            _release_work_dir(key)

    # ---- stages ----

    def _run(self, request: PipelineRequest) -> PipelineResult:
        spec = classify(request.version)
        run_id = request.run_id or uuid.uuid4().hex
        result = PipelineResult(version=request.version, lineage=spec.lineage.value, run_id=run_id)
        if self.registry is not None:
            self.registry.init(
                run_id=run_id,
                version=request.version,
                work_dir=str(request.work_dir),
                plugins=[p if isinstance(p, str) else p.name for p in request.plugins],
            )

        self.telemetry.emit("pipeline.started", version=request.version, run_id=run_id)
        try:
            self._stage(result, Stage.RESOLVE, lambda o: self._resolve(request, o))
            extraction = self._stage(result, Stage.FETCH, lambda o: self._fetch(request, o))
            self._advance(result, PipelineState.FETCHED, Stage.FETCH)

            self._stage(result, Stage.PATCH, lambda o: self._patch(request, extraction, result, o))
            self._advance(result, PipelineState.PATCHED, Stage.PATCH)

            strategy = select_build_strategy(request.version, extraction.root_path)
            self._stage(result, Stage.BUILD, lambda o: self._build(request, strategy, o))
            self._advance(result, PipelineState.BUILT, Stage.BUILD)

            if request.deploy_target is None or self.deployer is None:
                result.stages.append(StageOutcome(stage=Stage.DEPLOY, status=StageStatus.SKIPPED, detail="no deploy target"))
                _log.info("deploy skipped for %s", request.version)
            else:
                self._stage(result, Stage.DEPLOY, lambda o: self._deploy(request, strategy, result, o))
                self._advance(result, PipelineState.DEPLOYED, Stage.DEPLOY)
        except _StageFailed as f:
            self._fail(result, f.outcome)

        self.telemetry.emit(
            "pipeline.finished",
            version=request.version,
            run_id=run_id,
            state=result.state.value,
            failed_stage=result.failed_stage.value if result.failed_stage else None,
        )
        return result

    def _stage(self, result: PipelineResult, stage: Stage, fn: Callable[[StageOutcome], Any]) -> Any:
        """Run one stage; a typed error or an outcome marked FAILED halts the pipeline."""
        outcome = StageOutcome(stage=stage, status=StageStatus.OK)
        self.telemetry.emit("stage.started", stage=stage.value, version=result.version)
        t0 = time.monotonic()
        value = None
        try:
            value = fn(outcome)
        except BuilderError as e:
            outcome.status = StageStatus.FAILED
            outcome.error_kind = e.kind
            outcome.detail = e.message
            outcome.data = {"error": e.to_dict()}
        except OSError as e:
            _log.error("%s stage hit an I/O error: %s", stage.value, e)
            outcome.status = StageStatus.FAILED
            outcome.error_kind = ErrorKind.IO_ERROR
            outcome.detail = str(e)
            outcome.data = {
                "error": {
                    "kind": ErrorKind.IO_ERROR.value,
                    "message": str(e),
                    "details": {"path": str(e.filename) if e.filename else None, "errno": e.errno},
                }
            }
        outcome.duration_seconds = time.monotonic() - t0
        result.stages.append(outcome)
        self.telemetry.emit(
            "stage.finished",
            stage=stage.value,
            version=result.version,
            status=outcome.status.value,
            duration_seconds=outcome.duration_seconds,
            error_kind=outcome.error_kind.value if outcome.error_kind else None,
        )
        if outcome.status == StageStatus.FAILED:
            raise _StageFailed(outcome)
        return value

    def _check_policy(self, operation: Operation, params: Dict, outcome: StageOutcome) -> None:
        decision = self.config.decide(operation.value, params)
        if decision.decision == Decision.WARN:
            for r in decision.results:
                outcome.warnings.append(r.get("message", ""))
            _log.warning("policy warnings for %s: %s", operation.value, outcome.warnings)
        if decision.blocked:
            raise PolicyBlocked(
                decision.reason or f"{operation.value} blocked by policy",
                details={"operation": operation.value, "results": decision.results},
            )

    def _resolve(self, request: PipelineRequest, outcome: StageOutcome) -> BuildStrategy:
        spec = classify(request.version)
        if not spec.supported:
            raise VersionUnsupported(request.version)
        self._check_policy(Operation.RESOLVE, {"version": request.version}, outcome)
        strategy = select_build_strategy(request.version, request.work_dir)
        outcome.data = {"lineage": spec.lineage.value, "steps": strategy.step_names()}
        return strategy

    def _fetch(self, request: PipelineRequest, outcome: StageOutcome) -> ExtractionResult:
        self._check_policy(Operation.DOWNLOAD, {"version": request.version}, outcome)
        extraction = self.downloader.fetch(request.version, request.work_dir)
        outcome.data = {"root_path": str(extraction.root_path)}
        return extraction

    def _plugin_specs(self, request: PipelineRequest, outcome: StageOutcome) -> List[PluginSpec]:
        specs: List[PluginSpec] = []
        for p in request.plugins:
            if isinstance(p, PluginSpec):
                self._check_policy(Operation.PLUGIN_INSTALL, {"version": request.version, "plugin": p.name}, outcome)
                specs.append(p)
            else:
                self._check_policy(Operation.PLUGIN_INSTALL, {"version": request.version, "plugin": p}, outcome)
                specs.append(self.config.plugin_spec(p))
        return specs

    def _patch(
        self,
        request: PipelineRequest,
        extraction: ExtractionResult,
        result: PipelineResult,
        outcome: StageOutcome,
    ) -> None:
        for plugin in self._plugin_specs(request, outcome):
            report = apply_plugin(plugin, request.version, extraction.root_path)
            result.patch_reports.append(report)
            for f in report.files:
                self.telemetry.emit("patch.file", target=f.target, status=f.status.value, plugin=plugin.name)
            outcome.warnings.extend(report.warnings)

            if not report.ok:
                bad = report.first_error
                kind = report.error_kind or (bad.error_kind if bad else None) or ErrorKind.PATCH_FAILED
                detail = report.detail or (f"{bad.target}: {bad.detail}" if bad else "patch failed")
                outcome.status = StageStatus.FAILED
                outcome.error_kind = kind
                outcome.detail = f"{plugin.name}: {detail}"
                outcome.data = {"report": report.to_dict()}
                return

        outcome.data = {
            "already_patched": bool(result.patch_reports) and all(r.already_patched for r in result.patch_reports),
            "plugins": [r.plugin for r in result.patch_reports],
        }

    def _build(self, request: PipelineRequest, strategy: BuildStrategy, outcome: StageOutcome) -> None:
        self._check_policy(
            Operation.BUILD,
            {
                "version": request.version,
                "target_arch": request.target_arch,
                "host_arch": self.host_arch or host_architecture(),
            },
            outcome,
        )
        limits = self.config.operation_limits()
        built = self.builder.compile(strategy, timeout_seconds=limits.build_timeout_seconds)
        outcome.data = {"steps": [s.step for s in built.steps], "dist_dir": str(built.dist_dir)}

    def _deploy(
        self,
        request: PipelineRequest,
        strategy: BuildStrategy,
        result: PipelineResult,
        outcome: StageOutcome,
    ) -> None:
        self._check_policy(Operation.DEPLOY, {"version": request.version, "target": request.deploy_target}, outcome)
        target = self.config.deployment_target(request.deploy_target)
        binaries = find_binaries(strategy.paths.dist_dir)
        if not resolve(request.version).cross_compilation:
            host = self.host_arch or host_architecture()
            binaries = filter_for_host(binaries, host)
            if not binaries:
                raise DeployFailed(f"no binaries for host {host}", details={"dist_dir": str(strategy.paths.dist_dir)})
        if not binaries:
            raise DeployFailed("no binaries found", details={"dist_dir": str(strategy.paths.dist_dir)})

        deployed = self.deployer.deploy(
            DeployRequest(
                source_dir=strategy.paths.root,
                version=request.version,
                bucket=target.bucket,
                prefix=target.prefix,
                binaries=[b.path for b in binaries],
            )
        )
        result.deploy = deployed.to_dict()
        outcome.data = {"files": len(deployed.files), "manifest_key": deployed.manifest_key}

    # ---- state ----

    def _advance(self, result: PipelineResult, dst: PipelineState, stage: Stage) -> None:
        ensure_transition(result.state, dst)
        result.state = dst
        if self.registry is not None and result.run_id:
            self.registry.transition(run_id=result.run_id, dst=dst, stage=stage.value, message=f"{stage.value} ok")
        _log.info("%s -> %s", result.version, dst.value)

    def _fail(self, result: PipelineResult, outcome: StageOutcome) -> None:
        ensure_transition(result.state, PipelineState.FAILED)
        result.state = PipelineState.FAILED
        _log.error(
            "pipeline for %s failed at %s: %s %s",
            result.version,
            outcome.stage.value,
            outcome.error_kind.value if outcome.error_kind else "?",
            outcome.detail,
        )
        if self.registry is not None and result.run_id:
            self.registry.transition(
                run_id=result.run_id,
                dst=PipelineState.FAILED,
                stage=outcome.stage.value,
                message=outcome.detail,
                data={"error_kind": outcome.error_kind.value if outcome.error_kind else None, "detail": outcome.detail},
            )


def run_pipeline(request: PipelineRequest, **kwargs) -> PipelineResult:
    return Orchestrator(**kwargs).run(request)
