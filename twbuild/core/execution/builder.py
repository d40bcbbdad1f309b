from __future__ import annotations

import logging
import shutil
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional

from ..errors import BuildProcessFailed, BuildTimeout, ToolMissing
from ..observability.telemetry import NullTelemetry, TelemetrySink
from ..routing.strategy import BuildStrategy
from .runner import CommandResult, CommandRunner, SubprocessRunner

_log = logging.getLogger("twbuild.build")

WhichFn = Callable[[str], Optional[str]]


@dataclass
class BuildResult:
    version: str
    dist_dir: Path
    steps: List[CommandResult] = field(default_factory=list)

    @property
    def duration_seconds(self) -> float:
        return sum(s.duration_seconds for s in self.steps)


class Builder:
    """Runs a build strategy's steps in order, stopping at the first failure."""

    def __init__(
        self,
        runner: Optional[CommandRunner] = None,
        *,
        which: WhichFn = shutil.which,
        telemetry: Optional[TelemetrySink] = None,
    ):
        self.runner = runner or SubprocessRunner()
        self.which = which
        self.telemetry = telemetry or NullTelemetry()

    def missing_tools(self, strategy: BuildStrategy) -> List[str]:
        return [t for t in strategy.required_tools if self.which(t) is None]

    def compile(self, strategy: BuildStrategy, *, timeout_seconds: float) -> BuildResult:
        missing = self.missing_tools(strategy)
        if missing:
            _log.error("missing build tools for %s: %s", strategy.version, ", ".join(missing))
            raise ToolMissing(missing)

        result = BuildResult(version=strategy.version, dist_dir=strategy.paths.dist_dir)
        deadline = time.monotonic() + timeout_seconds

        for step in strategy.steps:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise BuildTimeout(step.name, timeout_seconds)

            self.telemetry.emit("build.step.started", version=strategy.version, step=step.name)
            res = self.runner.run(step, timeout_seconds=remaining, env=strategy.env or None)
            result.steps.append(res)
            self.telemetry.emit(
                "build.step.finished",
                version=strategy.version,
                step=step.name,
                exit_code=res.exit_code,
                duration_seconds=res.duration_seconds,
            )

            if not res.ok:
                _log.error("step %s exited with %s", step.name, res.exit_code)
                raise BuildProcessFailed(step.name, res.exit_code, res.output)

        _log.info("built %s in %d steps", strategy.version, len(result.steps))
        return result
