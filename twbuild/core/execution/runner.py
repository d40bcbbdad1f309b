from __future__ import annotations

import logging
import os
import shutil
import signal
import subprocess
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Optional, Union

from ..errors import BuildTimeout
from ..routing.strategy import BuildStep

_log = logging.getLogger("twbuild.build")


@dataclass
class CommandResult:
    step: str
    exit_code: int
    output: str
    duration_seconds: float = 0.0

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


class CommandRunner(ABC):
    name: str

    @abstractmethod
    def run(self, step: BuildStep, *, timeout_seconds: float, env: Optional[Dict[str, str]] = None) -> CommandResult:
        """Run one build step to completion.

        Returns the exit code and combined output. Raises ``BuildTimeout``
        after terminating the child if it runs past ``timeout_seconds``.
        """


def _as_text(data: Union[str, bytes, None]) -> str:
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data


_POSIX = os.name == "posix"


def _kill_process_group(proc: subprocess.Popen) -> None:
    if _POSIX and hasattr(os, "killpg"):
        try:
            os.killpg(proc.pid, signal.SIGKILL)
        except ProcessLookupError:
            pass
    else:
        proc.kill()


class SubprocessRunner(CommandRunner):
    name = "subprocess"

    def run(self, step: BuildStep, *, timeout_seconds: float, env: Optional[Dict[str, str]] = None) -> CommandResult:
        argv = list(step.argv)
        # npm/pnpm are .cmd shims on Windows; resolve to a full path
        resolved = shutil.which(argv[0])
        if resolved:
            argv[0] = resolved

        full_env = None
        if env:
            full_env = dict(os.environ)
            full_env.update(env)

        _log.info("running %s", step.describe())
        t0 = time.monotonic()
        proc = subprocess.Popen(
            argv,
            cwd=str(step.cwd),
            env=full_env,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            # own process group, so a timeout takes npm's children down too
            start_new_session=_POSIX,
        )
        try:
            out, _ = proc.communicate(timeout=timeout_seconds)
        except subprocess.TimeoutExpired as e:
            _log.error("step %s timed out after %.0fs", step.name, timeout_seconds)
            _kill_process_group(proc)
            out, _ = proc.communicate()
            raise BuildTimeout(step.name, timeout_seconds, _as_text(out) or _as_text(e.output)) from e

        return CommandResult(
            step=step.name,
            exit_code=proc.returncode,
            output=_as_text(out),
            duration_seconds=time.monotonic() - t0,
        )
