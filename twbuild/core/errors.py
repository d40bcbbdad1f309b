from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorKind(str, Enum):
    VERSION_UNSUPPORTED = "VersionUnsupported"
    FILE_NOT_FOUND = "FileNotFound"
    FILE_UNREADABLE = "FileUnreadable"
    ANCHOR_NOT_FOUND = "AnchorNotFound"
    ANCHOR_AMBIGUOUS = "AnchorAmbiguous"
    INVALID_PLUGIN_SPEC = "InvalidPluginSpec"
    TOOL_MISSING = "ToolMissing"
    BUILD_PROCESS_FAILED = "BuildProcessFailed"
    BUILD_TIMEOUT = "BuildTimeout"
    POLICY_BLOCKED = "PolicyBlocked"
    SOURCE_LAYOUT_INVALID = "SourceLayoutInvalid"
    PATCH_FAILED = "PatchFailed"
    DEPLOY_FAILED = "DeployFailed"
    FETCH_FAILED = "FetchFailed"
    PIPELINE_BUSY = "PipelineBusy"
    IO_ERROR = "IOError"


class BuilderError(Exception):
    """Base for every typed failure raised by the builder."""

    kind: ErrorKind = ErrorKind.PATCH_FAILED

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = dict(details or {})

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind.value, "message": self.message, "details": self.details}


class VersionUnsupported(BuilderError):
    kind = ErrorKind.VERSION_UNSUPPORTED

    def __init__(self, version: str):
        super().__init__(f"Unsupported version: {version!r}", details={"version": version})
        self.version = version


class InvalidPluginSpec(BuilderError):
    kind = ErrorKind.INVALID_PLUGIN_SPEC


class ToolMissing(BuilderError):
    kind = ErrorKind.TOOL_MISSING

    def __init__(self, tools: List[str]):
        super().__init__(
            f"Ensure that `{'`, `'.join(tools)}` is installed.",
            details={"missing_tools": list(tools)},
        )
        self.tools = list(tools)


class BuildProcessFailed(BuilderError):
    kind = ErrorKind.BUILD_PROCESS_FAILED

    def __init__(self, step: str, exit_code: int, output: str):
        super().__init__(
            f"Build step {step!r} failed with exit code {exit_code}",
            # keep payloads bounded; full output stays on the exception
            details={"step": step, "exit_code": exit_code, "output_tail": output[-2000:]},
        )
        self.step = step
        self.exit_code = exit_code
        self.output = output


class BuildTimeout(BuilderError):
    kind = ErrorKind.BUILD_TIMEOUT

    def __init__(self, step: str, timeout_seconds: float, output: str = ""):
        super().__init__(
            f"Build step {step!r} exceeded {timeout_seconds:.0f}s and was terminated",
            details={"step": step, "timeout_seconds": timeout_seconds},
        )
        self.step = step
        self.timeout_seconds = timeout_seconds
        self.output = output


class PolicyBlocked(BuilderError):
    kind = ErrorKind.POLICY_BLOCKED


class SourceLayoutInvalid(BuilderError):
    kind = ErrorKind.SOURCE_LAYOUT_INVALID


class DeployFailed(BuilderError):
    kind = ErrorKind.DEPLOY_FAILED


class FetchFailed(BuilderError):
    kind = ErrorKind.FETCH_FAILED


class PipelineBusy(BuilderError):
    kind = ErrorKind.PIPELINE_BUSY
