from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class PolicyStatus(str, Enum):
    PASS = "PASS"
    WARN = "WARN"
    FAIL = "FAIL"


class Decision(str, Enum):
    ALLOW = "ALLOW"
    WARN = "WARN"
    BLOCK = "BLOCK"


class Operation(str, Enum):
    RESOLVE = "resolve"
    DOWNLOAD = "download"
    PLUGIN_INSTALL = "plugin_install"
    BUILD = "build"
    DEPLOY = "deploy"


@dataclass(frozen=True)
class PolicyResult:
    status: PolicyStatus
    code: str
    message: str
    details: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "code": self.code,
            "message": self.message,
            "details": self.details or {},
        }
