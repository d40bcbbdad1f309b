from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from ..policy.models import Decision, PolicyResult


class VersionPolicy(str, Enum):
    ALLOWED = "allowed"
    DEPRECATED = "deprecated"
    BLOCKED = "blocked"


class OperationLimits(BaseModel):
    model_config = ConfigDict(frozen=True)

    download_timeout_seconds: float = 300.0
    build_timeout_seconds: float = 900.0
    max_concurrent_builds: int = 3
    max_file_size_bytes: int = 200_000_000


class DeploymentTarget(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    bucket: str = ""
    prefix: str = ""
    region: str = ""

    @property
    def configured(self) -> bool:
        return bool(self.bucket)


class PluginEntry(BaseModel):
    """A catalog entry; ``version`` is the ``"name": "range"`` dependency line."""

    model_config = ConfigDict(frozen=True)

    version: str
    statement: Optional[str] = None
    subpaths: Tuple[str, ...] = ()
    description: str = ""
    npm_name: Optional[str] = None
    compatible_versions: Tuple[str, ...] = ()


class ConfigOverrides(BaseModel):
    """Shape of the optional YAML/JSON override file."""

    plugins: Dict[str, PluginEntry] = Field(default_factory=dict)
    blocked_versions: List[str] = Field(default_factory=list)
    deprecated_before: Optional[str] = None
    targets: List[str] = Field(default_factory=list)
    checksums: Dict[str, str] = Field(default_factory=dict)


class PolicyDecision(BaseModel):
    decision: Decision
    operation: str
    results: List[Dict[str, Any]] = Field(default_factory=list)

    @property
    def blocked(self) -> bool:
        return self.decision == Decision.BLOCK

    @property
    def reason(self) -> str:
        return "; ".join(r.get("message", "") for r in self.results if r.get("status") == "FAIL")

    @classmethod
    def from_results(cls, operation: str, decision: Decision, results: List[PolicyResult]) -> "PolicyDecision":
        return cls(decision=decision, operation=operation, results=[r.to_dict() for r in results])
