from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class DeployRequest:
    source_dir: Path
    version: str
    bucket: str
    prefix: str
    binaries: List[Path] = field(default_factory=list)

    def key_for(self, filename: str) -> str:
        parts = [p.strip("/") for p in (self.prefix, self.version, filename) if p and p.strip("/")]
        return "/".join(parts)


@dataclass
class DeployResult:
    target: str
    version: str
    files: List[Dict[str, Any]] = field(default_factory=list)
    manifest_key: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "target": self.target,
            "version": self.version,
            "files": list(self.files),
            "manifest_key": self.manifest_key,
        }


class Deployer(ABC):
    name: str

    @abstractmethod
    def deploy(self, request: DeployRequest) -> DeployResult:
        """Publish every binary in ``request``.

        Raises ``DeployFailed`` if any binary could not be published.
        """
