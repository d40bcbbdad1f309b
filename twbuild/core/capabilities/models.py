from __future__ import annotations

from enum import Enum
from typing import Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class Lineage(str, Enum):
    LEGACY = "legacy"
    MODERN = "modern"
    FUTURE_A = "future_a"
    FUTURE_B = "future_b"
    UNSUPPORTED = "unsupported"


class CompilerKind(str, Enum):
    NPM = "npm"
    RUST = "rust"
    UNKNOWN = "unknown"


class VersionSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    raw: str
    lineage: Lineage
    major: Optional[int] = None

    @property
    def supported(self) -> bool:
        return self.lineage != Lineage.UNSUPPORTED

    @property
    def normalized(self) -> str:
        """Version text as used in directory and archive names: ``v4.1.11`` -> ``4.1.11``."""
        if len(self.raw) > 1 and self.raw[0] in "vV" and self.raw[1].isdigit():
            return self.raw[1:]
        return self.raw


class PatchTarget(BaseModel):
    """A file to patch, relative to the standalone root."""

    model_config = ConfigDict(frozen=True)

    subpath: str = ""
    filename: str

    @property
    def relative_path(self) -> str:
        return f"{self.subpath}/{self.filename}" if self.subpath else self.filename


class FileLayout(BaseModel):
    model_config = ConfigDict(frozen=True)

    # relative to <src>/tailwindcss-<version>
    standalone_dir: str
    patch_targets: Tuple[PatchTarget, ...] = ()
    dist_dir: str = "dist"


class PluginSystem(BaseModel):
    model_config = ConfigDict(frozen=True)

    dependency_section: str
    requires_bundling: bool = True
    supports_dynamic_import: bool = False


class CapabilityProfile(BaseModel):
    model_config = ConfigDict(frozen=True)

    lineage: Lineage
    compiler: CompilerKind
    cross_compilation: bool = False
    supported_targets: Tuple[str, ...] = ()
    required_tools: Tuple[str, ...] = ()
    optional_tools: Tuple[str, ...] = ()
    runtime_constraints: Tuple[Tuple[str, str], ...] = ()
    file_layout: Optional[FileLayout] = None
    plugin_system: Optional[PluginSystem] = None
    experimental: bool = False
    description: Optional[str] = None

    @property
    def dependency_section(self) -> Optional[str]:
        return self.plugin_system.dependency_section if self.plugin_system else None

    @property
    def is_empty(self) -> bool:
        return self.lineage == Lineage.UNSUPPORTED

    def runtime_constraints_dict(self) -> Dict[str, str]:
        return dict(self.runtime_constraints)


class CompilationDetails(BaseModel):
    version: str
    lineage: Lineage
    host_architecture: str
    compiler: CompilerKind
    cross_compilation_available: bool
    supported_targets: Tuple[str, ...] = ()
    compilable_targets: Tuple[str, ...] = ()
    limitations: Tuple[str, ...] = ()
    recommended_workflow: Dict[str, str] = Field(default_factory=dict)
