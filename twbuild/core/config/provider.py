from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional

from packaging.version import InvalidVersion, Version

from ..capabilities.registry import host_architecture
from ..errors import InvalidPluginSpec
from ..patching.models import PluginSpec
from ..policy import DEFAULT_POLICY_ENGINE
from ..policy.engine import PolicyEngine
from .loader import load_overrides
from .models import ConfigOverrides, DeploymentTarget, OperationLimits, PluginEntry, PolicyDecision, VersionPolicy

_log = logging.getLogger("twbuild.config")


DEFAULT_PLUGINS: Dict[str, PluginEntry] = {
    "daisyui": PluginEntry(
        version='"daisyui": "^4.12.23"',
        statement="'daisyui': require('daisyui')",
        description="Semantic component classes for Tailwind CSS",
        npm_name="daisyui",
        compatible_versions=("3.x",),
    ),
    "daisyui_v5": PluginEntry(
        version='"daisyui": "^5.0.49"',
        subpaths=("theme",),
        description="Semantic component classes for Tailwind CSS v4",
        npm_name="daisyui",
        compatible_versions=("4.x",),
    ),
}

DEFAULT_CHECKSUMS: Dict[str, str] = {
    "3.4.17": "89c0a7027449cbe564f8722e84108f7bfa0224b5d9289c47cc967ffef8e1b016",
    "4.0.9": "7c36fdcdfed4d1b690a56a1267457a8ac9c640ccae2efcaed59f5053d330000a",
    "4.0.17": "3590bcb90a75c32ba8b10d692d26838caedbc267a57db23931694abc9598c873",
    "4.1.11": "149b7db8417a4a0419ada1d2dc428a11202fc6b971f037b7a8527371c59e0cae",
}

DEFAULT_DEPLOYMENTS: Dict[str, DeploymentTarget] = {
    "r2": DeploymentTarget(name="r2", bucket="defdo", prefix="tailwind_cli_daisyui", region="auto"),
    "s3": DeploymentTarget(name="s3", bucket="my-tailwind-builds", prefix="builds", region="us-east-1"),
}

DEFAULT_DEPRECATED_BEFORE = "3.0.0"


def _env_float(key: str, default: float) -> float:
    try:
        return float(os.getenv(key, str(default)))
    except (TypeError, ValueError):
        return default


def _env_int(key: str, default: int) -> int:
    try:
        return int(os.getenv(key, str(default)))
    except (TypeError, ValueError):
        return default


class ConfigProvider(ABC):
    """Business configuration: which versions/plugins are allowed, limits, targets."""

    @abstractmethod
    def supported_plugins(self) -> Dict[str, PluginEntry]:
        ...

    @abstractmethod
    def known_checksums(self) -> Dict[str, str]:
        ...

    @abstractmethod
    def version_policy(self, version: str) -> VersionPolicy:
        ...

    @abstractmethod
    def decide(self, operation: str, params: Dict[str, Any]) -> PolicyDecision:
        """ALLOW / WARN / BLOCK for ``operation`` with ``params``."""

    @abstractmethod
    def operation_limits(self) -> OperationLimits:
        ...

    @abstractmethod
    def deployment_target(self, name: str) -> DeploymentTarget:
        ...

    def plugin_spec(self, name: str) -> PluginSpec:
        entry = self.supported_plugins().get(name)
        if entry is None:
            raise InvalidPluginSpec(f"Unknown plugin {name!r}", details={"plugin": name})
        return PluginSpec.from_mapping(entry.model_dump())


class DefaultConfigProvider(ConfigProvider):
    """Built-in catalog and limits, with env and override-file adjustments.

    Env:
      TWBUILD_BUILD_TIMEOUT_SECONDS, TWBUILD_DOWNLOAD_TIMEOUT_SECONDS,
      TWBUILD_MAX_CONCURRENT_BUILDS, TWBUILD_CONFIG_FILE
    """

    def __init__(
        self,
        *,
        overrides: Optional[ConfigOverrides] = None,
        config_file: Optional[Path] = None,
        policy_engine: Optional[PolicyEngine] = None,
        host_arch: Optional[str] = None,
    ):
        self.overrides = overrides if overrides is not None else load_overrides(config_file)
        self.policy_engine = policy_engine or DEFAULT_POLICY_ENGINE
        self.host_arch = host_arch

    def supported_plugins(self) -> Dict[str, PluginEntry]:
        out = dict(DEFAULT_PLUGINS)
        out.update(self.overrides.plugins)
        return out

    def known_checksums(self) -> Dict[str, str]:
        out = dict(DEFAULT_CHECKSUMS)
        out.update(self.overrides.checksums)
        return out

    def deprecated_before(self) -> str:
        return self.overrides.deprecated_before or DEFAULT_DEPRECATED_BEFORE

    def version_policy(self, version: str) -> VersionPolicy:
        if version in self.overrides.blocked_versions:
            return VersionPolicy.BLOCKED
        if version in self.known_checksums():
            return VersionPolicy.ALLOWED
        try:
            too_old = Version(version) < Version(self.deprecated_before())
        except InvalidVersion:
            too_old = False
        return VersionPolicy.DEPRECATED if too_old else VersionPolicy.ALLOWED

    def _context(self, operation: str, params: Dict[str, Any]) -> Dict[str, Any]:
        ctx: Dict[str, Any] = dict(params)
        ctx["operation"] = operation
        ctx.setdefault("host_arch", self.host_arch or host_architecture())
        ctx["blocked_versions"] = list(self.overrides.blocked_versions)
        ctx["deprecated_before"] = self.deprecated_before()
        ctx["plugin_catalog"] = self.supported_plugins()
        ctx["allowed_targets"] = list(self.overrides.targets)
        return ctx

    def decide(self, operation: str, params: Dict[str, Any]) -> PolicyDecision:
        results = self.policy_engine.evaluate(self._context(operation, params))
        decision = self.policy_engine.decide(results)
        out = PolicyDecision.from_results(operation, decision, results)
        if out.blocked:
            _log.warning("policy blocked %s: %s", operation, out.reason)
        return out

    def operation_limits(self) -> OperationLimits:
        return OperationLimits(
            download_timeout_seconds=_env_float("TWBUILD_DOWNLOAD_TIMEOUT_SECONDS", 300.0),
            build_timeout_seconds=_env_float("TWBUILD_BUILD_TIMEOUT_SECONDS", 900.0),
            max_concurrent_builds=max(1, _env_int("TWBUILD_MAX_CONCURRENT_BUILDS", 3)),
        )

    def deployment_target(self, name: str) -> DeploymentTarget:
        return DEFAULT_DEPLOYMENTS.get(name, DeploymentTarget(name=name))

    def build_policies(self) -> Dict[str, VersionPolicy]:
        return {v: self.version_policy(v) for v in sorted(self.known_checksums())}
