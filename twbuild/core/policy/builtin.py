from __future__ import annotations

from typing import Any, Dict, Optional

from packaging.version import InvalidVersion, Version

from ..capabilities.registry import host_architecture, supports_cross_compile
from .models import Operation, PolicyResult, PolicyStatus

# Context keys read by these policies:
#   operation, version, plugin, target_arch, host_arch,
#   blocked_versions, deprecated_before, plugin_catalog, allowed_targets


def policy_version_not_blocked(ctx: Dict[str, Any]) -> Optional[PolicyResult]:
    version = ctx.get("version")
    blocked = ctx.get("blocked_versions") or ()
    if version in blocked:
        return PolicyResult(
            status=PolicyStatus.FAIL,
            code="VERSION_BLOCKED",
            message=f"Version {version} is blocked by configuration.",
            details={"version": version},
        )
    return None


def policy_version_not_deprecated(ctx: Dict[str, Any]) -> Optional[PolicyResult]:
    version = ctx.get("version")
    floor = ctx.get("deprecated_before")
    if not version or not floor:
        return None
    try:
        too_old = Version(str(version)) < Version(str(floor))
    except InvalidVersion:
        # unparseable versions are rejected by classification, not here
        return None
    if too_old:
        return PolicyResult(
            status=PolicyStatus.WARN,
            code="VERSION_DEPRECATED",
            message=f"Version {version} is older than {floor} and is deprecated.",
            details={"version": version, "deprecated_before": floor},
        )
    return None


def policy_plugin_in_catalog(ctx: Dict[str, Any]) -> Optional[PolicyResult]:
    if ctx.get("operation") != Operation.PLUGIN_INSTALL.value:
        return None
    plugin = ctx.get("plugin")
    catalog = ctx.get("plugin_catalog") or {}
    if not plugin:
        return PolicyResult(
            status=PolicyStatus.FAIL,
            code="PLUGIN_MISSING",
            message="plugin_install requires a plugin name.",
        )
    if plugin not in catalog:
        return PolicyResult(
            status=PolicyStatus.FAIL,
            code="PLUGIN_NOT_ALLOWED",
            message=f"Plugin {plugin!r} is not in the supported catalog.",
            details={"plugin": plugin, "supported": sorted(catalog)},
        )
    return None


def policy_cross_compile_supported(ctx: Dict[str, Any]) -> Optional[PolicyResult]:
    if ctx.get("operation") != Operation.BUILD.value:
        return None
    target = ctx.get("target_arch")
    if not target:
        return None
    host = ctx.get("host_arch") or host_architecture()
    version = str(ctx.get("version") or "")
    if target != host and not supports_cross_compile(version):
        return PolicyResult(
            status=PolicyStatus.FAIL,
            code="CROSS_COMPILE_UNSUPPORTED",
            message=f"Version {version} cannot cross-compile from {host} to {target}.",
            details={"version": version, "host_arch": host, "target_arch": target},
        )
    return None


def policy_target_allowed(ctx: Dict[str, Any]) -> Optional[PolicyResult]:
    target = ctx.get("target_arch")
    allowed = ctx.get("allowed_targets")
    if not target or not allowed:
        return None
    if target not in allowed:
        return PolicyResult(
            status=PolicyStatus.FAIL,
            code="TARGET_NOT_ALLOWED",
            message=f"Target {target} is not enabled by configuration.",
            details={"target_arch": target, "allowed": sorted(allowed)},
        )
    return None
