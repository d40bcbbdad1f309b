from __future__ import annotations

from typing import Any, Dict, Iterable, Optional

from .matrix import compilation_details
from .registry import can_compile_for_target, host_architecture, in_production_support, resolve


def technical_limitations(version: str, host_arch: Optional[str] = None) -> Dict[str, Any]:
    profile = resolve(version)
    details = compilation_details(version, host_arch)
    layout = profile.file_layout
    return {
        "version": version,
        "compilation_limitations": list(details.limitations),
        "architecture_constraints": {
            "cross_compilation": profile.cross_compilation,
            "supported_targets": list(profile.supported_targets),
            "host_only": not profile.cross_compilation,
        },
        "toolchain_constraints": {
            "required_tools": list(profile.required_tools),
            "runtime_requirements": profile.runtime_constraints_dict(),
        },
        "file_system_constraints": {
            "standalone_dir": layout.standalone_dir if layout else None,
            "patch_targets": [t.relative_path for t in layout.patch_targets] if layout else [],
            "dependency_section": profile.dependency_section,
        },
    }


def check_feasibility(
    version: str,
    *,
    target_arch: Optional[str] = None,
    plugins: Iterable[str] = (),
    host_arch: Optional[str] = None,
) -> Dict[str, Any]:
    """Technical feasibility only; business rules live in the policy engine.

    Returns ``{"feasible": bool, "reason": Optional[str]}``. Checks run in
    order and stop at the first failure.
    """
    host = host_arch or host_architecture()

    if not in_production_support(version):
        return {"feasible": False, "reason": "version_not_supported"}

    if target_arch is not None:
        if not (can_compile_for_target(version, target_arch, host) or target_arch == host):
            return {"feasible": False, "reason": "architecture_not_supported"}

    plugin_list = list(plugins)
    if plugin_list and resolve(version).plugin_system is None:
        return {"feasible": False, "reason": "plugin_system_not_available"}

    return {"feasible": True, "reason": None}
