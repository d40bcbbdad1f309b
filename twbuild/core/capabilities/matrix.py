from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Tuple

from .models import CapabilityProfile, CompilationDetails, CompilerKind
from .registry import classify, compilable_targets, host_architecture, resolve


KNOWN_VERSIONS: Tuple[str, ...] = ("3.4.17", "4.0.9", "4.0.17", "4.1.11")

_LIMITATIONS: Dict[CompilerKind, Tuple[str, ...]] = {
    CompilerKind.NPM: (),
    CompilerKind.RUST: (
        "No cross-compilation support",
        "Can only compile for host architecture",
        "Requires Rust toolchain on target system",
    ),
    CompilerKind.UNKNOWN: (
        "Unknown compilation method",
        "No support guaranteed",
    ),
}


def _recommended_workflow(compiler: CompilerKind, host_arch: str) -> Dict[str, str]:
    if compiler == CompilerKind.NPM:
        return {
            "single_host": "Compile for all targets from any host",
            "ci_cd": "Use single build agent to generate all architecture binaries",
            "distribution": "Upload all binaries from single compilation run",
        }
    if compiler == CompilerKind.RUST:
        return {
            "single_host": f"Can only compile for {host_arch}",
            "ci_cd": "Requires separate build agents for each target architecture",
            "distribution": "Collect binaries from multiple compilation hosts",
        }
    return {
        "single_host": "Unknown workflow requirements",
        "ci_cd": "Consult version documentation",
        "distribution": "Manual verification required",
    }


def compilation_details(version: str, host_arch: Optional[str] = None) -> CompilationDetails:
    host = host_arch or host_architecture()
    profile = resolve(version)
    return CompilationDetails(
        version=version,
        lineage=profile.lineage,
        host_architecture=host,
        compiler=profile.compiler,
        cross_compilation_available=profile.cross_compilation,
        supported_targets=profile.supported_targets,
        compilable_targets=tuple(sorted(compilable_targets(version, host))),
        limitations=_LIMITATIONS[profile.compiler],
        recommended_workflow=_recommended_workflow(profile.compiler, host),
    )


def compatibility_matrix(
    versions: Iterable[str] = KNOWN_VERSIONS,
    host_arch: Optional[str] = None,
) -> Dict[str, Dict[str, Any]]:
    """Per target architecture: which of ``versions`` can be built for it from this host."""
    host = host_arch or host_architecture()
    out: Dict[str, Dict[str, Any]] = {}
    for v in versions:
        profile = resolve(v)
        reachable = compilable_targets(v, host)
        for target in profile.supported_targets:
            row = out.setdefault(
                target,
                {"buildable_versions": [], "declared_versions": [], "compilers": []},
            )
            row["declared_versions"].append(v)
            if target in reachable:
                row["buildable_versions"].append(v)
            if profile.compiler.value not in row["compilers"]:
                row["compilers"].append(profile.compiler.value)
    return out


def version_summary(version: str, host_arch: Optional[str] = None) -> Dict[str, Any]:
    # imported here: constraints depends on this module
    from .constraints import check_feasibility

    host = host_arch or host_architecture()
    profile = resolve(version)
    details = compilation_details(version, host)
    feasible = check_feasibility(version, target_arch=host, host_arch=host)
    return {
        "version": version,
        "lineage": profile.lineage.value,
        "compiler": profile.compiler.value,
        "cross_compilation": profile.cross_compilation,
        "supported_architectures": len(profile.supported_targets),
        "can_compile_from_current_host": feasible["feasible"],
        "available_targets_from_host": len(details.compilable_targets),
        "required_tools": list(profile.required_tools),
        "limitations": list(details.limitations),
        "experimental": profile.experimental,
    }


def compare_versions(version1: str, version2: str, host_arch: Optional[str] = None) -> Dict[str, Any]:
    s1 = version_summary(version1, host_arch)
    s2 = version_summary(version2, host_arch)
    return {
        "version1": s1,
        "version2": s2,
        "differences": {
            "compiler": s1["compiler"] != s2["compiler"],
            "cross_compilation": s1["cross_compilation"] != s2["cross_compilation"],
            "architecture_support": s1["supported_architectures"] != s2["supported_architectures"],
            "tool_requirements": s1["required_tools"] != s2["required_tools"],
        },
    }


def analyze_extracted_structure(extraction_path: Path, version: str) -> Dict[str, Any]:
    """Check that an extracted source tree has the layout its version expects.

    ``extraction_path`` is the ``tailwindcss-<version>`` directory itself.
    """
    spec = classify(version)
    profile: CapabilityProfile = resolve(version)
    if profile.file_layout is None:
        return {
            "version": version,
            "lineage": spec.lineage.value,
            "valid_structure": False,
            "standalone_path": None,
            "package_json_exists": False,
            "missing_patch_targets": [],
            "structure_type": "unsupported",
        }

    base = Path(extraction_path)
    standalone = base / profile.file_layout.standalone_dir
    package_json = standalone / "package.json"
    missing = [
        t.relative_path
        for t in profile.file_layout.patch_targets
        if not (standalone / t.relative_path).is_file()
    ]
    return {
        "version": version,
        "lineage": spec.lineage.value,
        "valid_structure": standalone.is_dir() and package_json.is_file(),
        "standalone_path": str(standalone),
        "package_json_exists": package_json.is_file(),
        "missing_patch_targets": missing,
        "structure_type": profile.file_layout.standalone_dir,
    }
