from .models import CapabilityProfile, CompilationDetails, CompilerKind, Lineage, VersionSpec
from .registry import (
    classify,
    compilable_targets,
    host_architecture,
    in_production_support,
    resolve,
    supports_cross_compile,
)
from .matrix import analyze_extracted_structure, compare_versions, compatibility_matrix, compilation_details
from .constraints import check_feasibility, technical_limitations

__all__ = [
    "CapabilityProfile",
    "CompilationDetails",
    "CompilerKind",
    "Lineage",
    "VersionSpec",
    "classify",
    "compilable_targets",
    "host_architecture",
    "in_production_support",
    "resolve",
    "supports_cross_compile",
    "analyze_extracted_structure",
    "compare_versions",
    "compatibility_matrix",
    "compilation_details",
    "check_feasibility",
    "technical_limitations",
]
