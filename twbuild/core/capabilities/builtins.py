from __future__ import annotations

from typing import Dict

from .models import CapabilityProfile, CompilerKind, FileLayout, Lineage, PatchTarget, PluginSystem


LEGACY_TARGETS = (
    "linux-x64",
    "linux-arm64",
    "darwin-x64",
    "darwin-arm64",
    "win32-x64",
    "win32-arm64",
    "freebsd-x64",
)

# Declared for documentation only; modern builds are host-only.
MODERN_TARGETS = (
    "linux-x64",
    "linux-arm64",
    "darwin-x64",
    "darwin-arm64",
    "win32-x64",
)

LEGACY_LAYOUT = FileLayout(
    standalone_dir="standalone-cli",
    patch_targets=(
        PatchTarget(filename="package.json"),
        PatchTarget(filename="standalone.js"),
    ),
)

MODERN_LAYOUT = FileLayout(
    standalone_dir="packages/@tailwindcss-standalone",
    patch_targets=(
        PatchTarget(filename="package.json"),
        PatchTarget(subpath="src", filename="index.ts"),
    ),
)


def _modern_profile(lineage: Lineage, *, experimental: bool, description: str) -> CapabilityProfile:
    return CapabilityProfile(
        lineage=lineage,
        compiler=CompilerKind.RUST,
        cross_compilation=False,
        supported_targets=MODERN_TARGETS,
        required_tools=("pnpm", "node"),
        optional_tools=("npm", "yarn"),
        runtime_constraints=(
            ("node_version", ">= 18.0.0"),
            ("pnpm_version", ">= 8.0.0"),
            ("rust_toolchain", "stable"),
        ),
        file_layout=MODERN_LAYOUT,
        plugin_system=PluginSystem(
            dependency_section="dependencies",
            requires_bundling=True,
            supports_dynamic_import=True,
        ),
        experimental=experimental,
        description=description,
    )


LEGACY_PROFILE = CapabilityProfile(
    lineage=Lineage.LEGACY,
    compiler=CompilerKind.NPM,
    cross_compilation=True,
    supported_targets=LEGACY_TARGETS,
    required_tools=("npm", "node"),
    optional_tools=("pnpm", "yarn"),
    runtime_constraints=(
        ("node_version", ">= 14.0.0"),
        ("npm_version", ">= 6.0.0"),
    ),
    file_layout=LEGACY_LAYOUT,
    plugin_system=PluginSystem(
        dependency_section="devDependencies",
        requires_bundling=True,
        supports_dynamic_import=False,
    ),
    description="v3: npm bundler, cross-compiles every target from any host",
)

MODERN_PROFILE = _modern_profile(
    Lineage.MODERN,
    experimental=False,
    description="v4: rust native components, host-only builds",
)

FUTURE_A_PROFILE = _modern_profile(
    Lineage.FUTURE_A,
    experimental=True,
    description="v5: assumed to keep the v4 toolchain",
)

FUTURE_B_PROFILE = _modern_profile(
    Lineage.FUTURE_B,
    experimental=True,
    description="v6 and later: assumed to keep the v4 toolchain",
)

UNSUPPORTED_PROFILE = CapabilityProfile(
    lineage=Lineage.UNSUPPORTED,
    compiler=CompilerKind.UNKNOWN,
    description="unknown or invalid version",
)


BUILTIN_PROFILES: Dict[Lineage, CapabilityProfile] = {
    Lineage.LEGACY: LEGACY_PROFILE,
    Lineage.MODERN: MODERN_PROFILE,
    Lineage.FUTURE_A: FUTURE_A_PROFILE,
    Lineage.FUTURE_B: FUTURE_B_PROFILE,
    Lineage.UNSUPPORTED: UNSUPPORTED_PROFILE,
}
