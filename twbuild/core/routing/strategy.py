from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Tuple

from ..capabilities.models import CompilerKind, Lineage
from ..capabilities.registry import classify, resolve
from ..errors import VersionUnsupported

_log = logging.getLogger("twbuild.router")


@dataclass(frozen=True)
class BuildStep:
    name: str
    argv: Tuple[str, ...]
    cwd: Path

    def describe(self) -> str:
        return f"{' '.join(self.argv)} (in {self.cwd})"


@dataclass(frozen=True)
class BuildPaths:
    root: Path
    standalone_root: Path
    dist_dir: Path


@dataclass(frozen=True)
class BuildStrategy:
    version: str
    lineage: Lineage
    compiler: CompilerKind
    paths: BuildPaths
    steps: Tuple[BuildStep, ...]
    required_tools: Tuple[str, ...] = ()
    env: Dict[str, str] = field(default_factory=dict)

    def step_names(self) -> List[str]:
        return [s.name for s in self.steps]


def build_paths(source_path: Path, version: str) -> BuildPaths:
    profile = resolve(version)
    if profile.file_layout is None:
        raise VersionUnsupported(version)
    root = Path(source_path) / f"tailwindcss-{classify(version).normalized}"
    standalone = root / profile.file_layout.standalone_dir
    return BuildPaths(root=root, standalone_root=standalone, dist_dir=standalone / profile.file_layout.dist_dir)


def _npm_steps(paths: BuildPaths) -> Tuple[BuildStep, ...]:
    return (
        BuildStep("root_install", ("npm", "install"), paths.root),
        BuildStep("root_build", ("npm", "run", "build"), paths.root),
        BuildStep("standalone_install", ("npm", "install"), paths.standalone_root),
        BuildStep("standalone_build", ("npm", "run", "build"), paths.standalone_root),
    )


def _pnpm_steps(paths: BuildPaths) -> Tuple[BuildStep, ...]:
    return (
        BuildStep("workspace_install", ("pnpm", "install", "--no-frozen-lockfile"), paths.root),
        BuildStep("workspace_build", ("pnpm", "run", "build"), paths.root),
        # the workspace build does not produce the standalone binaries
        BuildStep("standalone_build", ("pnpm", "run", "build"), paths.standalone_root),
    )


_STEPS_BY_COMPILER = {
    CompilerKind.NPM: _npm_steps,
    CompilerKind.RUST: _pnpm_steps,
}


def select_build_strategy(version: str, source_path: Path) -> BuildStrategy:
    """Pick the ordered build commands for ``version``.

    Raises ``VersionUnsupported`` for versions outside every known lineage.
    """
    spec = classify(version)
    profile = resolve(version)
    steps_for = _STEPS_BY_COMPILER.get(profile.compiler)
    if profile.is_empty or steps_for is None:
        raise VersionUnsupported(version)

    paths = build_paths(source_path, version)
    strategy = BuildStrategy(
        version=version,
        lineage=spec.lineage,
        compiler=profile.compiler,
        paths=paths,
        steps=steps_for(paths),
        required_tools=profile.required_tools,
    )
    if profile.experimental:
        _log.warning("version %s uses experimental lineage %s", version, spec.lineage.value)
    _log.debug("version %s -> %s with %d steps", version, spec.lineage.value, len(strategy.steps))
    return strategy
