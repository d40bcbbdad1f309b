from .strategy import BuildPaths, BuildStep, BuildStrategy, build_paths, select_build_strategy

__all__ = ["BuildPaths", "BuildStep", "BuildStrategy", "build_paths", "select_build_strategy"]
