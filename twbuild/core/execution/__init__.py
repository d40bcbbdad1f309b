from .builder import Builder, BuildResult
from .runner import CommandResult, CommandRunner, SubprocessRunner

__all__ = ["Builder", "BuildResult", "CommandResult", "CommandRunner", "SubprocessRunner"]
