from .base import Deployer, DeployRequest, DeployResult
from .binaries import BinaryInfo, architecture_from_filename, find_binaries
from .local import LocalDirectoryDeployer

__all__ = [
    "Deployer",
    "DeployRequest",
    "DeployResult",
    "BinaryInfo",
    "architecture_from_filename",
    "find_binaries",
    "LocalDirectoryDeployer",
]
