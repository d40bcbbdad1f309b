from .models import DeploymentTarget, OperationLimits, PluginEntry, PolicyDecision, VersionPolicy
from .provider import ConfigProvider, DefaultConfigProvider

__all__ = [
    "ConfigProvider",
    "DefaultConfigProvider",
    "DeploymentTarget",
    "OperationLimits",
    "PluginEntry",
    "PolicyDecision",
    "VersionPolicy",
]
