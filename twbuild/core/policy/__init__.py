from .engine import PolicyEngine
from .builtin import (
    policy_cross_compile_supported,
    policy_plugin_in_catalog,
    policy_target_allowed,
    policy_version_not_blocked,
    policy_version_not_deprecated,
)

DEFAULT_POLICY_ENGINE = PolicyEngine(
    policies=[
        policy_version_not_blocked,
        policy_version_not_deprecated,
        policy_plugin_in_catalog,
        policy_cross_compile_supported,
        policy_target_allowed,
    ]
)
