from .anchors import InsertMode, PatchAnchor, SplitAmbiguous, SplitFound, SplitNotFound, split_once
from .models import FileOutcome, PatchReport, PatchStatus, PluginSpec
from .engine import apply_plugin, plugin_already_applied, plugin_compatibility, standalone_root

__all__ = [
    "InsertMode",
    "PatchAnchor",
    "SplitAmbiguous",
    "SplitFound",
    "SplitNotFound",
    "split_once",
    "FileOutcome",
    "PatchReport",
    "PatchStatus",
    "PluginSpec",
    "apply_plugin",
    "plugin_already_applied",
    "plugin_compatibility",
    "standalone_root",
]
