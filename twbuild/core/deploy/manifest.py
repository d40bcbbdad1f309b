from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ..capabilities.matrix import compilation_details
from .binaries import BinaryInfo


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def deployment_manifest(
    version: str,
    binaries: List[BinaryInfo],
    *,
    keys: Optional[Dict[str, str]] = None,
    host_arch: Optional[str] = None,
) -> Dict[str, Any]:
    details = compilation_details(version, host_arch)
    keys = keys or {}
    files = []
    for b in sorted(binaries, key=lambda x: x.filename):
        entry = b.to_dict()
        entry["key"] = keys.get(b.filename)
        files.append(entry)

    return {
        "kind": "deployment_manifest",
        "version": version,
        "timestamp": _utc_now_iso(),
        "compiler": details.compiler.value,
        "host_architecture": details.host_architecture,
        "total_files": len(files),
        "files": files,
        "metadata": {
            "cross_compilation_available": details.cross_compilation_available,
            "supported_targets": list(details.supported_targets),
            "limitations": list(details.limitations),
        },
    }
