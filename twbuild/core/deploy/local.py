from __future__ import annotations

import json
import logging
import shutil
from pathlib import Path
from typing import Dict, List, Optional

from ..errors import DeployFailed
from ..patching.atomic import atomic_write_text
from .base import Deployer, DeployRequest, DeployResult
from .binaries import BinaryInfo, validate_binaries
from .manifest import deployment_manifest

_log = logging.getLogger("twbuild.deploy")

MANIFEST_NAME = "deploy_manifest.json"


class LocalDirectoryDeployer(Deployer):
    """Publishes into ``<dest_root>/<bucket>/<prefix>/<version>/``.

    Stands in for an object store: keys map to relative paths under the bucket.
    """

    name = "local"

    def __init__(self, dest_root: Path, *, host_arch: Optional[str] = None):
        self.dest_root = Path(dest_root)
        self.host_arch = host_arch

    def _bucket_dir(self, bucket: str) -> Path:
        return self.dest_root / bucket

    def deploy(self, request: DeployRequest) -> DeployResult:
        if not request.bucket:
            raise DeployFailed("deploy target has no bucket configured", details={"version": request.version})
        if not request.binaries:
            raise DeployFailed("no binaries to deploy", details={"source_dir": str(request.source_dir)})

        infos: List[BinaryInfo] = []
        for p in request.binaries:
            try:
                infos.append(BinaryInfo.from_path(Path(p)))
            except FileNotFoundError as e:
                raise DeployFailed(f"binary not found: {p}", details={"path": str(p)}) from e

        problems = validate_binaries(infos)
        if problems:
            raise DeployFailed("binary validation failed", details={"problems": problems})

        bucket_dir = self._bucket_dir(request.bucket)
        keys: Dict[str, str] = {}
        result = DeployResult(target=self.name, version=request.version)

        for info in infos:
            key = request.key_for(info.filename)
            dest = bucket_dir / key
            try:
                dest.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(info.path, dest)
            except OSError as e:
                _log.error("failed to publish %s: %s", info.filename, e)
                raise DeployFailed(
                    f"failed to publish {info.filename}",
                    details={"key": key, "error": str(e), "published": [f["key"] for f in result.files]},
                ) from e
            keys[info.filename] = key
            entry = info.to_dict()
            entry["key"] = key
            result.files.append(entry)
            _log.info("published %s -> %s/%s", info.filename, request.bucket, key)

        manifest = deployment_manifest(request.version, infos, keys=keys, host_arch=self.host_arch)
        manifest_key = request.key_for(MANIFEST_NAME)
        atomic_write_text(bucket_dir / manifest_key, json.dumps(manifest, indent=2, sort_keys=True) + "\n")
        result.manifest_key = manifest_key
        return result
