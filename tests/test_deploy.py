import json
from pathlib import Path

import pytest

from twbuild.core.deploy import DeployRequest, LocalDirectoryDeployer, architecture_from_filename, find_binaries
from twbuild.core.deploy.binaries import filter_for_host, sha256_file
from twbuild.core.deploy.local import MANIFEST_NAME
from twbuild.core.errors import DeployFailed, ErrorKind


@pytest.mark.parametrize(
    "filename,arch",
    [
        ("tailwindcss-linux-x64", "linux-x64"),
        ("tailwindcss-linux-arm64", "linux-arm64"),
        ("tailwindcss-linux-aarch64-musl", "linux-arm64"),
        ("tailwindcss-linux-armv7", "linux-arm"),
        ("tailwindcss-macos-arm64", "darwin-arm64"),
        ("tailwindcss-darwin-x64", "darwin-x64"),
        ("tailwindcss-windows-x64.exe", "win32-x64"),
        ("tailwindcss-win32-arm64.exe", "win32-arm64"),
        ("tailwindcss-freebsd-x64", "freebsd-x64"),
        ("tailwindcss", "unknown"),
    ],
)
def test_architecture_from_filename(filename, arch):
    assert architecture_from_filename(filename) == arch


def _dist(tmp_path: Path, *names: str) -> Path:
    d = tmp_path / "dist"
    d.mkdir()
    for n in names:
        (d / n).write_bytes(b"binary:" + n.encode("utf-8"))
    (d / "README.txt").write_text("not a binary", encoding="utf-8")
    return d


def test_find_binaries_only_picks_tailwind_outputs(tmp_path):
    d = _dist(tmp_path, "tailwindcss-macos-arm64", "tailwindcss-linux-x64")
    found = find_binaries(d)
    assert [b.filename for b in found] == ["tailwindcss-linux-x64", "tailwindcss-macos-arm64"]
    assert [b.filename for b in filter_for_host(found, "linux-x64")] == ["tailwindcss-linux-x64"]
    assert find_binaries(tmp_path / "missing") == []


def test_local_deployer_publishes_with_manifest(tmp_path):
    d = _dist(tmp_path, "tailwindcss-linux-x64", "tailwindcss-macos-arm64")
    bins = [b.path for b in find_binaries(d)]
    dest = tmp_path / "bucket-root"

    req = DeployRequest(source_dir=d, version="3.4.17", bucket="defdo", prefix="tailwind_cli_daisyui", binaries=bins)
    res = LocalDirectoryDeployer(dest, host_arch="linux-x64").deploy(req)

    assert res.manifest_key == "tailwind_cli_daisyui/3.4.17/deploy_manifest.json"
    assert [f["key"] for f in res.files] == [
        "tailwind_cli_daisyui/3.4.17/tailwindcss-linux-x64",
        "tailwind_cli_daisyui/3.4.17/tailwindcss-macos-arm64",
    ]

    published = dest / "defdo" / "tailwind_cli_daisyui" / "3.4.17"
    assert (published / "tailwindcss-linux-x64").read_bytes() == b"binary:tailwindcss-linux-x64"

    manifest = json.loads((published / MANIFEST_NAME).read_text(encoding="utf-8"))
    assert manifest["version"] == "3.4.17"
    assert manifest["compiler"] == "npm"
    assert manifest["total_files"] == 2
    by_name = {f["filename"]: f for f in manifest["files"]}
    assert by_name["tailwindcss-linux-x64"]["sha256"] == sha256_file(d / "tailwindcss-linux-x64")
    assert by_name["tailwindcss-macos-arm64"]["architecture"] == "darwin-arm64"


def test_key_for_handles_empty_prefix():
    req = DeployRequest(source_dir=Path("."), version="4.1.11", bucket="b", prefix="")
    assert req.key_for("tailwindcss-linux-x64") == "4.1.11/tailwindcss-linux-x64"


def test_deploy_failures_are_typed(tmp_path):
    dep = LocalDirectoryDeployer(tmp_path / "out")
    d = _dist(tmp_path, "tailwindcss-linux-x64")

    with pytest.raises(DeployFailed) as ei:
        dep.deploy(DeployRequest(source_dir=d, version="3.4.17", bucket="", prefix="p", binaries=[d / "x"]))
    assert ei.value.kind == ErrorKind.DEPLOY_FAILED

    with pytest.raises(DeployFailed):
        dep.deploy(DeployRequest(source_dir=d, version="3.4.17", bucket="b", prefix="p"))

    with pytest.raises(DeployFailed):
        dep.deploy(
            DeployRequest(source_dir=d, version="3.4.17", bucket="b", prefix="p", binaries=[d / "tailwindcss-gone"])
        )

    (d / "tailwindcss-empty").write_bytes(b"")
    with pytest.raises(DeployFailed) as ei:
        dep.deploy(
            DeployRequest(source_dir=d, version="3.4.17", bucket="b", prefix="p", binaries=[d / "tailwindcss-empty"])
        )
    assert ei.value.details["problems"] == ["tailwindcss-empty: empty file"]
