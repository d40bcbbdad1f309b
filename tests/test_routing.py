from pathlib import Path

import pytest

from twbuild.core.capabilities import CompilerKind, Lineage
from twbuild.core.errors import ErrorKind, VersionUnsupported
from twbuild.core.routing import select_build_strategy


def test_legacy_strategy_is_npm_four_steps(tmp_path):
    s = select_build_strategy("3.4.17", tmp_path)

    assert s.lineage == Lineage.LEGACY
    assert s.compiler == CompilerKind.NPM
    assert s.step_names() == ["root_install", "root_build", "standalone_install", "standalone_build"]
    assert [st.argv for st in s.steps] == [
        ("npm", "install"),
        ("npm", "run", "build"),
        ("npm", "install"),
        ("npm", "run", "build"),
    ]

    root = tmp_path / "tailwindcss-3.4.17"
    assert [st.cwd for st in s.steps] == [root, root, root / "standalone-cli", root / "standalone-cli"]
    assert s.paths.dist_dir == root / "standalone-cli" / "dist"
    assert s.required_tools == ("npm", "node")


def test_modern_strategy_is_pnpm_workspace(tmp_path):
    s = select_build_strategy("4.1.11", tmp_path)

    assert s.compiler == CompilerKind.RUST
    assert s.step_names() == ["workspace_install", "workspace_build", "standalone_build"]
    assert s.steps[0].argv == ("pnpm", "install", "--no-frozen-lockfile")

    standalone = tmp_path / "tailwindcss-4.1.11" / "packages" / "@tailwindcss-standalone"
    assert s.steps[-1].cwd == standalone
    assert s.paths.dist_dir == standalone / "dist"
    assert "pnpm" in s.required_tools


def test_experimental_lineage_warns(tmp_path, caplog):
    with caplog.at_level("WARNING", logger="twbuild.router"):
        s = select_build_strategy("5.0.0", tmp_path)
    assert s.lineage == Lineage.FUTURE_A
    assert "experimental" in caplog.text


@pytest.mark.parametrize("version", ["999.0.0", "banana", ""])
def test_unsupported_version_raises(version):
    with pytest.raises(VersionUnsupported) as ei:
        select_build_strategy(version, Path("/tmp/unused"))
    assert ei.value.kind == ErrorKind.VERSION_UNSUPPORTED


def test_describe_step(tmp_path):
    s = select_build_strategy("3.4.17", tmp_path)
    assert s.steps[0].describe().startswith("npm install (in ")


def test_prefixed_version_uses_plain_source_dir(tmp_path):
    s = select_build_strategy(" v4.1.11 ", tmp_path)
    assert s.paths.root == tmp_path / "tailwindcss-4.1.11"
    assert s.steps[0].cwd == tmp_path / "tailwindcss-4.1.11"
