import json

import pytest

from twbuild.core.config import DefaultConfigProvider, VersionPolicy
from twbuild.core.config.loader import load_overrides
from twbuild.core.config.models import ConfigOverrides
from twbuild.core.errors import InvalidPluginSpec
from twbuild.core.policy import DEFAULT_POLICY_ENGINE
from twbuild.core.policy.models import Decision, PolicyStatus


def _provider(**overrides):
    return DefaultConfigProvider(overrides=ConfigOverrides(**overrides), host_arch="linux-x64")


def test_operation_limits_defaults(monkeypatch):
    for k in ("TWBUILD_BUILD_TIMEOUT_SECONDS", "TWBUILD_DOWNLOAD_TIMEOUT_SECONDS", "TWBUILD_MAX_CONCURRENT_BUILDS"):
        monkeypatch.delenv(k, raising=False)
    limits = _provider().operation_limits()
    assert limits.build_timeout_seconds == 900.0
    assert limits.download_timeout_seconds == 300.0
    assert limits.max_concurrent_builds == 3
    assert limits.max_file_size_bytes == 200_000_000


def test_operation_limits_from_env(monkeypatch):
    monkeypatch.setenv("TWBUILD_BUILD_TIMEOUT_SECONDS", "42")
    monkeypatch.setenv("TWBUILD_MAX_CONCURRENT_BUILDS", "not-a-number")
    limits = _provider().operation_limits()
    assert limits.build_timeout_seconds == 42.0
    assert limits.max_concurrent_builds == 3


def test_builtin_catalog_and_plugin_spec():
    p = _provider()
    assert set(p.supported_plugins()) >= {"daisyui", "daisyui_v5"}

    spec = p.plugin_spec("daisyui_v5")
    assert spec.name == "daisyui"
    assert spec.subpaths == ("theme",)

    with pytest.raises(InvalidPluginSpec):
        p.plugin_spec("nope")


def test_version_policy():
    p = _provider(blocked_versions=["3.3.0"])
    assert p.version_policy("3.3.0") == VersionPolicy.BLOCKED
    assert p.version_policy("2.2.19") == VersionPolicy.DEPRECATED
    assert p.version_policy("4.1.11") == VersionPolicy.ALLOWED
    assert p.build_policies()["3.4.17"] == VersionPolicy.ALLOWED


def test_decide_blocks_configured_version():
    d = _provider(blocked_versions=["3.4.17"]).decide("download", {"version": "3.4.17"})
    assert d.decision == Decision.BLOCK
    assert d.blocked
    assert "blocked" in d.reason


def test_decide_warns_for_deprecated_version():
    d = _provider().decide("download", {"version": "2.2.19"})
    assert d.decision == Decision.WARN
    assert d.results[0]["code"] == "VERSION_DEPRECATED"


def test_decide_blocks_unknown_plugin():
    p = _provider()
    assert p.decide("plugin_install", {"version": "3.4.17", "plugin": "daisyui"}).decision == Decision.ALLOW
    d = p.decide("plugin_install", {"version": "3.4.17", "plugin": "shady"})
    assert d.decision == Decision.BLOCK
    assert d.results[0]["code"] == "PLUGIN_NOT_ALLOWED"


def test_decide_blocks_cross_compile_for_host_only_lineage():
    p = _provider()
    d = p.decide("build", {"version": "4.1.11", "target_arch": "darwin-arm64"})
    assert d.decision == Decision.BLOCK
    assert d.results[0]["code"] == "CROSS_COMPILE_UNSUPPORTED"

    assert p.decide("build", {"version": "4.1.11", "target_arch": "linux-x64"}).decision == Decision.ALLOW
    assert p.decide("build", {"version": "3.4.17", "target_arch": "darwin-arm64"}).decision == Decision.ALLOW


def test_target_allow_list():
    p = _provider(targets=["linux-x64"])
    d = p.decide("build", {"version": "3.4.17", "target_arch": "win32-x64"})
    assert d.results[0]["code"] == "TARGET_NOT_ALLOWED"


def test_policy_engine_decide_precedence():
    results = DEFAULT_POLICY_ENGINE.evaluate(
        {"operation": "download", "version": "2.0.0", "blocked_versions": ["2.0.0"], "deprecated_before": "3.0.0"}
    )
    assert {r.status for r in results} == {PolicyStatus.FAIL, PolicyStatus.WARN}
    assert DEFAULT_POLICY_ENGINE.decide(results) == Decision.BLOCK
    assert DEFAULT_POLICY_ENGINE.is_blocking(results)


def test_load_overrides_json(tmp_path):
    f = tmp_path / "twbuild.json"
    f.write_text(
        json.dumps(
            {
                "plugins": {
                    "typography": {
                        "version": '"@tailwindcss/typography": "^0.5.10"',
                        "statement": "'@tailwindcss/typography': require('@tailwindcss/typography')",
                    }
                },
                "blocked_versions": ["3.3.0"],
            }
        ),
        encoding="utf-8",
    )
    o = load_overrides(f)
    assert o.blocked_versions == ["3.3.0"]

    p = DefaultConfigProvider(config_file=f, host_arch="linux-x64")
    assert p.plugin_spec("typography").name == "@tailwindcss/typography"
    assert "daisyui" in p.supported_plugins()


def test_load_overrides_yaml_from_env(tmp_path, monkeypatch):
    f = tmp_path / "twbuild.yaml"
    f.write_text("deprecated_before: '3.2.0'\ntargets:\n  - linux-x64\n", encoding="utf-8")
    monkeypatch.setenv("TWBUILD_CONFIG_FILE", str(f))

    p = DefaultConfigProvider(host_arch="linux-x64")
    assert p.deprecated_before() == "3.2.0"
    assert p.overrides.targets == ["linux-x64"]


@pytest.mark.parametrize("text", ["plugins: [unclosed", "- just\n- a list\n", "blocked_versions: 7\n"])
def test_bad_override_files_are_ignored(tmp_path, caplog, text):
    f = tmp_path / "bad.yaml"
    f.write_text(text, encoding="utf-8")
    with caplog.at_level("WARNING", logger="twbuild.config"):
        o = load_overrides(f)
    assert o == ConfigOverrides()
    assert caplog.records


def test_missing_override_file_is_empty(tmp_path, monkeypatch):
    monkeypatch.delenv("TWBUILD_CONFIG_FILE", raising=False)
    assert load_overrides(tmp_path / "absent.yaml") == ConfigOverrides()
    assert load_overrides() == ConfigOverrides()
