from twbuild.core.errors import ErrorKind
from twbuild.core.patching import (
    PatchStatus,
    PluginSpec,
    apply_plugin,
    plugin_already_applied,
    plugin_compatibility,
)

DAISY = PluginSpec.build('"daisyui": "^4.12.23"', require_statement="'daisyui': require('daisyui')")


def _files(root, version="3.4.17"):
    base = root / f"tailwindcss-{version}" / "standalone-cli"
    return base / "package.json", base / "standalone.js"


def test_legacy_plugin_patches_manifest_and_stub(legacy_tree):
    root = legacy_tree()
    report = apply_plugin(DAISY, "3.4.17", root)

    assert report.ok
    assert report.lineage == "legacy"
    assert [f.target for f in report.files] == ["package.json", "standalone.js"]
    assert report.status_of("package.json") == PatchStatus.PATCHED
    assert report.status_of("standalone.js") == PatchStatus.PATCHED

    manifest, stub = _files(root)
    assert '"daisyui": "^4.12.23"' in manifest.read_text(encoding="utf-8")
    assert "let localModules = {\n  'daisyui': require('daisyui'),\n  'tailwindcss/colors'" in stub.read_text(
        encoding="utf-8"
    )


def test_reapplying_is_noop(legacy_tree):
    root = legacy_tree()
    apply_plugin(DAISY, "3.4.17", root)
    manifest, stub = _files(root)
    snapshot = (manifest.read_bytes(), stub.read_bytes())

    report = apply_plugin(DAISY, "3.4.17", root)

    assert report.ok
    assert report.already_patched
    assert (manifest.read_bytes(), stub.read_bytes()) == snapshot
    assert plugin_already_applied(DAISY, "3.4.17", root)


def test_missing_statement_fails_on_stub_only(legacy_tree):
    root = legacy_tree()
    bare = PluginSpec.build('"daisyui": "^4.12.23"')
    _, stub = _files(root)
    before = stub.read_bytes()

    report = apply_plugin(bare, "3.4.17", root)

    assert report.status_of("package.json") == PatchStatus.PATCHED
    assert report.status_of("standalone.js") == PatchStatus.FAILED
    assert report.first_error.error_kind == ErrorKind.INVALID_PLUGIN_SPEC
    assert stub.read_bytes() == before


def test_missing_stub_file_reported(legacy_tree):
    root = legacy_tree()
    _, stub = _files(root)
    stub.unlink()

    report = apply_plugin(DAISY, "3.4.17", root)
    assert report.status_of("standalone.js") == PatchStatus.FAILED
    assert report.first_error.error_kind == ErrorKind.FILE_NOT_FOUND


def test_unsupported_version_is_typed(tmp_path):
    report = apply_plugin(DAISY, "999.0.0", tmp_path)
    assert report.ok is False
    assert report.error_kind == ErrorKind.VERSION_UNSUPPORTED
    assert report.files == []


def test_plugin_compatibility():
    info = plugin_compatibility(DAISY, "3.4.17")
    assert info["compatible"] is True
    assert info["dependency_section"] == "devDependencies"
    assert info["files"] == ["package.json", "standalone.js"]

    bare = PluginSpec.build('"daisyui": "^4.12.23"')
    assert plugin_compatibility(bare, "3.4.17")["reason"] == "require_statement_missing"
    assert plugin_compatibility(bare, "4.1.11")["compatible"] is True
    assert plugin_compatibility(DAISY, "999.0.0")["compatible"] is False


def test_undecodable_stub_fails_with_typed_kind(legacy_tree):
    root = legacy_tree()
    _, stub = _files(root)
    stub.write_bytes(b"let localModules = {\n  'caf\xe9': 1,\n}\n")

    report = apply_plugin(DAISY, "3.4.17", root)

    assert not report.ok
    assert report.status_of("package.json") == PatchStatus.PATCHED
    assert report.status_of("standalone.js") == PatchStatus.FAILED
    assert report.first_error.error_kind == ErrorKind.FILE_UNREADABLE


def test_write_error_is_reported_not_raised(legacy_tree, monkeypatch):
    root = legacy_tree()
    manifest, stub = _files(root)
    before = (manifest.read_bytes(), stub.read_bytes())

    def denied(path, content):
        raise PermissionError(13, "Permission denied", str(path))

    monkeypatch.setattr("twbuild.core.patching.engine.atomic_write_text", denied)
    report = apply_plugin(DAISY, "3.4.17", root)

    assert report.status_of("package.json") == PatchStatus.FAILED
    assert report.status_of("standalone.js") == PatchStatus.FAILED
    assert report.first_error.error_kind == ErrorKind.PATCH_FAILED
    assert (manifest.read_bytes(), stub.read_bytes()) == before


def test_version_with_whitespace_and_prefix_finds_sources(legacy_tree):
    root = legacy_tree()
    assert apply_plugin(DAISY, " v3.4.17 ", root).ok
    assert plugin_already_applied(DAISY, "3.4.17", root)
