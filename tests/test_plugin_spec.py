import pytest

from twbuild.core.errors import ErrorKind, InvalidPluginSpec
from twbuild.core.patching.models import PluginSpec


def test_name_and_range_derived_from_dependency_line():
    p = PluginSpec.build('"daisyui": "^4.12.23"', require_statement="'daisyui': require('daisyui')")
    assert p.name == "daisyui"
    assert p.version_range == "^4.12.23"
    assert p.require_statement == "'daisyui': require('daisyui')"
    assert p.subpaths == ()


def test_scoped_plugin_name():
    p = PluginSpec.build('"@tailwindcss/typography": "^0.5.10"', subpaths=("src/index",))
    assert p.name == "@tailwindcss/typography"
    assert p.subpaths == ("src/index",)


@pytest.mark.parametrize(
    "line",
    [
        "daisyui",
        "daisyui: ^4.12.23",
        '"": "^1.0.0"',
        '"bad name": "1.0.0"',
        '"daisyui" "^4"',
    ],
)
def test_invalid_dependency_line_raises_typed_error(line):
    with pytest.raises(InvalidPluginSpec) as ei:
        PluginSpec.build(line)
    assert ei.value.kind == ErrorKind.INVALID_PLUGIN_SPEC
    assert ei.value.to_dict()["kind"] == "InvalidPluginSpec"


def test_invalid_subpath_rejected():
    with pytest.raises(InvalidPluginSpec):
        PluginSpec.build('"daisyui": "^5.0.0"', subpaths=("/abs",))


def test_from_mapping_accepts_catalog_shape():
    p = PluginSpec.from_mapping(
        {
            "version": '"daisyui": "^5.0.49"',
            "subpaths": ["theme", "theme"],
            "description": "ignored",
        }
    )
    assert p.name == "daisyui"
    assert p.require_statement is None
    assert p.subpaths == ("theme",)


def test_from_mapping_without_line():
    with pytest.raises(InvalidPluginSpec):
        PluginSpec.from_mapping({"statement": "x"})


def test_spec_is_frozen():
    p = PluginSpec.build('"daisyui": "^4.12.23"')
    with pytest.raises(Exception):
        p.name = "other"  # type: ignore[misc]
