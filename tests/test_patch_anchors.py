import pytest

from twbuild.core.patching.anchors import (
    InsertMode,
    PatchAnchor,
    SplitAmbiguous,
    SplitFound,
    SplitNotFound,
    split_once,
)


def test_split_once_found():
    r = split_once("a = {\n  x\n}\n", "= {\n")
    assert r == SplitFound(prefix="a ", match="= {\n", suffix="  x\n}\n")


def test_split_once_not_found_and_ambiguous():
    assert isinstance(split_once("abc", "z"), SplitNotFound)
    r = split_once("x-x-x", "x")
    assert isinstance(r, SplitAmbiguous)
    assert r.occurrences == 3


def test_split_once_is_literal_not_regex():
    # regex metacharacters are matched literally
    r = split_once("if (/(\\/)?foo$/.test(id))", "(\\/)?foo$")
    assert isinstance(r, SplitFound)
    assert isinstance(split_once("foo", "f.o"), SplitNotFound)


def test_split_once_rejects_empty_anchor():
    with pytest.raises(ValueError):
        split_once("abc", "")


def test_insert_after_with_delimiter_and_spacer():
    a = PatchAnchor(text="let m = {\n", mode=InsertMode.AFTER, trailing_delimiter=True, spacer="  ")
    out = a.apply("let m = {\n  'a': 1,\n}\n", "'b': 2")
    assert out == "let m = {\n  'b': 2,\n  'a': 1,\n}\n"
    assert a.is_applied(out, "'b': 2")
    assert not a.is_applied(out, "'c': 3")


def test_insert_before():
    a = PatchAnchor(text="  switch (id) {", mode=InsertMode.BEFORE)
    out = a.apply("fn {\n  switch (id) {\n  }\n}", "  if (x) { return id }")
    assert out == "fn {\n  if (x) { return id }\n  switch (id) {\n  }\n}"


def test_insert_without_line_break():
    a = PatchAnchor(text="return 1", mode=InsertMode.AFTER, line_break=False)
    assert a.apply("x\nreturn 1\ny", "\nreturn 2") == "x\nreturn 1\nreturn 2\ny"


def test_apply_returns_failed_split_unchanged():
    a = PatchAnchor(text="missing")
    assert isinstance(a.apply("content", "frag"), SplitNotFound)
    a = PatchAnchor(text="x")
    assert isinstance(a.apply("x x", "frag"), SplitAmbiguous)
