import pytest

from marmalade_api.elisp.sexp import (
    Cons,
    Keyword,
    SexpConversionError,
    Symbol,
    Vector,
    alist,
    archive_contents,
    archive_entry,
    serialize,
)
from marmalade_api.elisp.sexp_parser import parse


def test_native_values():
    assert serialize(None) == "nil"
    assert serialize(True) == "t"
    assert serialize(False) == "nil"
    assert serialize(3) == "3"
    assert serialize(1.5) == "1.5"
    assert serialize('a "quoted" \\ path') == '"a \\"quoted\\" \\\\ path"'
    assert serialize(["a", ("b", None)]) == '("a" ("b" nil))'
    assert serialize([]) == "()"


def test_tagged_values():
    assert serialize(Symbol("foo")) == "foo"
    assert serialize(Symbol("has space")) == "has\\ space"
    assert serialize(Keyword("key")) == ":key"
    assert serialize(Vector((1, "two"))) == '[1 "two"]'
    assert serialize(Cons(Symbol("name"), "value")) == '(name . "value")'


def test_unconvertible_value_is_named():
    with pytest.raises(SexpConversionError) as excinfo:
        serialize({"a": 1})

    assert "{'a': 1}" in str(excinfo.value)


def test_round_trip_through_the_parser():
    value = ["foo", 1.5, [Symbol("bar"), "0.1"], True, None]

    parsed = parse(serialize(value))

    assert parsed == ["foo", 1.5, ["bar", "0.1"], "t", "nil"]


def test_alist_nests_mappings():
    rendered = serialize(alist({"message": "Got foo", "package": {"name": "foo", "owners": ["a"]}}))

    assert rendered == '((message . "Got foo") (package . ((name . "foo") (owners . ("a")))))'


def test_archive_contents_listing():
    entry = archive_entry("foo", (1, 2), [("bar", (0, 1))], "A test package", "single")

    assert archive_contents([entry]) == '(1 (foo . [(1 2) ((bar (0 1))) "A test package" single]))'
    assert archive_contents([]) == "(1)"
