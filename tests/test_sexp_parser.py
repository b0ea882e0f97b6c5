import pytest

from marmalade_api.elisp.sexp import Symbol
from marmalade_api.elisp.sexp_parser import Parser, parse
from marmalade_api.errors import PackageSyntaxError, SexpSyntaxError


def test_parses_nested_lists_of_symbols_and_strings():
    value = parse('((bar "0.1") (baz "1.2.3"))')

    assert value == [["bar", "0.1"], ["baz", "1.2.3"]]
    assert isinstance(value[0][0], Symbol)
    assert not isinstance(value[0][1], Symbol)


def test_numbers_need_a_decimal_point():
    assert parse("1.5") == 1.5
    assert parse(".5") == 0.5
    with pytest.raises(SexpSyntaxError):
        parse("(1 2)")


def test_comments_and_whitespace_separate_tokens():
    value = parse("; leading comment\n(a ; inline\n  b\n\t c)")

    assert value == ["a", "b", "c"]


def test_string_escapes():
    assert parse(r'"say \"hi\" \\ there"') == 'say "hi" \\ there'
    assert parse('"line \\\ncontinued"') == "line continued"


def test_symbol_escapes():
    value = parse(r"foo\ bar")

    assert isinstance(value, Symbol)
    assert value == "foo bar"


def test_trailing_input_is_left_unparsed():
    parser = Parser("(a b) (c d)")

    assert parser.parse() == ["a", "b"]
    assert parser.remaining == " (c d)"
    assert not parser.at_end()
    assert parser.parse() == ["c", "d"]
    assert parser.at_end()


def test_unclosed_list_reports_expected_token():
    with pytest.raises(SexpSyntaxError) as excinfo:
        parse('(a "b"')

    assert excinfo.value.expected == "')'"
    assert excinfo.value.remaining == ""
    assert isinstance(excinfo.value, PackageSyntaxError)


def test_empty_input_is_an_error():
    with pytest.raises(SexpSyntaxError) as excinfo:
        parse("   ; nothing here")

    assert "expected an expression" in excinfo.value.message
