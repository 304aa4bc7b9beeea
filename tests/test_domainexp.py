import io

import pytest

from ddnskit.domainexp import (
    DomainExpressionError,
    parse_expression,
    to_ascii,
    tokenize,
)
from ddnskit.pp import PP


def _parse(text):
    buf = io.StringIO()
    pred = parse_expression(PP(buf), text)
    return pred, buf.getvalue()


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("a", ["a"]),
        (" a ,  b ", ["a", ",", "b"]),
        (" a ,  b ,,,,,, c ", ["a", ",", "b", ",", ",", ",", ",", ",", ",", "c"]),
        (" a b c d ", ["a", "b", "c", "d"]),
        ("!(a)&&b||c", ["!", "(", "a", ")", "&&", "b", "||", "c"]),
        ("", []),
    ],
)
def test_tokenize(text, expected):
    assert tokenize(text) == expected


@pytest.mark.parametrize(
    ("text", "message"),
    [
        ("&", 'use "&&" instead of "&"'),
        ("true & true", 'use "&&" instead of "&"'),
        ("false |", 'use "||" instead of "|"'),
    ],
)
def test_tokenize_errors(text, message):
    with pytest.raises(DomainExpressionError) as info:
        tokenize(text)
    assert str(info.value) == message


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("☕.de", "xn--53h.de"),
        ("Xn--53H.de", "xn--53h.de"),
        ("*.Xn--53H.de", "*.xn--53h.de"),
        ("Example.COM", "example.com"),
    ],
)
def test_to_ascii(name, expected):
    assert to_ascii(name) == expected


@pytest.mark.parametrize(
    ("text", "name", "expected"),
    [
        ("true", "", True),
        ("f", "", False),
        ("t && 0", "", False),
        ("F || 1", "", True),
        ("is(example.com)", "example.com", True),
        ("is(example.com)", "sub.example.com", False),
        ("is(example.org)", "example.com", False),
        ("is(example.com)", "*.example.com", False),
        ("is(*.example.com)", "*.example.com", True),
        ("is(*.example.com)", "example.com", False),
        ("is(☕.de)", "xn--53h.de", True),
        ("is(Xn--53H.de)", "xn--53h.de", True),
        ("is(*.Xn--53H.de)", "*.xn--53h.de", True),
        ("sub(example.com)", "example.com", False),
        ("sub(example.com)", "*.example.com", True),
        ("sub(example.com)", "sub.example.com", True),
        ("sub(example.com)", "subexample.com", False),
        ("sub(☕.de)", "www.xn--53h.de", True),
        ("sub(Xn--53H.de)", "www.xn--53h.de", True),
        ("sub(Xn--53H.de)", "*.xn--53h.de", True),
        ("!0", "", True),
        ("!!!!!!!!!!!0", "", True),
        ("((true)||(false))&&((false)||(true))", "", True),
        ("is(a, b, c)", "b", True),
        ("is(a ,  b ,,,,,, c)", "c", True),
    ],
)
def test_parse_expression(text, name, expected):
    pred, output = _parse(text)
    assert output == ""
    assert pred(name) is expected


@pytest.mark.parametrize(
    ("text", "message"),
    [
        ("", 'Failed to parse "": wanted a boolean expression; reached end of string'),
        ("t &&", 'Failed to parse "t &&": wanted a boolean expression; reached end of string'),
        ("true & true", 'Failed to parse "true & true": use "&&" instead of "&"'),
        ("true &", 'Failed to parse "true &": use "&&" instead of "&"'),
        ("&", 'Failed to parse "&": use "&&" instead of "&"'),
        ("F ||", 'Failed to parse "F ||": wanted a boolean expression; reached end of string'),
        ("false | false", 'Failed to parse "false | false": use "||" instead of "|"'),
        ("false |", 'Failed to parse "false |": use "||" instead of "|"'),
        ("is)", 'Failed to parse "is)": wanted "("; got ")"'),
        ("is(&&", 'Failed to parse "is(&&": unexpected token "&&"'),
        ("!(", 'Failed to parse "!(": wanted a boolean expression; reached end of string'),
        ("((", 'Failed to parse "((": wanted a boolean expression; reached end of string'),
        ("(true", 'Failed to parse "(true": wanted ")"; reached end of string'),
        ("0 1", 'Failed to parse "0 1": unexpected token "1"'),
        ("hello", 'Failed to parse "hello": wanted a boolean expression; got "hello"'),
    ],
)
def test_parse_expression_errors(text, message):
    pred, output = _parse(text)
    assert pred is None
    assert output == f"😡 {message}\n"


def test_missing_commas_warn_but_parse():
    pred, output = _parse("is(a b c d)")
    assert output == (
        '😡 Please insert a comma "," before "b"\n'
        '😡 Please insert a comma "," before "c"\n'
        '😡 Please insert a comma "," before "d"\n'
    )
    assert pred("d") is True
    assert pred("e") is False


def test_and_binds_tighter_than_or():
    pred, _ = _parse("is(a) || is(b) && is(c)")
    assert pred("a") is True
    assert pred("b") is False