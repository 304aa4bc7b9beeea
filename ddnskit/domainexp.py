"""Boolean expressions over domain names, e.g. ``is(a.org) || sub(b.org)``.

Grammar::

    <expression> --> <term> "||" <expression> | <term>
    <term>       --> <factor> "&&" <term> | <factor>
    <factor>     --> true | false | is(<list>) | sub(<list>)
                   | ! <factor> | ( <expression> )
"""

from __future__ import annotations

import encodings.idna
import json
from collections.abc import Callable

from ddnskit.pp import PP, Emoji

Predicate = Callable[[str], bool]

_TRUE = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE = frozenset({"0", "f", "F", "FALSE", "false", "False"})
_PUNCTUATION = "(),!"
_DELIMITERS = "(),!&|"
_NOT_IN_LIST = frozenset({"(", "&&", "||", "!"})


class DomainExpressionError(ValueError):
    """A domain expression could not be tokenized or parsed."""


def _quote(text: str) -> str:
    return json.dumps(text, ensure_ascii=False)


def tokenize(text: str) -> list[str]:
    """Split ``text`` into tokens; raise DomainExpressionError on ``&`` or ``|``."""
    tokens: list[str] = []
    pos, end = 0, len(text)
    while pos < end:
        ch = text[pos]
        if ch.isspace():
            pos += 1
        elif ch in _PUNCTUATION:
            tokens.append(ch)
            pos += 1
        elif ch in "&|":
            if text[pos + 1 : pos + 2] != ch:
                raise DomainExpressionError(f'use "{ch}{ch}" instead of "{ch}"')
            tokens.append(ch * 2)
            pos += 2
        else:
            start = pos
            while pos < end and not text[pos].isspace() and text[pos] not in _DELIMITERS:
                pos += 1
            tokens.append(text[start:pos])
    return tokens


def to_ascii(name: str) -> str:
    """Convert a domain name to its lower-case ASCII (punycode) form."""
    labels = []
    for label in name.strip().split("."):
        if not label.isascii():
            try:
                label = encodings.idna.ToASCII(label).decode("ascii")
            except UnicodeError:
                pass
        labels.append(label.lower())
    return ".".join(labels)


def _has_strict_suffix(name: str, suffix: str) -> bool:
    return (
        name.endswith(suffix)
        and len(name) > len(suffix)
        and name[-len(suffix) - 1] == "."
    )


class _Parser:
    def __init__(self, ppfmt: PP, text: str, tokens: list[str]) -> None:
        self._ppfmt = ppfmt
        self._text = text
        self._tokens = tokens
        self._pos = 0

    def _peek(self) -> str | None:
        return self._tokens[self._pos] if self._pos < len(self._tokens) else None

    def _advance(self) -> None:
        self._pos += 1

    def _fail(self, reason: str) -> DomainExpressionError:
        return DomainExpressionError(f"Failed to parse {_quote(self._text)}: {reason}")

    def _expect(self, wanted: str) -> None:
        token = self._peek()
        if token is None:
            raise self._fail(f"wanted {_quote(wanted)}; reached end of string")
        if token != wanted:
            raise self._fail(f"wanted {_quote(wanted)}; got {_quote(token)}")
        self._advance()

    def _domain_list(self) -> tuple[str, ...]:
        names: list[str] = []
        ready_for_next = True
        while (token := self._peek()) is not None:
            if token == ",":
                ready_for_next = True
            elif token == ")":
                break
            elif token in _NOT_IN_LIST:
                raise self._fail(f"unexpected token {_quote(token)}")
            else:
                if not ready_for_next:
                    self._ppfmt.warning(
                        Emoji.USER_ERROR, f'Please insert a comma "," before {_quote(token)}'
                    )
                names.append(to_ascii(token))
                ready_for_next = False
            self._advance()
        return tuple(names)

    def _factor(self) -> Predicate:
        token = self._peek()
        if token is None:
            raise self._fail("wanted a boolean expression; reached end of string")
        if token in _TRUE:
            self._advance()
            return lambda _name: True
        if token in _FALSE:
            self._advance()
            return lambda _name: False
        if token in ("is", "sub"):
            self._advance()
            self._expect("(")
            patterns = self._domain_list()
            self._expect(")")
            if token == "is":
                return lambda name: name in patterns
            return lambda name: any(_has_strict_suffix(name, p) for p in patterns)
        if token == "!":
            self._advance()
            inner = self._factor()
            return lambda name: not inner(name)
        if token == "(":
            self._advance()
            pred = self._expression()
            self._expect(")")
            return pred
        raise self._fail(f"wanted a boolean expression; got {_quote(token)}")

    def _term(self) -> Predicate:
        left = self._factor()
        if self._peek() != "&&":
            return left
        self._advance()
        right = self._term()
        return lambda name: left(name) and right(name)

    def _expression(self) -> Predicate:
        left = self._term()
        if self._peek() != "||":
            return left
        self._advance()
        right = self._expression()
        return lambda name: left(name) or right(name)

    def parse(self) -> Predicate:
        pred = self._expression()
        token = self._peek()
        if token is not None:
            raise self._fail(f"unexpected token {_quote(token)}")
        return pred


def parse_expression(ppfmt: PP, text: str) -> Predicate | None:
    """Parse ``text`` into a predicate on ASCII domain names.

    Wildcard domains are given as ``*.example.com``. Errors are reported
    through ``ppfmt`` and ``None`` is returned.
    """
    try:
        tokens = tokenize(text)
    except DomainExpressionError as err:
        ppfmt.error(Emoji.USER_ERROR, f"Failed to parse {_quote(text)}: {err}")
        return None

    try:
        return _Parser(ppfmt, text, tokens).parse()
    except DomainExpressionError as err:
        ppfmt.error(Emoji.USER_ERROR, str(err))
        return None