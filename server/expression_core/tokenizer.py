"""
Tokenizer for arithmetic expressions.

Splits expression text into classified lexical units and inserts the
synthetic multiplication tokens implied by juxtaposition (``2a``, ``ab``,
``(x+1)y``).
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import List

log = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")
_OPERATORS = "+-*/"
_DIGITS = "0123456789"


class TokenKind(str, Enum):
    """Lexical classes produced by the tokenizer."""
    NUMBER = "number"
    LETTER = "letter"
    OPERATOR = "operator"
    PAREN = "paren"
    UNARY = "unary"


@dataclass(frozen=True)
class Token:
    """A lexical unit with offsets into the whitespace-stripped text."""
    kind: TokenKind
    value: str
    start: int
    end: int
    synthetic: bool = False

    def is_open(self) -> bool:
        return self.kind == TokenKind.PAREN and self.value == "("

    def is_close(self) -> bool:
        return self.kind == TokenKind.PAREN and self.value == ")"


def strip_whitespace(text: str) -> str:
    return _WHITESPACE.sub("", text)


def tokenize(text: str) -> List[Token]:
    """Split ``text`` into tokens.

    Whitespace is removed before scanning, so every offset refers to the
    stripped stream. A ``-`` is unary when it opens the expression or
    follows an operator, another unary sign or ``(``. Unknown characters
    are skipped.
    """
    source = strip_whitespace(text)
    tokens: List[Token] = []
    pos = 0

    while pos < len(source):
        char = source[pos]

        if char in _DIGITS:
            start = pos
            while pos < len(source) and (source[pos] in _DIGITS or source[pos] == "."):
                pos += 1
            tokens.append(Token(TokenKind.NUMBER, source[start:pos], start, pos))
            continue

        if char.isascii() and char.isalpha():
            tokens.append(Token(TokenKind.LETTER, char, pos, pos + 1))
            pos += 1
            continue

        if char in "()":
            tokens.append(Token(TokenKind.PAREN, char, pos, pos + 1))
            pos += 1
            continue

        if char in _OPERATORS:
            previous = tokens[-1] if tokens else None
            is_unary = char == "-" and (
                previous is None
                or previous.kind in (TokenKind.OPERATOR, TokenKind.UNARY)
                or previous.is_open()
            )
            kind = TokenKind.UNARY if is_unary else TokenKind.OPERATOR
            tokens.append(Token(kind, char, pos, pos + 1))
            pos += 1
            continue

        log.debug("skipping unknown character %r at %d", char, pos)
        pos += 1

    return tokens


def _implies_product(left: Token, right: Token) -> bool:
    if left.kind == TokenKind.NUMBER:
        return right.kind == TokenKind.LETTER or right.is_open()
    if left.kind == TokenKind.LETTER:
        return right.kind == TokenKind.LETTER or right.is_open()
    if left.is_close():
        return right.kind in (TokenKind.NUMBER, TokenKind.LETTER) or right.is_open()
    return False


def insert_implicit_multiplication(tokens: List[Token]) -> List[Token]:
    """Insert zero-width synthetic ``*`` tokens between juxtaposed units."""
    if not tokens:
        return []
    result = [tokens[0]]
    for left, right in zip(tokens, tokens[1:]):
        if _implies_product(left, right):
            result.append(Token(TokenKind.OPERATOR, "*", left.end, left.end, synthetic=True))
        result.append(right)
    return result


def process(text: str) -> List[Token]:
    """Tokenize and insert implicit multiplications."""
    return insert_implicit_multiplication(tokenize(text))
