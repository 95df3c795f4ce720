"""
Precedence-climbing parser producing expression trees.

Grammar, lowest binding first::

    additive       := multiplicative (('+' | '-') multiplicative)*
    multiplicative := unary (('*' | '/' | implicit) unary)*
    unary          := '-' unary | primary
    primary        := NUMBER | LETTER | '(' additive ')'

Every binary production folds left-to-right into two-child nodes. Flat
n-ary nodes only come from the associativity rewrites.
"""

import logging
import re
from typing import List, Optional

from .nodes import COMPARATORS, IdGenerator, Node, NodeBuilder
from .tokenizer import Token, TokenKind, process, strip_whitespace

log = logging.getLogger(__name__)

_COMPARATOR_RE = re.compile("|".join(re.escape(c) for c in COMPARATORS))


class ParseError(ValueError):
    """Syntactic failure; ``position`` is an offset into the stripped text."""

    def __init__(self, message: str, position: int):
        super().__init__(f"{message} (at position {position})")
        self.message = message
        self.position = position


class ExpressionParser:
    """Parses one processed token stream. Instances are single-use."""

    def __init__(self, tokens: List[Token], ids: Optional[IdGenerator] = None, length: int = 0):
        self.tokens = tokens
        self.pos = 0
        self.length = length
        self.build = NodeBuilder(ids or IdGenerator())

    def parse(self) -> Node:
        if not self.tokens:
            raise ParseError("empty expression", 0)
        node = self._additive()
        if self.pos < len(self.tokens):
            token = self.tokens[self.pos]
            if token.is_close():
                raise ParseError("unmatched ')'", token.start)
            raise ParseError(f"unexpected token {token.value!r}", token.start)
        return node

    # --- token helpers ---

    def _peek(self) -> Optional[Token]:
        if self.pos < len(self.tokens):
            return self.tokens[self.pos]
        return None

    def _end_position(self) -> int:
        if self.tokens:
            return max(self.length, self.tokens[-1].end)
        return self.length

    def _span(self, start: int) -> range:
        return range(start, self.pos)

    # --- productions ---

    def _additive(self) -> Node:
        start = self.pos
        left = self._multiplicative()
        while True:
            token = self._peek()
            if token is None or token.kind != TokenKind.OPERATOR or token.value not in "+-":
                return left
            self.pos += 1
            right = self._multiplicative()
            left = self.build.operator(token.value, [left, right], tokens=self._span(start))

    def _multiplicative(self) -> Node:
        start = self.pos
        left = self._unary()
        while True:
            token = self._peek()
            if token is None or token.kind != TokenKind.OPERATOR or token.value not in "*/":
                return left
            self.pos += 1
            right = self._unary()
            if token.synthetic:
                left = self.build.implicit([left, right], tokens=self._span(start))
            else:
                left = self.build.operator(token.value, [left, right], tokens=self._span(start))

    def _unary(self) -> Node:
        token = self._peek()
        if token is not None and token.kind == TokenKind.UNARY:
            start = self.pos
            self.pos += 1
            operand = self._unary()
            return self.build.unary(operand, tokens=self._span(start))
        return self._primary()

    def _primary(self) -> Node:
        token = self._peek()
        if token is None:
            raise ParseError("unexpected end of expression", self._end_position())

        index = self.pos
        if token.kind == TokenKind.NUMBER:
            self.pos += 1
            return self.build.constant(_number(token), tokens=(index,))

        if token.kind == TokenKind.LETTER:
            self.pos += 1
            return self.build.atom(token.value, tokens=(index,))

        if token.is_open():
            self.pos += 1
            inner = self._additive()
            closing = self._peek()
            if closing is None or not closing.is_close():
                raise ParseError("unmatched '('", token.start)
            self.pos += 1
            return self.build.group(inner, tokens=self._span(index))

        if token.is_close():
            raise ParseError("unexpected ')'", token.start)
        raise ParseError(f"missing operand before {token.value!r}", token.start)


def _number(token: Token):
    text = token.value
    try:
        if "." in text:
            return float(text)
        return int(text)
    except ValueError:
        raise ParseError(f"invalid number {text!r}", token.start) from None


def parse(text: str, ids: Optional[IdGenerator] = None) -> Node:
    """Parse an arithmetic expression into a tree.

    Raises ParseError naming the failing offset; no partial tree is
    returned.
    """
    tokens = process(text)
    tree = ExpressionParser(tokens, ids, len(strip_whitespace(text))).parse()
    log.debug("parsed %r into %d tokens", text, len(tokens))
    return tree


def parse_statement(text: str, ids: Optional[IdGenerator] = None) -> Node:
    """Parse an expression or a two-sided statement such as ``2x + 1 = 5``."""
    matches = list(_COMPARATOR_RE.finditer(text))
    if not matches:
        return parse(text, ids)
    if len(matches) > 1:
        second = matches[1]
        raise ParseError(
            f"more than one comparator ({second.group()!r})",
            len(strip_whitespace(text[: second.start()])),
        )

    match = matches[0]
    ids = ids or IdGenerator()
    left = parse(text[: match.start()], ids)
    offset = len(strip_whitespace(text[: match.end()]))
    try:
        right = parse(text[match.end():], ids)
    except ParseError as exc:
        raise ParseError(exc.message, exc.position + offset) from None
    return NodeBuilder(ids).equation(left, right, match.group())
