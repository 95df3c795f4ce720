"""
SymPy-backed transform backend.

Offers whole-subtree rewrites (expand, factor, ...) that the local rule
catalog does not express as single steps. Results are rendered back into
the core grammar (integer powers become repeated products, negative powers
become quotients) and only kept when they agree numerically with the
selected subexpression.
"""

import logging
import math
from typing import Callable, Dict, List, Optional, Tuple

import sympy as sp

from .engine import Operation
from .nodes import (
    Atom,
    Constant,
    Equation,
    Group,
    IdGenerator,
    ImplicitProduct,
    Node,
    NodeBuilder,
    Operator,
    Unary,
    stringify,
)
from .parser import parse_statement
from .paths import Path, replace_at_path, resolve_path
from .rules import RuleApplicationError, RuleCategory

log = logging.getLogger(__name__)

OPERATION_PREFIX = "sympy:"

# Sample points for the numeric equivalence check
EQUIVALENCE_VALUES = [-3, -2, -1, -0.5, 0, 0.5, 1, 2, 3, 4, 5, 10, -10, 0.1, -0.1, 100]
MIN_VALID_POINTS = 6
TOLERANCE = 1e-9

# Largest power written out as a repeated product
MAX_EXPANDED_POWER = 6


class UnsupportedExpression(ValueError):
    """A SymPy result that the core grammar cannot express."""


def _collect(expr: sp.Expr) -> sp.Expr:
    symbols = sorted(expr.free_symbols, key=lambda s: s.name)
    if not symbols:
        return expr
    return sp.collect(sp.expand(expr), symbols[0])


TRANSFORMS: Dict[str, Tuple[str, Callable[[sp.Expr], sp.Expr]]] = {
    "expand": ("Expand", sp.expand),
    "factor": ("Factor", sp.factor),
    "simplify": ("Simplify", sp.simplify),
    "cancel": ("Cancel common factors", sp.cancel),
    "together": ("Combine into one fraction", sp.together),
    "collect": ("Collect terms", _collect),
}


# --- Conversion to SymPy ---

def to_sympy(node: Node) -> sp.Expr:
    """SymPy expression for an expression tree (equations are not supported)."""
    if isinstance(node, Constant):
        if isinstance(node.value, float):
            return sp.Rational(repr(node.value))
        return sp.Integer(node.value)
    if isinstance(node, Atom):
        return sp.Symbol(node.name)
    if isinstance(node, Group):
        return to_sympy(node.content)
    if isinstance(node, Unary):
        return -to_sympy(node.operand)
    if isinstance(node, ImplicitProduct):
        return sp.Mul(*[to_sympy(c) for c in node.factors])
    if isinstance(node, Operator):
        first, *rest = [to_sympy(c) for c in node.operands]
        if node.sign == "+":
            return sp.Add(first, *rest)
        if node.sign == "-":
            return sp.Add(first, *[-r for r in rest])
        if node.sign == "*":
            return sp.Mul(first, *rest)
        return sp.Mul(first, *[sp.Pow(r, -1) for r in rest])
    raise UnsupportedExpression(f"cannot convert {type(node).__name__} to SymPy")


# --- Conversion back into the core grammar ---

class _TreeWriter:
    def __init__(self, builder: NodeBuilder):
        self.build = builder

    def write(self, expr: sp.Expr) -> Node:
        if expr.could_extract_minus_sign():
            return self._negate(self.write(-expr))
        if expr.is_Integer:
            return self.build.constant(int(expr))
        if expr.is_Rational:
            return self.build.operator("/", [self.build.constant(int(expr.p)), self.build.constant(int(expr.q))])
        if expr.is_Float:
            return self.build.constant(float(expr))
        if expr.is_Symbol:
            if len(expr.name) != 1 or not expr.name.isascii() or not expr.name.isalpha():
                raise UnsupportedExpression(f"symbol {expr.name!r} is not a single letter")
            return self.build.atom(expr.name)
        if expr.is_Add:
            return self._sum(expr.as_ordered_terms())
        if expr.is_Mul or expr.is_Pow:
            return self._product(expr)
        raise UnsupportedExpression(f"unsupported SymPy node {type(expr).__name__}")

    def _negate(self, node: Node) -> Node:
        # -2 * a rather than -(2 * a), matching how "-2 * a" parses
        if isinstance(node, Operator) and node.sign in "*/":
            first, *rest = node.operands
            return self.build.rebuild(node, [self._negate(first), *rest])
        return self.build.unary(self._grouped(node))

    def _grouped(self, node: Node) -> Node:
        if isinstance(node, (Operator, ImplicitProduct)):
            return self.build.group(node)
        return node

    def _sum(self, terms) -> Node:
        result = self.write(terms[0])
        for term in terms[1:]:
            if term.could_extract_minus_sign():
                sign, term = "-", -term
            else:
                sign = "+"
            node = self.write(term)
            if isinstance(node, Operator) and node.sign in "+-":
                node = self.build.group(node)
            result = self.build.operator(sign, [result, node])
        return result

    def _factors(self, expr: sp.Expr) -> List[Node]:
        factors = []
        for factor in expr.as_ordered_factors():
            base, exponent = factor.as_base_exp()
            if exponent.is_Integer and 1 < exponent <= MAX_EXPANDED_POWER:
                # each copy gets its own identity
                factors.extend(self._power_base(base) for _ in range(int(exponent)))
            elif exponent == 1:
                factors.append(self._power_base(factor))
            else:
                raise UnsupportedExpression(f"cannot write power {factor}")
        return factors

    def _power_base(self, base: sp.Expr) -> Node:
        node = self.write(base)
        if isinstance(node, (Operator, ImplicitProduct, Unary)):
            return self.build.group(node)
        return node

    def _chain(self, factors: List[Node]) -> Node:
        result = factors[0]
        for factor in factors[1:]:
            result = self.build.operator("*", [result, factor])
        return result

    def _product(self, expr: sp.Expr) -> Node:
        numerator, denominator = sp.fraction(expr)
        if denominator != 1:
            top = self.write(numerator)
            if isinstance(top, Operator) and top.sign in "+-":
                top = self.build.group(top)
            bottom = self._grouped(self.write(denominator))
            return self.build.operator("/", [top, bottom])
        return self._chain(self._factors(expr))


def from_sympy(expr: sp.Expr, ids: Optional[IdGenerator] = None) -> Node:
    """Expression tree for a SymPy result; UnsupportedExpression if impossible."""
    return _TreeWriter(NodeBuilder(ids or IdGenerator())).write(sp.sympify(expr))


# --- Numeric equivalence ---

def _evaluate(func, values) -> Optional[complex]:
    try:
        result = complex(func(*values))
    except (ZeroDivisionError, OverflowError, ValueError, TypeError):
        return None
    if math.isnan(result.real) or math.isinf(result.real):
        return None
    return result


def numerically_equivalent(first: sp.Expr, second: sp.Expr) -> bool:
    """Whether two expressions agree at every usable sample point."""
    symbols = sorted(first.free_symbols | second.free_symbols, key=lambda s: s.name)
    f = sp.lambdify(symbols, first, modules="math")
    g = sp.lambdify(symbols, second, modules="math")
    valid = 0
    for value in EQUIVALENCE_VALUES:
        values = [value] * len(symbols)
        a = _evaluate(f, values)
        b = _evaluate(g, values)
        if a is None or b is None:
            continue
        if abs(a - b) > TOLERANCE * max(1.0, abs(a)):
            return False
        valid += 1
    return valid >= MIN_VALID_POINTS


class SympyBackend:
    """TransformBackend built on SymPy."""

    def __init__(self, transforms: Optional[Dict[str, Tuple[str, Callable]]] = None):
        self.transforms = transforms if transforms is not None else TRANSFORMS

    def _candidate(self, tree: Node, path: Path, target: Node, name: str) -> Optional[Node]:
        _, transform = self.transforms[name]
        try:
            original = to_sympy(target)
            result = transform(original)
            ids = IdGenerator.following(tree)
            replacement = from_sympy(result, ids)
        except UnsupportedExpression as exc:
            log.debug("%s skipped: %s", name, exc)
            return None
        except Exception as exc:
            log.debug("%s failed on %s: %s", name, stringify(target), exc)
            return None
        if replacement == target or not numerically_equivalent(original, to_sympy(replacement)):
            log.debug("%s rejected for %s", name, stringify(target))
            return None
        return replace_at_path(tree, path, replacement, ids)

    def _target(self, expression: str, path: Path):
        tree = parse_statement(expression)
        target = resolve_path(tree, path)
        if not target or isinstance(target, Equation):
            return tree, None
        return tree, target

    def list_operations(self, expression: str, path: Path) -> List[Operation]:
        tree, target = self._target(expression, path)
        if target is None:
            return []
        operations = []
        for name, (label, _) in self.transforms.items():
            result = self._candidate(tree, path, target, name)
            if result is None:
                continue
            replaced = resolve_path(result, path)
            operations.append(Operation(
                id=OPERATION_PREFIX + name,
                name=label,
                category=RuleCategory.TRANSFORMATION.value,
                preview=stringify(result),
                replacement=stringify(replaced) if replaced else "",
                path=tuple(path),
                source="sympy",
            ))
        return operations

    def apply(self, expression: str, path: Path, operation_id: str) -> Node:
        name = operation_id[len(OPERATION_PREFIX):] if operation_id.startswith(OPERATION_PREFIX) else None
        tree, target = self._target(expression, path)
        if name not in self.transforms or target is None:
            raise RuleApplicationError(operation_id, target or tree, "unknown backend operation")
        result = self._candidate(tree, path, target, name)
        if result is None:
            raise RuleApplicationError(operation_id, target, "backend produced no rewrite")
        return result
