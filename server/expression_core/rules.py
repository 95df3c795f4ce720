"""
Rewrite rule catalog.

A rule pairs an applicability predicate with a pure rewrite, both written
against the node variants listed in ``node_types``; the predicate never
sees a node of another shape, so a passing predicate cannot let an
incompatible rewrite run. Families such as ``eval_add_{i}`` produce one
bound rule per eligible child position.

Rules look only at the node they are offered for (and its own subtree),
never at ancestors or siblings.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, List, Optional, Tuple

from .nodes import (
    Atom,
    Constant,
    Group,
    IdGenerator,
    ImplicitProduct,
    Node,
    NodeBuilder,
    Operator,
    Unary,
    is_product,
    is_sum,
    stringify,
)

log = logging.getLogger(__name__)

EXPRESSION_NODES = (Constant, Atom, Operator, Unary, Group, ImplicitProduct)


class RuleCategory(str, Enum):
    """Priority categories, listed in the order rules are offered."""
    COMPUTATION = "1. Computation"
    SIMPLIFICATION = "2. Simplification"
    TRANSFORMATION = "3. Transformation"
    REARRANGEMENT = "4. Rearrangement"
    NOTATION = "5. Notation"
    WRAPPING = "6. Wrapping"


CATEGORY_ORDER = list(RuleCategory)


class RuleApplicationError(LookupError):
    """A rule was applied to a node it does not match."""

    def __init__(self, rule_id: str, node: Node, reason: str = "rule does not match node"):
        super().__init__(f"{rule_id}: {reason}: {stringify(node)}")
        self.rule_id = rule_id
        self.node = node


@dataclass(frozen=True)
class Rule:
    id: str
    name: str
    category: RuleCategory
    preview: str
    node_types: Tuple[type, ...]
    predicate: Callable[[Node], bool]
    rewrite: Callable[[Node, NodeBuilder], Node]

    def matches(self, node: Node) -> bool:
        return isinstance(node, self.node_types) and self.predicate(node)

    def apply(self, node: Node, ids: Optional[IdGenerator] = None) -> Node:
        """Return the rewritten node. ``node`` is never modified."""
        if not self.matches(node):
            raise RuleApplicationError(self.id, node)
        builder = NodeBuilder(ids if ids is not None else IdGenerator.following(node))
        result = self.rewrite(node, builder)
        log.debug("%s: %s -> %s", self.id, stringify(node), stringify(result))
        return result

    def preview_for(self, node: Node) -> str:
        """Concrete text this rule produces for ``node``."""
        return stringify(self.apply(node))

    def describe(self, node: Node) -> str:
        return f"{stringify(node)} → {self.preview_for(node)}"

    def instances(self, node: Node) -> List["Rule"]:
        return [self] if self.matches(node) else []


@dataclass(frozen=True)
class RuleFamily:
    """A rule parameterised by a child position.

    ``name`` may use ``{first}`` and ``{second}`` (1-based positions).
    Pairwise families look at children ``i`` and ``i + 1``.
    """
    prefix: str
    name: str
    category: RuleCategory
    preview: str
    node_types: Tuple[type, ...]
    eligible: Callable[[Node, int], bool]
    rewrite: Callable[[Node, NodeBuilder, int], Node]
    pairwise: bool = False
    first_index: int = 0

    def _positions(self, node: Node) -> range:
        last = len(node.children) - (1 if self.pairwise else 0)
        return range(self.first_index, last)

    def instances(self, node: Node) -> List[Rule]:
        if not isinstance(node, self.node_types):
            return []
        return [self.bind(i) for i in self._positions(node) if self.eligible(node, i)]

    def bind(self, index: int) -> Rule:
        def predicate(node):
            return index in self._positions(node) and self.eligible(node, index)

        def rewrite(node, builder):
            return self.rewrite(node, builder, index)

        return Rule(
            id=f"{self.prefix}_{index}",
            name=self.name.format(first=index + 1, second=index + 2),
            category=self.category,
            preview=self.preview,
            node_types=self.node_types,
            predicate=predicate,
            rewrite=rewrite,
        )


# --- Shape helpers ---

def _is_op(node: Node, *signs: str) -> bool:
    return isinstance(node, Operator) and node.sign in signs


def _is_binary(node: Node) -> bool:
    return len(node.children) == 2


def _unwrap(node: Node) -> Node:
    while isinstance(node, Group):
        node = node.content
    return node


def _is_value(node: Node, value) -> bool:
    return isinstance(node, Constant) and node.value == value


def _is_zero(node: Node) -> bool:
    return _is_value(node, 0) or (isinstance(node, Unary) and _is_value(node.operand, 0))


def _negated_operand(node: Node) -> Optional[Node]:
    """Operand of a typed negation, looking through one group."""
    if isinstance(node, Group):
        node = node.content
    if isinstance(node, Unary) and not node.synthesized:
        return node.operand
    return None


def _additive_value(node: Node):
    if isinstance(node, Constant):
        return node.value
    if isinstance(node, Unary) and node.synthesized and isinstance(node.operand, Constant):
        return -node.operand.value
    return None


def _term(node: Node) -> Tuple[bool, Node]:
    if isinstance(node, Unary) and node.synthesized:
        return True, node.operand
    return False, node


def _sum_terms(node: Node) -> List[Tuple[bool, Node]]:
    """Signed terms of a sum chain, without looking inside groups."""
    if _is_op(node, "+"):
        terms = []
        for child in node.operands:
            terms.extend(_sum_terms(child) if is_sum(child) else [_term(child)])
        return terms
    if _is_op(node, "-"):
        first, *rest = node.operands
        terms = _sum_terms(first) if is_sum(first) else [_term(first)]
        for child in rest:
            negative, term = _term(child)
            terms.append((not negative, term))
        return terms
    return [_term(node)]


def _product_factors(node: Node) -> Optional[List[Node]]:
    """Factors of a product chain of one kind, or None for non-products."""
    if _is_op(node, "*"):
        factors = []
        for child in node.operands:
            factors.extend(_product_factors(child) if _is_op(child, "*") else [child])
        return factors
    if isinstance(node, ImplicitProduct):
        factors = []
        for child in node.factors:
            factors.extend(_product_factors(child) if isinstance(child, ImplicitProduct) else [child])
        return factors
    return None


# --- Construction helpers ---

def _number(builder: NodeBuilder, value, synthesized: bool = False) -> Node:
    if value < 0:
        return builder.unary(builder.constant(-value), synthesized=synthesized)
    return builder.constant(value)


def _grouped(builder: NodeBuilder, node: Node) -> Node:
    """Group operator nodes so they keep their shape inside another node."""
    if isinstance(node, (Operator, ImplicitProduct)):
        return builder.group(node)
    return node


def _negated(builder: NodeBuilder, node: Node) -> Node:
    """Typed negation in the form the parser would produce for ``-node``."""
    if isinstance(node, Unary):
        return node.operand
    if _is_op(node, "*", "/") or isinstance(node, ImplicitProduct):
        first, *rest = node.children
        return builder.rebuild(node, [_negated(builder, first), *rest])
    if isinstance(node, Operator):
        return builder.unary(builder.group(node))
    return builder.unary(node)


def _as_term(builder: NodeBuilder, node: Node) -> Node:
    return builder.group(node) if is_sum(node) else node


def _build_sum(builder: NodeBuilder, terms: List[Tuple[bool, Node]]) -> Node:
    """Binary-nested ``+``/``-`` chain, the shape parsing its text gives."""
    negative, first = terms[0]
    result = _negated(builder, first) if negative else first
    for negative, term in terms[1:]:
        result = builder.operator("-" if negative else "+", [result, _as_term(builder, term)])
    return result


def _product(builder: NodeBuilder, template: Node, factors: List[Node]) -> Node:
    """Left-nested product of ``factors`` of the same kind as ``template``."""
    result = factors[0]
    for factor in factors[1:]:
        if isinstance(template, ImplicitProduct):
            result = builder.implicit([result, factor])
        else:
            result = builder.operator("*", [result, factor])
    return result


def _replace_pair(builder: NodeBuilder, node: Node, index: int, replacement: Node) -> Node:
    children = list(node.children)
    children[index:index + 2] = [replacement]
    if len(children) == 1:
        return children[0]
    return builder.rebuild(node, children)


def _without_child(builder: NodeBuilder, node: Node, index: int) -> Node:
    children = list(node.children)
    del children[index]
    if len(children) == 1:
        return children[0]
    return builder.rebuild(node, children)


def _first_index(node: Node, test: Callable[[Node], bool]) -> Optional[int]:
    for index, child in enumerate(node.children):
        if test(child):
            return index
    return None


# --- 1. Computation ---

def _can_fold_sum(node, i):
    return _additive_value(node.operands[i]) is not None and _additive_value(node.operands[i + 1]) is not None


def _fold_sum(node, builder, i):
    value = _additive_value(node.operands[i]) + _additive_value(node.operands[i + 1])
    tail = i > 0 and len(node.operands) > 2
    return _replace_pair(builder, node, i, _number(builder, value, synthesized=tail))


def _literal_pair(node, i):
    return isinstance(node.children[i], Constant) and isinstance(node.children[i + 1], Constant)


def _fold_product(node, builder, i):
    value = node.operands[i].value * node.operands[i + 1].value
    return _replace_pair(builder, node, i, _number(builder, value))


def _can_fold_difference(node):
    return _is_binary(node) and _literal_pair(node, 0)


def _fold_difference(node, builder):
    left, right = node.operands
    return _number(builder, left.value - right.value)


def _can_fold_quotient(node):
    return _is_binary(node) and _literal_pair(node, 0) and node.operands[1].value != 0


def _fold_quotient(node, builder):
    left, right = node.operands
    return _number(builder, left.value / right.value)


# --- 2. Simplification ---

def _has_unit_factor(node):
    return _first_index(node, lambda c: _is_value(c, 1)) is not None


def _remove_unit_factor(node, builder):
    return _without_child(builder, node, _first_index(node, lambda c: _is_value(c, 1)))


def _has_unit_divisor(node):
    return _is_binary(node) and _is_value(node.operands[1], 1)


def _has_zero_term(node):
    return _first_index(node, _is_zero) is not None


def _remove_zero_term(node, builder):
    return _without_child(builder, node, _first_index(node, _is_zero))


def _subtracts_zero(node):
    return _is_binary(node) and _is_zero(node.operands[1])


def _has_zero_factor(node):
    return _first_index(node, lambda c: _is_value(c, 0)) is not None


def _is_double_negation(node):
    return isinstance(node.operand, Unary) or (
        isinstance(node.operand, Group) and isinstance(node.operand.content, Unary)
    )


def _drop_double_negation(node, builder):
    inner = node.operand
    if isinstance(inner, Group):
        inner = inner.content
    return inner.operand


def _is_redundant_group(node):
    return not isinstance(node.content, (Operator, ImplicitProduct, Group))


def _negates_simple_group(node):
    return isinstance(node.operand, Group) and not isinstance(node.operand.content, (Operator, ImplicitProduct))


# --- 3. Transformation ---

def _can_flatten_sum(node):
    if node.sign == "+":
        return any(is_sum(child) for child in node.operands)
    return is_sum(node.operands[0])


def _flatten_sum(node, builder):
    children = [
        builder.unary(term, synthesized=True) if negative else term
        for negative, term in _sum_terms(node)
    ]
    return builder.operator("+", children)


def _can_flatten_product(node):
    return any(_is_op(child, "*") for child in node.operands)


def _flatten_product(node, builder):
    return builder.operator("*", _product_factors(node))


def _distributable(node: Node, index: int) -> Optional[Node]:
    if not (_is_op(node, "*") or isinstance(node, ImplicitProduct)) or not _is_binary(node):
        return None
    target = _unwrap(node.children[index])
    return target if is_sum(target) else None


def _distribute(node, builder, sum_index):
    other = node.children[1 - sum_index]
    terms = []
    for negative, term in _sum_terms(_distributable(node, sum_index)):
        factor = builder.copy(other)
        pair = [factor, term] if sum_index == 1 else [term, factor]
        terms.append((negative, builder.operator("*", [_as_term(builder, f) for f in pair])))
    return _build_sum(builder, terms)


def _common_factor(node: Node, side: int):
    """(factor, [(negative, remainder or None)]) when every term shares it."""
    terms = _sum_terms(node)
    if len(terms) < 2:
        return None
    candidate = None
    for _, term in terms:
        factors = _product_factors(term)
        if factors:
            candidate = factors[side]
            break
    if candidate is None:
        return None

    remainders = []
    for negative, term in terms:
        if term == candidate:
            remainders.append((negative, term, None))
            continue
        factors = _product_factors(term)
        if not factors or factors[side] != candidate:
            return None
        rest = factors[1:] if side == 0 else factors[:-1]
        remainders.append((negative, term, rest))
    return candidate, remainders


def _factor_out(node, builder, side):
    candidate, remainders = _common_factor(node, side)
    terms = []
    for negative, term, rest in remainders:
        remainder = builder.constant(1) if rest is None else _product(builder, term, rest)
        terms.append((negative, remainder))
    inner = builder.group(_build_sum(builder, terms))
    pair = [candidate, inner] if side == 0 else [inner, candidate]
    return builder.operator("*", pair)


def _sub_to_sum(node, builder):
    left, right = node.operands
    return builder.operator("+", [left, builder.group(_negated(builder, right))])


def _is_synthesized_term(node, i):
    child = node.operands[i]
    return isinstance(child, Unary) and child.synthesized


def _synthesized_to_explicit(node, builder, i):
    children = list(node.operands)
    children[i] = builder.group(_negated(builder, children[i].operand))
    return builder.rebuild(node, children)


def _is_negated_term(node, i):
    return _negated_operand(node.operands[i]) is not None


def _sum_to_sub(node, builder, i):
    operand = _negated_operand(node.operands[i])
    if _is_binary(node):
        return builder.operator("-", [node.operands[0], _as_term(builder, operand)])
    children = list(node.operands)
    children[i] = builder.unary(operand, synthesized=True)
    return builder.rebuild(node, children)


def _negates_sum(node):
    return is_sum(_unwrap(node.operand))


def _distribute_negation(node, builder):
    terms = _sum_terms(_unwrap(node.operand))
    return _build_sum(builder, [(not negative, term) for negative, term in terms])


def _positive_part(negative: bool, term: Node) -> Optional[Node]:
    if negative and not isinstance(term, Unary):
        return term
    if not negative and isinstance(term, Unary):
        return term.operand
    return None


def _all_terms_negative(node):
    terms = _sum_terms(node)
    return len(terms) > 1 and all(_positive_part(n, t) is not None for n, t in terms)


def _factor_negation(node, builder):
    terms = [(False, _positive_part(n, t)) for n, t in _sum_terms(node)]
    return builder.unary(builder.group(_build_sum(builder, terms)))


def _negates_product(node):
    return is_product(_unwrap(node.operand))


def _push_negation(node, builder):
    return _negated(builder, _unwrap(node.operand))


def _has_negated_factor(node, i):
    return _negated_operand(node.children[i]) is not None


def _pull_negation_from_factor(node, builder, i):
    children = list(node.children)
    children[i] = _negated_operand(children[i])
    return builder.unary(builder.group(builder.rebuild(node, children)))


def _negates_quotient(node):
    return _is_op(_unwrap(node.operand), "/")


def _both_sides_negated(node):
    return _is_binary(node) and all(_negated_operand(c) is not None for c in node.operands)


def _drop_quotient_negations(node, builder):
    return builder.rebuild(node, [_negated_operand(c) for c in node.operands])


def _side_negated(index):
    def check(node):
        return _is_binary(node) and _negated_operand(node.operands[index]) is not None
    return check


def _pull_negation_from_quotient(index):
    def rewrite(node, builder):
        children = list(node.operands)
        children[index] = _negated_operand(children[index])
        return builder.unary(builder.group(builder.rebuild(node, children)))
    return rewrite


def _to_reciprocal(node, builder):
    left, right = node.operands
    inverse = builder.operator("/", [builder.constant(1), right])
    return builder.operator("*", [left, builder.group(inverse)])


# --- 4. Rearrangement ---

def _swap(node, builder):
    left, right = node.operands
    return builder.rebuild(node, [right, left])


# --- 5. Notation ---

_IMPLICIT_PAIRS = {
    (Constant, Atom),
    (Atom, Atom),
    (Atom, Group),
    (Constant, Group),
    (Group, Atom),
    (Group, Constant),
    (Group, Group),
}


def _collapsible(node):
    return all(
        (type(left), type(right)) in _IMPLICIT_PAIRS
        for left, right in zip(node.operands, node.operands[1:])
    )


# --- 6. Wrapping ---

def _always(node):
    return True


def _rule(rule_id, name, category, preview, node_types, predicate, rewrite):
    if not isinstance(node_types, tuple):
        node_types = (node_types,)
    return Rule(rule_id, name, category, preview, node_types, predicate, rewrite)


def _op_and(signs, predicate):
    return lambda node: node.sign in signs and predicate(node)


C = RuleCategory

CATALOG: List = [
    # 1. Computation
    RuleFamily("eval_add", "Add terms {first} and {second}", C.COMPUTATION, "a + b → c",
               (Operator,), lambda n, i: n.sign == "+" and _can_fold_sum(n, i), _fold_sum, pairwise=True),
    _rule("eval_sub", "Subtract constants", C.COMPUTATION, "a - b → c",
          Operator, _op_and("-", _can_fold_difference), _fold_difference),
    RuleFamily("eval_mul", "Multiply factors {first} and {second}", C.COMPUTATION, "a * b → c",
               (Operator,), lambda n, i: n.sign == "*" and _literal_pair(n, i), _fold_product, pairwise=True),
    _rule("eval_div", "Divide constants", C.COMPUTATION, "a / b → c",
          Operator, _op_and("/", _can_fold_quotient), _fold_quotient),

    # 2. Simplification
    _rule("remove_mul_one", "Remove multiplication by 1", C.SIMPLIFICATION, "a * 1 → a",
          Operator, _op_and("*", _has_unit_factor), _remove_unit_factor),
    _rule("remove_div_one", "Remove division by 1", C.SIMPLIFICATION, "a / 1 → a",
          Operator, _op_and("/", _has_unit_divisor), lambda n, b: n.operands[0]),
    _rule("remove_add_zero", "Remove adding 0", C.SIMPLIFICATION, "a + 0 → a",
          Operator, _op_and("+", _has_zero_term), _remove_zero_term),
    _rule("remove_sub_zero", "Remove subtracting 0", C.SIMPLIFICATION, "a - 0 → a",
          Operator, _op_and("-", _subtracts_zero), lambda n, b: n.operands[0]),
    _rule("simplify_mul_zero", "Multiplication by 0", C.SIMPLIFICATION, "a * 0 → 0",
          (Operator, ImplicitProduct),
          lambda n: (isinstance(n, ImplicitProduct) or n.sign == "*") and _has_zero_factor(n),
          lambda n, b: b.constant(0)),
    _rule("double_negation", "Remove double negation", C.SIMPLIFICATION, "--a → a",
          Unary, _is_double_negation, _drop_double_negation),
    _rule("remove_parens", "Remove parentheses", C.SIMPLIFICATION, "(a) → a",
          Group, _is_redundant_group, lambda n, b: n.content),
    _rule("remove_double_parens", "Remove double parentheses", C.SIMPLIFICATION, "((a)) → (a)",
          Group, lambda n: isinstance(n.content, Group), lambda n, b: n.content),
    _rule("remove_unary_parens", "Remove parentheses after minus", C.SIMPLIFICATION, "-(a) → -a",
          Unary, _negates_simple_group, lambda n, b: b.rebuild(n, [n.operand.content])),

    # 3. Transformation
    _rule("assoc_flatten_add", "Flatten sum", C.TRANSFORMATION, "(a + b) + c → a + b + c",
          Operator, _op_and(("+", "-"), _can_flatten_sum), _flatten_sum),
    _rule("assoc_flatten_mul", "Flatten product", C.TRANSFORMATION, "(a * b) * c → a * b * c",
          Operator, _op_and("*", _can_flatten_product), _flatten_product),
    _rule("distributive_forward", "Distribute over the right sum", C.TRANSFORMATION,
          "a * (b + c) → a * b + a * c", (Operator, ImplicitProduct),
          lambda n: _distributable(n, 1) is not None, lambda n, b: _distribute(n, b, 1)),
    _rule("distributive_forward_left", "Distribute over the left sum", C.TRANSFORMATION,
          "(a + b) * c → a * c + b * c", (Operator, ImplicitProduct),
          lambda n: _distributable(n, 0) is not None, lambda n, b: _distribute(n, b, 0)),
    _rule("factor_common_left_all", "Factor out common left factor", C.TRANSFORMATION,
          "a * b + a * c → a * (b + c)", Operator,
          _op_and(("+", "-"), lambda n: _common_factor(n, 0) is not None), lambda n, b: _factor_out(n, b, 0)),
    _rule("factor_common_right_all", "Factor out common right factor", C.TRANSFORMATION,
          "b * a + c * a → (b + c) * a", Operator,
          _op_and(("+", "-"), lambda n: _common_factor(n, -1) is not None), lambda n, b: _factor_out(n, b, -1)),
    _rule("sub_to_sum", "Subtraction to addition", C.TRANSFORMATION, "a - b → a + (-b)",
          Operator, _op_and("-", _is_binary), _sub_to_sum),
    RuleFamily("sub_to_sum", "Term {first} to addition", C.TRANSFORMATION, "a - b → a + (-b)",
               (Operator,), lambda n, i: n.sign == "+" and _is_synthesized_term(n, i),
               _synthesized_to_explicit, first_index=1),
    RuleFamily("sum_to_sub", "Term {first} to subtraction", C.TRANSFORMATION, "a + (-b) → a - b",
               (Operator,), lambda n, i: n.sign == "+" and _is_negated_term(n, i), _sum_to_sub, first_index=1),
    _rule("distribute_unary_minus", "Distribute minus", C.TRANSFORMATION, "-(a + b) → -a - b",
          Unary, _negates_sum, _distribute_negation),
    _rule("factor_unary_minus", "Factor out minus", C.TRANSFORMATION, "-a - b → -(a + b)",
          Operator, _op_and(("+", "-"), _all_terms_negative), _factor_negation),
    _rule("push_unary_minus_mul", "Move minus into product", C.TRANSFORMATION, "-(a * b) → -a * b",
          Unary, _negates_product, _push_negation),
    RuleFamily("pull_unary_minus_mul", "Move minus of factor {first} out", C.TRANSFORMATION,
               "a * (-b) → -(a * b)", (Operator, ImplicitProduct),
               lambda n, i: (isinstance(n, ImplicitProduct) or n.sign == "*") and _has_negated_factor(n, i),
               _pull_negation_from_factor),
    _rule("push_unary_minus_div", "Move minus into numerator", C.TRANSFORMATION, "-(a / b) → -a / b",
          Unary, _negates_quotient, _push_negation),
    _rule("remove_double_neg_div", "Cancel minus signs of quotient", C.TRANSFORMATION, "-a / -b → a / b",
          Operator, _op_and("/", _both_sides_negated), _drop_quotient_negations),
    _rule("pull_unary_minus_div_left", "Move minus of numerator out", C.TRANSFORMATION,
          "-a / b → -(a / b)", Operator, _op_and("/", _side_negated(0)), _pull_negation_from_quotient(0)),
    _rule("pull_unary_minus_div_right", "Move minus of denominator out", C.TRANSFORMATION,
          "a / -b → -(a / b)", Operator, _op_and("/", _side_negated(1)), _pull_negation_from_quotient(1)),
    _rule("div_to_mul_inverse", "Division to multiplication by inverse", C.TRANSFORMATION,
          "a / b → a * (1 / b)", Operator, _op_and("/", _is_binary), _to_reciprocal),

    # 4. Rearrangement
    _rule("commutative_add", "Swap terms", C.REARRANGEMENT, "a + b → b + a",
          Operator, _op_and("+", _is_binary), _swap),
    _rule("commutative_mul", "Swap factors", C.REARRANGEMENT, "a * b → b * a",
          Operator, _op_and("*", _is_binary), _swap),

    # 5. Notation
    _rule("expand_implicit_mul", "Write multiplication sign", C.NOTATION, "ab → a * b",
          ImplicitProduct, _always, lambda n, b: b.operator("*", n.factors)),
    _rule("collapse_to_implicit_mul", "Omit multiplication sign", C.NOTATION, "a * b → ab",
          Operator, _op_and("*", _collapsible), lambda n, b: b.implicit(n.operands)),

    # 6. Wrapping
    _rule("add_parens", "Add parentheses", C.WRAPPING, "a → (a)",
          EXPRESSION_NODES, lambda n: not isinstance(n, Group), lambda n, b: b.group(n)),
    _rule("add_double_neg", "Add double negation", C.WRAPPING, "a → --a",
          EXPRESSION_NODES, _always, lambda n, b: b.unary(b.unary(_grouped(b, n)))),
    _rule("multiply_by_one", "Multiply by 1", C.WRAPPING, "a → a * 1",
          EXPRESSION_NODES, _always, lambda n, b: b.operator("*", [_as_term(b, n), b.constant(1)])),
    _rule("divide_by_one", "Divide by 1", C.WRAPPING, "a → a / 1",
          EXPRESSION_NODES, _always, lambda n, b: b.operator("/", [_as_term(b, n), b.constant(1)])),
    _rule("add_zero", "Add 0", C.WRAPPING, "a → a + 0",
          EXPRESSION_NODES, _always, lambda n, b: b.operator("+", [n, b.constant(0)])),
]


# Offered for the group around a selection as well as for the selection.
GROUP_REMOVAL_RULES = ("remove_parens", "remove_double_parens")


def get_applicable_rules(node: Node) -> List[Rule]:
    """All rules matching ``node``, in category order then catalog order."""
    rules = [rule for entry in CATALOG for rule in entry.instances(node)]
    rules.sort(key=lambda r: CATEGORY_ORDER.index(r.category))
    return rules


def find_rule(node: Node, rule_id: str) -> Optional[Rule]:
    for rule in get_applicable_rules(node):
        if rule.id == rule_id:
            return rule
    return None


def apply_rule(node: Node, rule_id: str, ids: Optional[IdGenerator] = None) -> Node:
    """Apply the rule ``rule_id`` to ``node``.

    Raises RuleApplicationError if that rule is not applicable here.
    """
    rule = find_rule(node, rule_id)
    if rule is None:
        raise RuleApplicationError(rule_id, node, "rule is not applicable")
    return rule.apply(node, ids)


def catalog_summary() -> Iterable[dict]:
    """Static description of every rule and family in the catalog."""
    for entry in CATALOG:
        rule_id = f"{entry.prefix}_{{i}}" if isinstance(entry, RuleFamily) else entry.id
        yield {
            "id": rule_id,
            "name": entry.name,
            "category": entry.category.value,
            "preview": entry.preview,
        }
