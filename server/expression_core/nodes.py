"""
Expression tree nodes.

Every node is an immutable dataclass. ``node_id`` and ``tokens`` are
bookkeeping (identity and back-mapping to source tokens) and take no part
in equality, so ``==`` compares structure only.
"""

from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Any, Dict, Iterator, List, Sequence, Tuple, Union

Number = Union[int, float]

OPERATOR_SIGNS = ("+", "-", "*", "/")
COMPARATORS = ("<=", ">=", "=", "<", ">")


@dataclass(frozen=True)
class Node:
    """Base class for all expression nodes."""

    node_id: int = field(default=-1, compare=False, kw_only=True)
    tokens: Tuple[int, ...] = field(default=(), compare=False, kw_only=True)

    @property
    def kind(self) -> str:
        raise NotImplementedError

    @property
    def children(self) -> Tuple["Node", ...]:
        return ()

    def with_children(self, children: Sequence["Node"], node_id: int) -> "Node":
        raise NotImplementedError


@dataclass(frozen=True)
class Constant(Node):
    """A numeric literal."""

    value: Number

    @property
    def kind(self) -> str:
        return "constant"

    def with_children(self, children, node_id):
        return replace(self, node_id=node_id)


@dataclass(frozen=True)
class Atom(Node):
    """A single-letter variable."""

    name: str

    @property
    def kind(self) -> str:
        return "atom"

    def with_children(self, children, node_id):
        return replace(self, node_id=node_id)


@dataclass(frozen=True)
class Operator(Node):
    """Explicit ``+ - * /`` applied to two or more operands."""

    sign: str
    operands: Tuple[Node, ...]

    def __post_init__(self):
        object.__setattr__(self, "operands", tuple(self.operands))
        if self.sign not in OPERATOR_SIGNS:
            raise ValueError(f"unknown operator sign: {self.sign!r}")
        if len(self.operands) < 2:
            raise ValueError("operator node needs at least two children")

    @property
    def kind(self) -> str:
        return "operator"

    @property
    def children(self):
        return self.operands

    def with_children(self, children, node_id):
        return replace(self, operands=tuple(children), node_id=node_id)


@dataclass(frozen=True)
class Unary(Node):
    """Negation of a single operand.

    ``synthesized`` marks a negation created by a rewrite (``a - b`` turned
    into a sum term) rather than one typed by the user.
    """

    operand: Node
    synthesized: bool = False

    @property
    def kind(self) -> str:
        return "unary"

    @property
    def children(self):
        return (self.operand,)

    def with_children(self, children, node_id):
        (operand,) = children
        return replace(self, operand=operand, node_id=node_id)


@dataclass(frozen=True)
class Group(Node):
    """Explicit parentheses around one expression."""

    content: Node

    @property
    def kind(self) -> str:
        return "group"

    @property
    def children(self):
        return (self.content,)

    def with_children(self, children, node_id):
        (content,) = children
        return replace(self, content=content, node_id=node_id)


@dataclass(frozen=True)
class ImplicitProduct(Node):
    """Multiplication written by juxtaposition: ``2a``, ``ab``, ``(x+1)y``."""

    factors: Tuple[Node, ...]

    def __post_init__(self):
        object.__setattr__(self, "factors", tuple(self.factors))
        if len(self.factors) < 2:
            raise ValueError("implicit product needs at least two children")

    @property
    def kind(self) -> str:
        return "implicit_mul"

    @property
    def children(self):
        return self.factors

    def with_children(self, children, node_id):
        return replace(self, factors=tuple(children), node_id=node_id)


@dataclass(frozen=True)
class Equation(Node):
    """Two expressions joined by a comparator, addressed by side."""

    left: Node
    right: Node
    comparator: str = "="

    def __post_init__(self):
        if self.comparator not in COMPARATORS:
            raise ValueError(f"unknown comparator: {self.comparator!r}")

    @property
    def kind(self) -> str:
        return "equation"

    @property
    def children(self):
        return (self.left, self.right)

    def with_children(self, children, node_id):
        left, right = children
        return replace(self, left=left, right=right, node_id=node_id)


class IdGenerator:
    """Hands out increasing node identities.

    A fresh generator replaces any notion of resetting a shared counter;
    use ``IdGenerator.following(tree)`` to keep extending an existing tree
    without reusing identities.
    """

    def __init__(self, start: int = 0):
        self._next = start

    def next_id(self) -> int:
        value = self._next
        self._next += 1
        return value

    @property
    def peek(self) -> int:
        return self._next

    @classmethod
    def following(cls, *trees: Node) -> "IdGenerator":
        return cls(max((max_node_id(t) for t in trees), default=-1) + 1)


class NodeBuilder:
    """Creates nodes with fresh identities."""

    def __init__(self, ids: IdGenerator):
        self.ids = ids

    def constant(self, value: Number, tokens=()) -> Constant:
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        return Constant(value, node_id=self.ids.next_id(), tokens=tuple(tokens))

    def atom(self, name: str, tokens=()) -> Atom:
        return Atom(name, node_id=self.ids.next_id(), tokens=tuple(tokens))

    def operator(self, sign: str, children: Sequence[Node], tokens=()) -> Operator:
        return Operator(sign, tuple(children), node_id=self.ids.next_id(), tokens=tuple(tokens))

    def unary(self, operand: Node, synthesized: bool = False, tokens=()) -> Unary:
        return Unary(operand, synthesized, node_id=self.ids.next_id(), tokens=tuple(tokens))

    def group(self, content: Node, tokens=()) -> Group:
        return Group(content, node_id=self.ids.next_id(), tokens=tuple(tokens))

    def implicit(self, children: Sequence[Node], tokens=()) -> ImplicitProduct:
        return ImplicitProduct(tuple(children), node_id=self.ids.next_id(), tokens=tuple(tokens))

    def equation(self, left: Node, right: Node, comparator: str = "=") -> Equation:
        return Equation(left, right, comparator, node_id=self.ids.next_id())

    def rebuild(self, node: Node, children: Sequence[Node]) -> Node:
        """Copy ``node`` with new children and a new identity."""
        return node.with_children(children, self.ids.next_id())

    def copy(self, node: Node) -> Node:
        """Deep copy of ``node`` with fresh identities throughout."""
        return self.rebuild(node, [self.copy(child) for child in node.children])


# --- Traversal helpers ---

def iter_nodes(node: Node) -> Iterator[Node]:
    """Pre-order traversal."""
    yield node
    for child in node.children:
        yield from iter_nodes(child)


def max_node_id(node: Node) -> int:
    return max(n.node_id for n in iter_nodes(node))


def count_nodes(node: Node) -> int:
    return sum(1 for _ in iter_nodes(node))


def is_sum(node: Node) -> bool:
    return isinstance(node, Operator) and node.sign in ("+", "-")


def is_product(node: Node) -> bool:
    return isinstance(node, ImplicitProduct) or (isinstance(node, Operator) and node.sign == "*")


# --- Stringification ---

def format_number(value: Number) -> str:
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        # positional only, the tokenizer has no exponent syntax
        return format(Decimal(repr(value)), "f")
    return str(value)


def _precedence(node: Node) -> int:
    if isinstance(node, Operator):
        return 1 if node.sign in ("+", "-") else 2
    if isinstance(node, ImplicitProduct):
        return 2
    if isinstance(node, Unary):
        return 3
    if isinstance(node, Constant) and node.value < 0:
        return 3
    return 4


def _is_subtracted_term(parent: Node, index: int) -> bool:
    """Synthesized negations inside a sum print as ``- b``."""
    child = parent.children[index]
    return (
        index > 0
        and isinstance(parent, Operator)
        and parent.sign == "+"
        and isinstance(child, Unary)
        and child.synthesized
    )


def _needs_parens(parent: Node, index: int) -> bool:
    child = parent.children[index]
    if isinstance(parent, Unary):
        return _precedence(child) <= 2
    if isinstance(parent, Operator):
        parent_prec = _precedence(parent)
        child_prec = _precedence(child)
        if child_prec < parent_prec:
            return True
        return index > 0 and child_prec == parent_prec
    if isinstance(parent, ImplicitProduct):
        child_prec = _precedence(child)
        if child_prec < 2:
            return True
        if index == 0:
            return False
        if child_prec <= 3:
            return True
        # a number may only follow a closing parenthesis
        return isinstance(child, Constant) and not isinstance(parent.children[index - 1], Group)
    return False


def child_text(parent: Node, index: int) -> str:
    """Text of ``parent.children[index]`` as it appears inside the parent."""
    child = parent.children[index]
    if _is_subtracted_term(parent, index):
        operand = child.operand
        inner = stringify(operand)
        if _precedence(operand) <= 1:
            inner = f"({inner})"
        return f"- {inner}"
    text = stringify(child)
    if _needs_parens(parent, index):
        return f"({text})"
    return text


def render_parts(node: Node) -> List[Union[str, int]]:
    """Layout of ``node`` as literal strings and child indices.

    ``stringify`` joins these parts; the subexpression extractor walks the
    same layout, so both agree on where every child sits.
    """
    if isinstance(node, Constant):
        return [format_number(node.value)]
    if isinstance(node, Atom):
        return [node.name]
    if isinstance(node, Unary):
        return ["-", 0]
    if isinstance(node, Group):
        return ["(", 0, ")"]
    if isinstance(node, ImplicitProduct):
        return list(range(len(node.factors)))
    if isinstance(node, Operator):
        parts: List[Union[str, int]] = [0]
        for index in range(1, len(node.operands)):
            parts.append(" " if _is_subtracted_term(node, index) else f" {node.sign} ")
            parts.append(index)
        return parts
    if isinstance(node, Equation):
        return [0, f" {node.comparator} ", 1]
    raise TypeError(f"unsupported node: {type(node).__name__}")


def stringify(node: Node) -> str:
    """Canonical text for ``node``."""
    return "".join(
        part if isinstance(part, str) else child_text(node, part)
        for part in render_parts(node)
    )


def node_to_dict(node: Node) -> Dict[str, Any]:
    """JSON-friendly representation of a tree."""
    data: Dict[str, Any] = {"kind": node.kind, "id": node.node_id}
    if isinstance(node, Constant):
        data["value"] = node.value
    elif isinstance(node, Atom):
        data["value"] = node.name
    elif isinstance(node, Operator):
        data["value"] = node.sign
    elif isinstance(node, Unary):
        data["value"] = "-"
        data["synthesized"] = node.synthesized
    elif isinstance(node, ImplicitProduct):
        data["value"] = "*"
    elif isinstance(node, Equation):
        data["value"] = node.comparator
    if node.children:
        data["children"] = [node_to_dict(c) for c in node.children]
    if node.tokens:
        data["tokens"] = list(node.tokens)
    return data
