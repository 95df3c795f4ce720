import pytest

from expression_core.nodes import (
    Atom,
    Constant,
    Equation,
    Group,
    IdGenerator,
    ImplicitProduct,
    NodeBuilder,
    Operator,
    Unary,
    count_nodes,
    format_number,
    max_node_id,
    node_to_dict,
    stringify,
)
from expression_core.parser import parse

a, b, c = Atom("a"), Atom("b"), Atom("c")


class TestInvariants:
    def test_operator_needs_two_children(self):
        with pytest.raises(ValueError):
            Operator("+", [a])

    def test_unknown_sign(self):
        with pytest.raises(ValueError):
            Operator("^", [a, b])

    def test_implicit_product_needs_two_children(self):
        with pytest.raises(ValueError):
            ImplicitProduct([a])

    def test_unknown_comparator(self):
        with pytest.raises(ValueError):
            Equation(a, b, "!=")

    def test_nodes_are_immutable(self):
        with pytest.raises(AttributeError):
            a.name = "b"

    def test_identity_is_not_part_of_equality(self):
        assert Atom("x", node_id=1) == Atom("x", node_id=2)
        assert Unary(a) != Unary(a, synthesized=True)


class TestIdGenerator:
    def test_sequential(self):
        ids = IdGenerator()
        assert [ids.next_id() for _ in range(3)] == [0, 1, 2]
        assert ids.peek == 3

    def test_following_starts_after_existing_tree(self):
        tree = parse("a + b * c")
        assert IdGenerator.following(tree).peek == max_node_id(tree) + 1

    def test_builder_assigns_fresh_identities(self, ids):
        build = NodeBuilder(ids)
        node = build.operator("+", [build.atom("a"), build.constant(2.0)])
        assert [node.operands[0].node_id, node.operands[1].node_id, node.node_id] == [0, 1, 2]
        assert node.operands[1].value == 2
        assert isinstance(node.operands[1].value, int)


class TestStringify:
    def test_n_ary_operators(self):
        assert stringify(Operator("+", [a, b, c])) == "a + b + c"
        assert stringify(Operator("*", [Constant(2), a, b])) == "2 * a * b"

    def test_synthesized_negation_inside_sum(self):
        node = Operator("+", [a, Unary(b, synthesized=True), c])
        assert stringify(node) == "a - b + c"

    def test_synthesized_negation_of_sum(self):
        node = Operator("+", [a, Unary(Operator("+", [b, c]), synthesized=True)])
        assert stringify(node) == "a - (b + c)"

    def test_leading_synthesized_negation(self):
        assert stringify(Operator("+", [Unary(a, synthesized=True), b])) == "-a + b"

    def test_typed_negation_inside_sum(self):
        assert stringify(Operator("+", [a, Unary(b)])) == "a + -b"

    def test_lower_precedence_child_is_parenthesized(self):
        node = Operator("*", [a, Operator("+", [b, c])])
        assert stringify(node) == "a * (b + c)"

    def test_equal_precedence_on_the_right(self):
        assert stringify(Operator("-", [a, Operator("-", [b, c])])) == "a - (b - c)"
        assert stringify(Operator("-", [Operator("-", [a, b]), c])) == "a - b - c"

    def test_unary_of_compound_operand(self):
        assert stringify(Unary(Operator("*", [a, b]))) == "-(a * b)"
        assert stringify(Unary(Unary(a))) == "--a"

    def test_implicit_products(self):
        assert stringify(ImplicitProduct([Constant(2), a])) == "2a"
        assert stringify(ImplicitProduct([a, Constant(2)])) == "a(2)"
        assert stringify(ImplicitProduct([Group(a), Constant(2)])) == "(a)2"
        assert stringify(ImplicitProduct([Constant(2), Unary(a)])) == "2(-a)"

    def test_negative_constant(self):
        assert stringify(Operator("*", [a, Constant(-3)])) == "a * -3"

    def test_format_number(self):
        assert format_number(2) == "2"
        assert format_number(2.0) == "2"
        assert format_number(0.25) == "0.25"

    @pytest.mark.parametrize("value, expected", [
        (1e-05, "0.00001"),
        (-2.5e-07, "-0.00000025"),
        (1.5e+22, "15000000000000000000000"),
        (1.25e+17, "125000000000000000"),
    ])
    def test_format_number_never_uses_exponents(self, value, expected):
        assert format_number(value) == expected
        assert parse(format_number(abs(value))) == Constant(abs(value))


def test_node_to_dict():
    data = node_to_dict(parse("2a - 1", IdGenerator()))
    assert data["kind"] == "operator"
    assert data["value"] == "-"
    implicit, one = data["children"]
    assert implicit["kind"] == "implicit_mul"
    assert [child["kind"] for child in implicit["children"]] == ["constant", "atom"]
    assert one == {"kind": "constant", "id": 3, "value": 1, "tokens": [4]}


def test_tree_measures():
    tree = parse("2(a + b)")
    assert count_nodes(tree) == 6
