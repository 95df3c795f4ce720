from lxml import etree

from expression_core.mathml import MATHML_NS, to_content_mathml, to_presentation_mathml
from expression_core.nodes import Atom, Operator, count_nodes
from expression_core.parser import parse, parse_statement
from expression_core.paths import path_from_string, resolve_path

NS = {"m": MATHML_NS}


def presentation(tree, **kwargs):
    return etree.fromstring(to_presentation_mathml(tree, **kwargs))


def operators(root):
    return [mo.text for mo in root.iterfind(".//m:mo", NS)]


class TestPresentation:
    def test_root_element(self):
        root = presentation(parse("a"))
        assert root.tag == f"{{{MATHML_NS}}}math"
        assert root.get("display") == "block"
        assert presentation(parse("a"), display="inline").get("display") == "inline"

    def test_every_node_carries_its_path(self):
        tree = parse("2(a + b)")
        tagged = presentation(tree).xpath("//*[@data-path]")
        assert len(tagged) == count_nodes(tree)
        for element in tagged:
            assert resolve_path(tree, path_from_string(element.get("data-path")))

    def test_group_and_content_paths(self):
        paths = [e.get("data-path") for e in presentation(parse("2(a + b)")).xpath("//*[@data-path]")]
        assert paths == [
            "[]",
            '["args", 0]',
            '["args", 1]',
            '["args", 1, "content"]',
            '["args", 1, "content", "args", 0]',
            '["args", 1, "content", "args", 1]',
        ]

    def test_operator_glyphs(self):
        assert operators(presentation(parse("a - b * c"))) == ["−", "×"]

    def test_invisible_times_between_factors(self):
        assert operators(presentation(parse("2a"))) == ["⁢"]

    def test_context_parentheses(self):
        tree = Operator("*", [Atom("a"), Operator("+", [Atom("b"), Atom("c")])])
        assert operators(presentation(tree)) == ["×", "(", "+", ")"]

    def test_leaves(self):
        root = presentation(parse("2x"))
        assert [e.text for e in root.iterfind(".//m:mn", NS)] == ["2"]
        assert [e.text for e in root.iterfind(".//m:mi", NS)] == ["x"]


class TestContent:
    def test_sum(self):
        root = etree.fromstring(to_content_mathml(parse("a + 1")))
        apply = root[0]
        assert [etree.QName(child).localname for child in apply] == ["plus", "ci", "cn"]

    def test_groups_are_transparent(self):
        root = etree.fromstring(to_content_mathml(parse("(a)")))
        assert etree.QName(root[0]).localname == "ci"

    def test_relations(self):
        root = etree.fromstring(to_content_mathml(parse_statement("x <= 1")))
        assert etree.QName(root[0][0]).localname == "leq"

    def test_negation_and_implicit_product(self):
        root = etree.fromstring(to_content_mathml(parse("-2a")))
        # (-2) * a
        assert etree.QName(root[0][0]).localname == "times"
        assert etree.QName(root[0][1][0]).localname == "minus"
