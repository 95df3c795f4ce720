"""
MathML rendering of expression trees.

Presentation MathML mirrors the canonical text layout and tags every node
with a ``data-path`` attribute (the wire form of its path) so a front end
can hit-test the rendered formula. Content MathML gives the structure.
"""

from lxml import etree

from .nodes import Atom, Constant, Equation, Group, ImplicitProduct, Node, Operator, Unary
from .nodes import child_text, format_number, render_parts, stringify
from .paths import Path, child_step, path_to_string

MATHML_NS = "http://www.w3.org/1998/Math/MathML"

_OPERATOR_GLYPHS = {"*": "×", "-": "−"}
_INVISIBLE_TIMES = "⁢"

_CONTENT_OPERATORS = {"+": "plus", "-": "minus", "*": "times", "/": "divide"}
_CONTENT_RELATIONS = {"=": "eq", "<": "lt", ">": "gt", "<=": "leq", ">=": "geq"}


def _element(parent, tag: str, text=None):
    tag = f"{{{MATHML_NS}}}{tag}"
    element = etree.SubElement(parent, tag) if parent is not None else etree.Element(tag)
    if text is not None:
        element.text = text
    return element


def _mo(parent, symbol: str):
    return _element(parent, "mo", _OPERATOR_GLYPHS.get(symbol, symbol))


def _presentation(parent, node: Node, path: Path):
    if isinstance(node, Constant):
        element = _element(parent, "mn", format_number(node.value))
    elif isinstance(node, Atom):
        element = _element(parent, "mi", node.name)
    else:
        element = _element(parent, "mrow")
        for part in render_parts(node):
            if isinstance(part, str):
                literal = part.strip()
                if literal:
                    _mo(element, literal)
                continue
            child = node.children[part]
            holder = element
            if child_text(node, part) == f"({stringify(child)})":
                holder = _element(element, "mrow")
                _mo(holder, "(")
            _presentation(holder, child, path + (child_step(node, part),))
            if holder is not element:
                _mo(holder, ")")
            if isinstance(node, ImplicitProduct) and part < len(node.factors) - 1:
                _mo(element, _INVISIBLE_TIMES)
    element.set("data-path", path_to_string(path))
    return element


def to_presentation_mathml(tree: Node, display: str = "block") -> str:
    root = etree.Element(f"{{{MATHML_NS}}}math", nsmap={None: MATHML_NS})
    root.set("display", display)
    _presentation(root, tree, ())
    return etree.tostring(root, encoding="unicode")


def _content(parent, node: Node):
    if isinstance(node, Constant):
        return _element(parent, "cn", format_number(node.value))
    if isinstance(node, Atom):
        return _element(parent, "ci", node.name)
    if isinstance(node, Group):
        return _content(parent, node.content)

    apply = _element(parent, "apply")
    if isinstance(node, Unary):
        _element(apply, "minus")
    elif isinstance(node, ImplicitProduct):
        _element(apply, "times")
    elif isinstance(node, Operator):
        _element(apply, _CONTENT_OPERATORS[node.sign])
    elif isinstance(node, Equation):
        _element(apply, _CONTENT_RELATIONS[node.comparator])
    for child in node.children:
        _content(apply, child)
    return apply


def to_content_mathml(tree: Node) -> str:
    root = etree.Element(f"{{{MATHML_NS}}}math", nsmap={None: MATHML_NS})
    _content(root, tree)
    return etree.tostring(root, encoding="unicode")
