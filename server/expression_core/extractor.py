"""
Subexpression extraction: the (path, text range) table used for hit
testing and highlighting.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .nodes import Equation, Node, Unary, child_text, render_parts, stringify
from .paths import Path, child_step
from .rules import Rule, get_applicable_rules

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Subexpression:
    """One node of the tree and the text it occupies."""
    text: str
    start: int
    end: int
    path: Path
    node: Node = field(compare=False)
    rules: Tuple[Rule, ...] = field(default=(), compare=False)

    def contains(self, offset: int) -> bool:
        return self.start <= offset < self.end


class _Extractor:
    def __init__(self, text: str, include_rules: bool):
        self.text = text
        self.include_rules = include_rules
        self.entries: List[Subexpression] = []

    def _find(self, needle: str, start: int, end: int) -> int:
        position = self.text.find(needle, start, end)
        if position < 0:
            raise ValueError(f"{needle!r} not found in {self.text[start:end]!r}")
        return position

    def _record(self, node: Node, path: Path, start: int, end: int):
        rules: Tuple[Rule, ...] = ()
        if self.include_rules and not isinstance(node, Equation):
            rules = tuple(get_applicable_rules(node))
        self.entries.append(Subexpression(self.text[start:end], start, end, path, node, rules))

    def visit(self, node: Node, path: Path, start: int, end: int):
        self._record(node, path, start, end)

        # search each child after the previous one so repeated text such as
        # the two 1s in "1 + 0 + 1" maps to the right node
        cursor = start
        for part in render_parts(node):
            if isinstance(part, str):
                literal = part.strip()
                if literal:
                    cursor = self._find(literal, cursor, end) + len(literal)
                continue

            child = node.children[part]
            child_path = path + (child_step(node, part),)
            shown = child_text(node, part)
            child_start = self._find(shown, cursor, end)
            child_end = child_start + len(shown)
            cursor = child_end
            if isinstance(child, Unary) and shown.startswith("- "):
                self._visit_subtracted(child, child_path, child_start, child_end)
                continue
            if shown == f"({stringify(child)})":
                child_start, child_end = child_start + 1, child_end - 1
            self.visit(child, child_path, child_start, child_end)

    def _visit_subtracted(self, node: Unary, path: Path, start: int, end: int):
        """A ``- b`` term of a sum, laid out by the sum rather than by the negation."""
        self._record(node, path, start, end)
        operand_start = start + 2
        if self.text[operand_start:end] != stringify(node.operand):
            operand_start, end = operand_start + 1, end - 1
        self.visit(node.operand, path + (child_step(node, 0),), operand_start, end)


def extract_subexpressions(
    tree: Node,
    text: Optional[str] = None,
    include_rules: bool = False,
) -> List[Subexpression]:
    """One entry per node of ``tree``, in pre-order.

    ``text`` defaults to the canonical rendering of the tree and must
    contain it. With ``include_rules`` every entry also carries the rules
    applicable to its node.
    """
    rendered = stringify(tree)
    if text is None:
        text = rendered
    start = text.find(rendered)
    if start < 0:
        raise ValueError(f"text {text!r} does not render the tree {rendered!r}")

    extractor = _Extractor(text, include_rules)
    extractor.visit(tree, (), start, start + len(rendered))
    log.debug("extracted %d subexpressions from %r", len(extractor.entries), text)
    return extractor.entries


def entry_at_offset(entries: List[Subexpression], offset: int) -> Optional[Subexpression]:
    """Innermost entry covering the character at ``offset``."""
    best = None
    for entry in entries:
        if entry.contains(offset) and (best is None or entry.end - entry.start <= best.end - best.start):
            best = entry
    return best


def entry_for_range(entries: List[Subexpression], start: int, end: int) -> Optional[Subexpression]:
    """Entry for a selected text range.

    An exact span match wins; otherwise the smallest entry enclosing the
    range is used.
    """
    best = None
    for entry in entries:
        if entry.start == start and entry.end == end:
            return entry
        if entry.start <= start and end <= entry.end:
            if best is None or entry.end - entry.start < best.end - best.start:
                best = entry
    return best


def ranges_overlap(start1: int, end1: int, start2: int, end2: int) -> bool:
    """Half-open ranges overlap; touching ranges do not."""
    return start1 < end2 and start2 < end1


def assign_levels(entries: List[Subexpression]) -> List[List[Subexpression]]:
    """Stack entries into levels so no two entries on a level overlap.

    Shorter entries are placed first, so the innermost frames sit on level 0.
    """
    levels: List[List[Subexpression]] = []
    for entry in sorted(entries, key=lambda e: (e.end - e.start, e.start)):
        for level in levels:
            if not any(ranges_overlap(entry.start, entry.end, other.start, other.end) for other in level):
                level.append(entry)
                break
        else:
            levels.append([entry])
    return levels
