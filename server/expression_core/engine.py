"""
The selection and rewrite cycle.

Given expression text and a path, list the rewrites available at that
node with full-expression previews; apply one, then re-stringify, re-parse
and re-resolve the path so the caller can keep its selection.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Protocol, Sequence, Tuple

from .extractor import Subexpression, entry_at_offset, entry_for_range, extract_subexpressions
from .nodes import Equation, Group, IdGenerator, Node, stringify
from .parser import parse_statement
from .paths import Path, Step, normalize_path, replace_at_path, resolve_path
from .rules import (
    CATEGORY_ORDER,
    GROUP_REMOVAL_RULES,
    Rule,
    RuleApplicationError,
    RuleCategory,
    get_applicable_rules,
)

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Operation:
    """A rewrite offered for a selected node."""
    id: str
    name: str
    category: str
    # full expression after the rewrite
    preview: str
    # the selected node after the rewrite
    replacement: str
    path: Path
    source: str = "local"


@dataclass(frozen=True)
class RewriteResult:
    expression: str
    tree: Node
    # the selection re-resolved against the new tree, None if it went away
    path: Optional[Path]


class TransformBackend(Protocol):
    """An external rewriter consulted alongside the local catalog."""

    def list_operations(self, expression: str, path: Path) -> List[Operation]:
        ...

    def apply(self, expression: str, path: Path, operation_id: str) -> Node:
        ...


def _category_rank(category: str) -> int:
    for index, known in enumerate(CATEGORY_ORDER):
        if known.value == category:
            return index
    return len(CATEGORY_ORDER)


def _wrapper(tree: Node, path: Path, target: Node) -> Optional[Group]:
    """The group a selection was entered through, if any."""
    wrapper = resolve_path(tree, path, transparent=False)
    if wrapper is target or not isinstance(wrapper, Group):
        return None
    return wrapper


def _candidates(tree: Node, path: Path, target: Node) -> List[Tuple[Rule, Node]]:
    """(rule, node) pairs for a selection, the enclosing group's removal rules last."""
    if isinstance(target, Equation):
        return []
    candidates = [(rule, target) for rule in get_applicable_rules(target)]
    wrapper = _wrapper(tree, path, target)
    if wrapper is not None:
        candidates.extend(
            (rule, wrapper) for rule in get_applicable_rules(wrapper) if rule.id in GROUP_REMOVAL_RULES
        )
    return candidates


def list_operations(
    text: str,
    path: Sequence[Step],
    backend: Optional[TransformBackend] = None,
) -> List[Operation]:
    """Operations applicable at ``path`` in category order.

    Operations that would leave the expression unchanged are dropped, and
    candidates with an already listed preview are skipped. Raises
    ParseError for invalid text; an unresolvable path yields no operations.
    """
    tree = parse_statement(text)
    path = tuple(path)
    target = resolve_path(tree, path)
    if not target:
        return []

    current = stringify(tree)
    canonical = normalize_path(tree, path)
    seen = {current}
    operations: List[Operation] = []

    for rule, node in _candidates(tree, path, target):
        ids = IdGenerator.following(tree)
        replacement = rule.apply(node, ids)
        preview = stringify(replace_at_path(tree, path, replacement, ids, transparent=node is target))
        if preview in seen:
            log.debug("dropping %s, preview %r already listed", rule.id, preview)
            continue
        seen.add(preview)
        operations.append(Operation(
            id=rule.id,
            name=rule.name,
            category=rule.category.value,
            preview=preview,
            replacement=stringify(replacement),
            path=canonical,
        ))

    if backend is not None:
        for operation in backend.list_operations(current, canonical):
            if operation.preview in seen:
                continue
            seen.add(operation.preview)
            operations.append(operation)

    operations.sort(key=lambda op: _category_rank(op.category))
    return operations


def rewrite(
    text: str,
    path: Sequence[Step],
    operation_id: str,
    backend: Optional[TransformBackend] = None,
) -> Node:
    """Tree after applying ``operation_id`` at ``path``, without re-parsing."""
    tree = parse_statement(text)
    path = tuple(path)
    target = resolve_path(tree, path)
    if not target:
        raise RuleApplicationError(operation_id, tree, "selection does not resolve")

    for rule, node in _candidates(tree, path, target):
        if rule.id == operation_id:
            ids = IdGenerator.following(tree)
            return replace_at_path(tree, path, rule.apply(node, ids), ids, transparent=node is target)
    if backend is not None:
        return backend.apply(stringify(tree), normalize_path(tree, path), operation_id)
    raise RuleApplicationError(operation_id, target, "rule is not applicable")


def apply_operation(
    text: str,
    path: Sequence[Step],
    operation_id: str,
    backend: Optional[TransformBackend] = None,
) -> RewriteResult:
    """Apply an operation and re-resolve the selection on the re-parsed result.

    Raises RuleApplicationError when the operation is not available at
    ``path``.
    """
    expression = stringify(rewrite(text, path, operation_id, backend))
    tree = parse_statement(expression)
    new_path: Optional[Path] = None
    if resolve_path(tree, path):
        new_path = normalize_path(tree, path)
    log.debug("%s at %s: %r -> %r", operation_id, list(path), text, expression)
    return RewriteResult(expression, tree, new_path)


def subexpressions(text: str, include_rules: bool = False) -> List[Subexpression]:
    """Subexpression table of the canonical rendering of ``text``."""
    tree = parse_statement(text)
    return extract_subexpressions(tree, include_rules=include_rules)


def path_for_range(text: str, start: int, end: Optional[int] = None) -> Optional[Path]:
    """Path of the subexpression selected by a range of the canonical text.

    Without ``end`` the innermost node under the caret at ``start`` is used.
    """
    entries = subexpressions(text)
    if end is None:
        entry = entry_at_offset(entries, start)
    else:
        entry = entry_for_range(entries, start, end)
    return entry.path if entry is not None else None


def locate(text: str, path: Sequence[Step]) -> Optional[Subexpression]:
    """Entry of the canonical text addressed by ``path``, or None."""
    tree = parse_statement(text)
    target = resolve_path(tree, path)
    if not target:
        return None
    for entry in extract_subexpressions(tree):
        if entry.node is target:
            return entry
    return None


def rule_categories() -> List[str]:
    return [category.value for category in RuleCategory]
