"""
Path addressing for expression trees.

A path is a tuple of steps:

* ``Arg(i)`` selects the i-th child,
* ``Content()`` explicitly enters a group,
* ``Side("left" | "right")`` selects one side of an equation.

Groups are transparent. An ``Arg``/``Side`` step that lands on a group
keeps descending through it unless the next step is ``Content``; a
``Content`` step on anything but a group is a no-op, so paths recorded
before a group was removed stay usable. Resolution, replacement and
normalization all go through ``_walk``.

On the wire a path is a flat list: ``["args", 1, "content"]``,
``["left", "args", 0]``.
"""

import json
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, Union

from .nodes import Equation, Group, IdGenerator, Node, NodeBuilder

log = logging.getLogger(__name__)

SIDES = ("left", "right")


@dataclass(frozen=True)
class Arg:
    index: int


@dataclass(frozen=True)
class Content:
    pass


@dataclass(frozen=True)
class Side:
    side: str


Step = Union[Arg, Content, Side]
Path = Tuple[Step, ...]


class _NotFound:
    """Marker for a path that does not resolve. It is falsy."""

    def __bool__(self):
        return False

    def __repr__(self):
        return "NOT_FOUND"


NOT_FOUND = _NotFound()


@dataclass(frozen=True)
class _Hop:
    parent: Node
    index: int
    child: Node
    # canonical step this hop contributes; None for transparent descents
    step: Optional[Step]


@dataclass(frozen=True)
class _Walk:
    root: Node
    hops: Tuple[_Hop, ...]
    # position of the first unnavigable step, None when the path resolved
    failed_at: Optional[int]

    @property
    def resolved(self) -> bool:
        return self.failed_at is None

    @property
    def node(self) -> Node:
        return self.hops[-1].child if self.hops else self.root

    def steps(self) -> Path:
        return tuple(hop.step for hop in self.hops if hop.step is not None)

    def opaque(self) -> "_Walk":
        """The walk without its trailing transparent descents.

        Ends on the outermost group the last step landed on instead of
        that group's content.
        """
        end = len(self.hops)
        while end > 0 and self.hops[end - 1].step is None:
            end -= 1
        return _Walk(self.root, self.hops[:end], self.failed_at)


def _enter_groups(node: Node, hops: List[_Hop]) -> Node:
    while isinstance(node, Group):
        hops.append(_Hop(node, 0, node.content, None))
        node = node.content
    return node


def _walk(root: Node, path: Sequence[Step]) -> _Walk:
    hops: List[_Hop] = []
    current = root
    for position, step in enumerate(path):
        following = path[position + 1] if position + 1 < len(path) else None

        if isinstance(step, Content):
            if isinstance(current, Group):
                hops.append(_Hop(current, 0, current.content, step))
                current = current.content
            continue

        if isinstance(step, Arg):
            current = _enter_groups(current, hops)
            if isinstance(current, Equation) or not 0 <= step.index < len(current.children):
                return _Walk(root, tuple(hops), position)
            index = step.index
        elif isinstance(step, Side):
            if not isinstance(current, Equation) or step.side not in SIDES:
                return _Walk(root, tuple(hops), position)
            index = SIDES.index(step.side)
        else:
            raise TypeError(f"not a path step: {step!r}")

        child = current.children[index]
        hops.append(_Hop(current, index, child, step))
        current = child
        if not isinstance(following, Content):
            current = _enter_groups(current, hops)

    return _Walk(root, tuple(hops), None)


def resolve_path(tree: Node, path: Sequence[Step], transparent: bool = True):
    """Node addressed by ``path``, or NOT_FOUND.

    With ``transparent=False`` a path whose last step lands on a group
    resolves to that group rather than to its content.
    """
    walk = _walk(tree, path)
    if not walk.resolved:
        log.debug("path %s does not resolve (step %d)", path_to_string(path), walk.failed_at)
        return NOT_FOUND
    return walk.node if transparent else walk.opaque().node


def replace_at_path(
    tree: Node,
    path: Sequence[Step],
    replacement: Node,
    ids: Optional[IdGenerator] = None,
    transparent: bool = True,
) -> Node:
    """New tree with the addressed node swapped for ``replacement``.

    Nodes along the path are copied with fresh identities, everything else
    is shared. Groups passed through transparently are kept, unless
    ``transparent=False`` in which case the group itself is replaced. A
    path that does not resolve leaves the tree as it is.
    """
    walk = _walk(tree, path)
    if not walk.resolved:
        log.debug("replace skipped, path %s does not resolve", path_to_string(path))
        return tree
    if not transparent:
        walk = walk.opaque()

    builder = NodeBuilder(ids if ids is not None else IdGenerator.following(tree, replacement))
    result = replacement
    for hop in reversed(walk.hops):
        children = list(hop.parent.children)
        children[hop.index] = result
        result = builder.rebuild(hop.parent, children)
    return result


def normalize_path(tree: Node, path: Sequence[Step]) -> Path:
    """Canonical spelling of ``path`` for ``tree``.

    Stale ``Content`` steps are dropped and the path is cut at the first
    step the tree cannot follow.
    """
    walk = _walk(tree, path)
    if not walk.resolved:
        log.debug("path %s truncated at step %d", path_to_string(path), walk.failed_at)
    return walk.steps()


def paths_equal(first: Sequence[Step], second: Sequence[Step]) -> bool:
    """Strict step-by-step equality. Normalize first for semantic equality."""
    return tuple(first) == tuple(second)


def child_step(parent: Node, index: int) -> Step:
    """The explicit step leading from ``parent`` to its ``index``-th child."""
    if isinstance(parent, Group):
        return Content()
    if isinstance(parent, Equation):
        return Side(SIDES[index])
    return Arg(index)


# --- Wire format ---

def path_to_list(path: Sequence[Step]) -> List[Union[str, int]]:
    items: List[Union[str, int]] = []
    for step in path:
        if isinstance(step, Arg):
            items.extend(["args", step.index])
        elif isinstance(step, Content):
            items.append("content")
        elif isinstance(step, Side):
            items.append(step.side)
        else:
            raise TypeError(f"not a path step: {step!r}")
    return items


def path_from_list(items: Sequence[Union[str, int]]) -> Path:
    """Parse the wire form. Raises ValueError for malformed input."""
    steps: List[Step] = []
    position = 0
    while position < len(items):
        item = items[position]
        if item == "args":
            if position + 1 >= len(items):
                raise ValueError("'args' must be followed by an index")
            index = items[position + 1]
            if isinstance(index, bool) or not isinstance(index, int) or index < 0:
                raise ValueError(f"invalid argument index: {index!r}")
            steps.append(Arg(index))
            position += 2
            continue
        if item == "content":
            steps.append(Content())
        elif item in SIDES:
            steps.append(Side(item))
        else:
            raise ValueError(f"unknown path step: {item!r}")
        position += 1
    return tuple(steps)


def path_to_string(path: Sequence[Step]) -> str:
    return json.dumps(path_to_list(path))


def path_from_string(text: str) -> Path:
    try:
        items = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValueError(f"path is not valid JSON: {exc}") from None
    if not isinstance(items, list):
        raise ValueError("path must be a JSON list")
    return path_from_list(items)
