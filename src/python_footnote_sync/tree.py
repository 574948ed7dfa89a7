"""
Position resolution and structural edits on immutable node trees.

These functions are the primitive operations behind transactions. Each one
takes a root node and returns a new root; untouched subtrees are shared with
the input tree.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from .errors import PositionError
from .models.node import Node, normalize_inline


@dataclass(frozen=True)
class ResolvedPos:
    """A position resolved against a tree.

    Attributes:
        pos: The absolute position
        path: ``(node, content_start, index)`` per depth, root first. ``index``
            is the child index the path descends into (None at the deepest level)
    """

    pos: int
    path: tuple[tuple[Node, int, int | None], ...]

    @property
    def depth(self) -> int:
        return len(self.path) - 1

    @property
    def parent(self) -> Node:
        return self.path[-1][0]

    @property
    def start(self) -> int:
        """Absolute position where the parent's content starts."""
        return self.path[-1][1]

    @property
    def parent_offset(self) -> int:
        return self.pos - self.start

    def node(self, depth: int) -> Node:
        return self.path[depth][0]

    def ancestors(self) -> list[Node]:
        return [entry[0] for entry in self.path]

    def index(self) -> int:
        """Index of the child at or after this position inside the parent."""
        offset = 0
        for i, child in enumerate(self.parent.content):
            if offset >= self.parent_offset:
                return i
            offset += child.node_size
            if offset > self.parent_offset:
                # Inside a text node
                return i
        return self.parent.child_count

    def node_after(self) -> Node | None:
        """The child starting exactly at this position, if any."""
        offset = 0
        for child in self.parent.content:
            if offset == self.parent_offset:
                return child
            if offset > self.parent_offset:
                return None
            offset += child.node_size
        return None


def resolve(root: Node, pos: int) -> ResolvedPos:
    """Resolve an absolute position to the deepest node containing it.

    Args:
        root: Root of the tree
        pos: Absolute position

    Returns:
        ResolvedPos describing the containing nodes

    Raises:
        PositionError: If the position is outside the root's content
    """
    if pos < 0 or pos > root.content_size:
        raise PositionError(pos, f"outside document range 0..{root.content_size}")

    path: list[tuple[Node, int, int | None]] = []
    node = root
    start = 0
    while True:
        child_start = start
        descended = False
        for i, child in enumerate(node.content):
            end = child_start + child.node_size
            if child_start < pos < end and not child.is_text and not child.leaf:
                path.append((node, start, i))
                node = child
                start = child_start + 1
                descended = True
                break
            if end > pos:
                break
            child_start = end
        if not descended:
            path.append((node, start, None))
            return ResolvedPos(pos, tuple(path))


def _rebuild(resolved: ResolvedPos, new_parent: Node) -> Node:
    """Replace the deepest node of a resolved path and rebuild up to the root."""
    node = new_parent
    for ancestor, _start, index in reversed(resolved.path[:-1]):
        children = list(ancestor.content)
        children[index] = node  # type: ignore[index]
        node = ancestor.with_content(children)
    return node


def _cut(
    content: Sequence[Node], from_off: int, to_off: int, inserted: Sequence[Node]
) -> list[Node]:
    before: list[Node] = []
    after: list[Node] = []
    offset = 0
    for child in content:
        end = offset + child.node_size
        if end <= from_off:
            before.append(child)
        elif offset >= to_off:
            after.append(child)
        elif child.is_text:
            text = child.text or ""
            if offset < from_off:
                before.append(child.with_text(text[: from_off - offset]))
            if end > to_off:
                after.append(child.with_text(text[to_off - offset :]))
        offset = end
    return before + list(inserted) + after


def replace_range(
    root: Node, from_pos: int, to_pos: int, nodes: Sequence[Node]
) -> tuple[Node, Node]:
    """Replace the range ``from_pos..to_pos`` with ``nodes``.

    Both ends must resolve to the same parent node. Text nodes at the
    boundaries are split; adjacent text nodes with equal marks are merged.

    Args:
        root: Root of the tree
        from_pos: Start of the range
        to_pos: End of the range (inclusive start, exclusive end)
        nodes: Nodes to insert in place of the range

    Returns:
        Tuple of (new root, new parent node)

    Raises:
        PositionError: If the range is invalid or spans different parents
    """
    if to_pos < from_pos:
        raise PositionError(to_pos, f"range end before start {from_pos}")

    start = resolve(root, from_pos)
    end = resolve(root, to_pos)
    if start.depth != end.depth or start.parent is not end.parent or start.start != end.start:
        raise PositionError(from_pos, f"range {from_pos}..{to_pos} spans different parents")

    parent = start.parent
    content = _cut(parent.content, start.parent_offset, end.parent_offset, nodes)
    new_parent = parent.with_content(normalize_inline(content))
    return _rebuild(start, new_parent), new_parent


def node_at(root: Node, pos: int) -> Node:
    """Get the node that starts exactly at ``pos``.

    Raises:
        PositionError: If no node starts at this position
    """
    resolved = resolve(root, pos)
    node = resolved.node_after()
    if node is None or node.is_text:
        raise PositionError(pos, "no node starts at this position")
    return node


def set_node_attrs(root: Node, pos: int, attrs: dict[str, Any]) -> Node:
    """Rewrite attributes of the node starting at ``pos`` in place.

    The node keeps its size, so no other position shifts.

    Returns:
        The new root
    """
    resolved = resolve(root, pos)
    target = resolved.node_after()
    if target is None or target.is_text:
        raise PositionError(pos, "no node starts at this position")
    index = resolved.index()
    children = list(resolved.parent.content)
    children[index] = target.with_attrs(**attrs)
    return _rebuild(resolved, resolved.parent.with_content(children))
