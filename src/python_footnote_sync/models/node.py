"""
Immutable document nodes for python_footnote_sync.

All nodes are frozen dataclasses. A document snapshot is a tree of nodes that
is never mutated in place: edits build a new tree that shares every untouched
subtree with the previous snapshot.

Positions follow the usual rich-text convention:

- a text node occupies one position per character
- a leaf node (an inline atom such as a footnote reference) occupies one
- any other node occupies its content size plus two (open and close tokens)

The content of the root node starts at position 0.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field, replace
from typing import Any

from ..constants import TEXT


@dataclass(frozen=True, slots=True)
class Mark:
    """Inline formatting applied to a text node (bold, link, ...).

    Attributes:
        type: Mark type name
        attrs: Mark attributes (e.g. ``href`` for links)
    """

    type: str
    attrs: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class Node:
    """A node in a document tree.

    Attributes:
        type: Node type name (see ``constants``)
        attrs: Node attributes, always holding every attribute of the type
        content: Child nodes
        text: Text content, only set for text nodes
        marks: Marks applied to a text node
        leaf: Whether the node is an atom occupying a single position
    """

    type: str
    attrs: dict[str, Any] = field(default_factory=dict)
    content: tuple[Node, ...] = ()
    text: str | None = None
    marks: tuple[Mark, ...] = ()
    leaf: bool = False

    @property
    def is_text(self) -> bool:
        return self.type == TEXT

    @property
    def node_size(self) -> int:
        """Number of positions this node occupies in its parent."""
        if self.is_text:
            return len(self.text or "")
        if self.leaf:
            return 1
        return self.content_size + 2

    @property
    def content_size(self) -> int:
        return sum(child.node_size for child in self.content)

    @property
    def child_count(self) -> int:
        return len(self.content)

    @property
    def text_content(self) -> str:
        """Concatenated text of this node and all its descendants."""
        if self.is_text:
            return self.text or ""
        return "".join(child.text_content for child in self.content)

    def with_content(self, content: tuple[Node, ...] | list[Node]) -> Node:
        return replace(self, content=tuple(content))

    def with_attrs(self, **attrs: Any) -> Node:
        """Return a copy of this node with some attributes replaced."""
        merged = dict(self.attrs)
        merged.update(attrs)
        return replace(self, attrs=merged)

    def with_text(self, text: str) -> Node:
        return replace(self, text=text)

    def same_markup(self, other: Node) -> bool:
        """Check whether two nodes share type, attributes and marks."""
        return self.type == other.type and self.attrs == other.attrs and self.marks == other.marks

    def descendants(self) -> Iterator[tuple[Node, int]]:
        """Iterate over all descendants with their absolute positions.

        Yields ``(node, pos)`` pairs in document order, where ``pos`` is the
        position directly before the node. This node is treated as the root.
        """
        yield from _walk(self, 0)

    def __repr__(self) -> str:
        if self.is_text:
            return f"Text({self.text!r})"
        inner = ", ".join(repr(child) for child in self.content)
        return f"{self.type}({self.attrs!r}, [{inner}])"


def _walk(node: Node, start: int) -> Iterator[tuple[Node, int]]:
    pos = start
    for child in node.content:
        yield child, pos
        if child.content:
            yield from _walk(child, pos + 1)
        pos += child.node_size


def normalize_inline(content: list[Node] | tuple[Node, ...]) -> tuple[Node, ...]:
    """Merge adjacent text nodes with identical marks and drop empty ones.

    Args:
        content: Sequence of sibling nodes

    Returns:
        Normalized tuple of nodes
    """
    result: list[Node] = []
    for node in content:
        if node.is_text:
            if not node.text:
                continue
            if result and result[-1].is_text and result[-1].marks == node.marks:
                result[-1] = result[-1].with_text((result[-1].text or "") + node.text)
                continue
        result.append(node)
    return tuple(result)
