"""
Transactions: atomic batches of primitive edits on a document snapshot.

A Transaction starts from a snapshot and applies each step eagerly to its own
working copy, so callers can inspect ``tr.doc`` between steps. Nothing
changes for the document until the transaction is dispatched, at which point
the whole batch becomes the new snapshot at once.

Example:
    >>> tr = document.transaction()
    >>> tr.insert(5, [schema.text("new ")])
    >>> tr.set_meta("origin", "my-plugin")
    >>> document.dispatch(tr)
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from .errors import SchemaError
from .models.node import Node
from .schema import Schema, default_schema
from .tree import node_at, replace_range, set_node_attrs


@dataclass(frozen=True)
class SetAttrsStep:
    """Rewrite attributes of the node starting at ``pos``."""

    pos: int
    attrs: dict[str, Any]

    def apply(self, doc: Node, schema: Schema) -> Node:
        return set_node_attrs(doc, self.pos, self.attrs)


@dataclass(frozen=True)
class ReplaceStep:
    """Replace ``from_pos..to_pos`` with ``nodes`` (insert when equal, delete when empty)."""

    from_pos: int
    to_pos: int
    nodes: tuple[Node, ...]

    def apply(self, doc: Node, schema: Schema) -> Node:
        new_doc, parent = replace_range(doc, self.from_pos, self.to_pos, self.nodes)
        schema.validate_content(parent)
        return new_doc


Step = SetAttrsStep | ReplaceStep


class Transaction:
    """A batch of edit steps with side-channel metadata.

    Attributes:
        before: The snapshot the transaction was started from
        doc: The working snapshot after all steps applied so far
        steps: The steps applied so far
    """

    def __init__(self, doc: Node, schema: Schema | None = None) -> None:
        self.before = doc
        self.doc = doc
        self.schema = schema or default_schema()
        self.steps: list[Step] = []
        self._meta: dict[str, Any] = {}

    @property
    def doc_changed(self) -> bool:
        return bool(self.steps)

    def step(self, step: Step) -> Transaction:
        """Apply a step to the working snapshot.

        Raises:
            PositionError: If the step's positions are invalid
            SchemaError: If the step produces invalid content
        """
        self.doc = step.apply(self.doc, self.schema)
        self.steps.append(step)
        return self

    def set_node_attrs(self, pos: int, **attrs: Any) -> Transaction:
        """Rewrite attributes of the node at ``pos`` without moving anything."""
        spec_attrs = self.schema.spec(node_at(self.doc, pos).type).attrs
        unknown = sorted(set(attrs) - set(spec_attrs))
        if unknown:
            raise SchemaError(f"Unknown attribute(s): {', '.join(unknown)}")
        return self.step(SetAttrsStep(pos, dict(attrs)))

    def replace(self, from_pos: int, to_pos: int, nodes: Sequence[Node] = ()) -> Transaction:
        return self.step(ReplaceStep(from_pos, to_pos, tuple(nodes)))

    def insert(self, pos: int, nodes: Node | Sequence[Node]) -> Transaction:
        if isinstance(nodes, Node):
            nodes = [nodes]
        return self.replace(pos, pos, nodes)

    def delete(self, from_pos: int, to_pos: int) -> Transaction:
        return self.replace(from_pos, to_pos, ())

    def set_meta(self, key: str, value: Any) -> Transaction:
        self._meta[key] = value
        return self

    def get_meta(self, key: str, default: Any = None) -> Any:
        return self._meta.get(key, default)

    @property
    def meta(self) -> dict[str, Any]:
        return dict(self._meta)

    def __repr__(self) -> str:
        return f"<Transaction steps={len(self.steps)} meta={self._meta!r}>"


@dataclass(frozen=True)
class ChangeEvent:
    """Notification sent to subscribers after a transaction is dispatched.

    Attributes:
        before: Snapshot before the transaction
        after: Snapshot after the transaction
        transaction: The dispatched transaction
    """

    before: Node
    after: Node
    transaction: Transaction = field(compare=False)

    def get_meta(self, key: str, default: Any = None) -> Any:
        return self.transaction.get_meta(key, default)
