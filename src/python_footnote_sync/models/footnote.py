"""
Footnote model classes for python_footnote_sync.

These classes are read-only views over a document snapshot: a reference
marker in the body text, a citation entry in the registry, and an orphaned
citation that no marker points at.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..constants import BOLD, ITALIC, LINK, STRIKETHROUGH, UNDERLINE
from .node import Node

if TYPE_CHECKING:
    from ..document import Document


@dataclass(frozen=True)
class FootnoteReference:
    """A reference marker as found in a snapshot.

    Attributes:
        node: The ``footnote_ref`` node
        pos: Position of the marker in the snapshot it was read from
        number: Declared number of the marker
        ref_id: Stable identifier assigned at insertion time, if any
    """

    node: Node
    pos: int

    @property
    def number(self) -> int:
        return int(self.node.attrs.get("number", 1))

    @property
    def ref_id(self) -> str | None:
        return self.node.attrs.get("ref_id")


@dataclass
class OrphanedFootnote:
    """A citation entry that no reference marker correlates with.

    Orphans exist between an edit that removed a marker and the next
    reconciliation pass.

    Attributes:
        number: The entry's current number
        ref_id: The entry's stable identifier, if any
        text: The text content of the orphaned entry
    """

    number: int
    ref_id: str | None
    text: str


class Footnote:
    """Represents a citation entry in the footnote registry.

    Attributes:
        node: The ``footnote_citation`` node
        pos: Position of the entry in the snapshot it was read from
        document: Reference to the parent Document
    """

    def __init__(self, node: Node, pos: int, document: Document | None = None) -> None:
        self.node = node
        self.pos = pos
        self.document = document

    @property
    def number(self) -> int:
        """Get the footnote number."""
        return int(self.node.attrs.get("number", 1))

    @property
    def ref_id(self) -> str | None:
        return self.node.attrs.get("ref_id")

    @property
    def body(self) -> tuple[Node, ...]:
        """The authored inline content of the entry."""
        return self.node.content

    @property
    def text(self) -> str:
        """Get the plain text content of the footnote."""
        return self.node.text_content

    def contains(self, text: str, case_sensitive: bool = True) -> bool:
        """Check if the footnote contains specific text.

        Args:
            text: Text to search for
            case_sensitive: Whether search should be case-sensitive

        Returns:
            True if text is found
        """
        footnote_text = self.text
        search_text = text

        if not case_sensitive:
            footnote_text = footnote_text.lower()
            search_text = search_text.lower()

        return search_text in footnote_text

    @property
    def formatted_text(self) -> list[dict]:
        """Get text with formatting information.

        Returns:
            List of dicts, one per text node, with structure:
            {
                "text": str,
                "bold": bool,
                "italic": bool,
                "underline": bool,
                "strikethrough": bool,
                "href": str | None   # link target, if linked
            }

        Example:
            >>> footnote = doc.get_footnote(1)
            >>> for run in footnote.formatted_text:
            ...     if run["bold"]:
            ...         print(f"Bold: {run['text']}")
        """
        runs = []
        for child in self.node.content:
            if not child.is_text:
                continue
            mark_types = {mark.type: mark for mark in child.marks}
            link = mark_types.get(LINK)
            runs.append(
                {
                    "text": child.text,
                    "bold": BOLD in mark_types,
                    "italic": ITALIC in mark_types,
                    "underline": UNDERLINE in mark_types,
                    "strikethrough": STRIKETHROUGH in mark_types,
                    "href": link.attrs.get("href") if link else None,
                }
            )
        return runs

    @property
    def html(self) -> str:
        """Get the entry rendered as HTML.

        Example:
            >>> footnote = doc.get_footnote(1)
            >>> print(footnote.html)
            '<p class="footnote-citation" data-number="1" id="fn1">See <em>Smith</em></p>'
        """
        from ..html_codec import render_node

        schema = self.document.schema if self.document is not None else None
        return render_node(self.node, schema)

    @property
    def reference_location(self) -> FootnoteReference | None:
        """Get the reference marker this entry belongs to.

        Returns:
            The marker with the same stable id (or, failing that, the same
            number), or None if no marker matches.
        """
        if self.document is None:
            return None
        return self.document._note_ops.get_reference_for(self)

    def edit(self, new_text: str) -> None:
        """Replace the footnote body.

        Args:
            new_text: The new body (supports inline markdown)

        Raises:
            ValueError: If document reference is not available
        """
        if self.document is None:
            raise ValueError("Cannot edit footnote: no document reference")

        self.document.edit_footnote(self.number, new_text)

    def delete(self) -> None:
        """Delete this footnote's reference marker.

        The entry itself is dropped by the next reconciliation pass.

        Raises:
            ValueError: If document reference is not available
        """
        if self.document is None:
            raise ValueError("Cannot delete footnote: no document reference")

        self.document.delete_footnote(self.number)

    def __repr__(self) -> str:
        """Return string representation of the footnote."""
        preview = self.text[:50].replace("\n", " ")
        if len(self.text) > 50:
            preview += "..."
        return f'<Footnote number={self.number}: "{preview}">'
