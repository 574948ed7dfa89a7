"""
NoteOperations class for handling footnotes.

This module provides a dedicated class for all footnote operations, kept
apart from the main Document class to improve separation of concerns.

Every edit made here is a plain (untagged) transaction. Numbering is never
fixed up in place: the document's Synchronizer sees the change and brings
markers and registry back into a consistent state.

Rich content support:
- Markdown formatting: **bold**, *italic*, ++underline++, ~~strikethrough~~,
  `code` and [links](https://example.com)
"""

from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING, Any

from ..constants import FOOTNOTE_CITATION, FOOTNOTE_REF, FOOTNOTE_REGISTRY
from ..errors import AmbiguousTextError, NoteNotFoundError, PositionError, TextNotFoundError
from ..fuzzy import parse_fuzzy_config
from ..markdown_parser import MarkdownParser
from ..results import InsertResult
from ..sync.builder import RegistryBuilder, index_by_id, index_by_number
from ..sync.scanner import ReferenceScanner
from ..sync.tracker import PositionTracker
from ..text_search import TextSpan, generate_suggestions
from ..tree import resolve

if TYPE_CHECKING:
    from ..document import Document
    from ..models.footnote import Footnote, FootnoteReference, OrphanedFootnote
    from ..models.node import Node

logger = logging.getLogger(__name__)


class NoteOperations:
    """Handles footnote operations.

    This class encapsulates all footnote functionality, including:
    - Accessing footnotes and reference markers in the document
    - Inserting new footnotes at specific locations
    - Editing and deleting existing footnotes

    Example:
        >>> # Usually accessed through Document
        >>> doc = Document("article.html")
        >>> footnotes = doc.footnotes
        >>> doc.insert_footnote("Citation text", at="quoted passage")
    """

    def __init__(self, document: Document) -> None:
        """Initialize NoteOperations with a Document reference.

        Args:
            document: The Document instance to operate on
        """
        self._document = document
        self._tracker = PositionTracker()
        self._scanner = ReferenceScanner(self._tracker)

    @property
    def footnotes(self) -> list[Footnote]:
        """Get all footnotes in the registry, in registry order."""
        from ..models.footnote import Footnote

        scan = self._tracker.scan(self._document.doc)
        return [Footnote(node, pos, self._document) for node, pos in scan.citations]

    @property
    def references(self) -> list[FootnoteReference]:
        """Get all reference markers in document order."""
        return self._scanner.ordered_references(self._document.doc)

    def get_footnote(self, number: int) -> Footnote:
        """Get a specific footnote by number.

        Raises:
            NoteNotFoundError: If no registry entry has this number

        Example:
            >>> footnote = doc.get_footnote(1)
            >>> print(footnote.text)
        """
        footnotes = self.footnotes
        for footnote in footnotes:
            if footnote.number == number:
                return footnote
        raise NoteNotFoundError(number, [fn.number for fn in footnotes])

    def get_reference_for(self, footnote: Footnote) -> FootnoteReference | None:
        """Find the marker an entry belongs to: same stable id, else same number."""
        references = self.references
        if footnote.ref_id:
            for ref in references:
                if ref.ref_id == footnote.ref_id:
                    return ref
        for ref in references:
            if ref.number == footnote.number:
                return ref
        return None

    def find_orphaned_footnotes(self) -> list[OrphanedFootnote]:
        """Find registry entries that no reference marker correlates with.

        Orphans appear when a marker is removed and the document has not been
        reconciled yet (for example with synchronization disabled).

        Returns:
            List of OrphanedFootnote objects in registry order

        Example:
            >>> orphans = doc.find_orphaned_footnotes()
            >>> for orphan in orphans:
            ...     print(f"Orphaned footnote {orphan.number}: {orphan.text[:50]}...")
        """
        from ..models.footnote import OrphanedFootnote

        scan = self._tracker.scan(self._document.doc)
        citations = [entry for entry, _pos in scan.citations]
        builder = RegistryBuilder(self._document.schema, self._document.config.correlate_by_id)
        build = builder.build(
            self._scanner.from_scan(scan), index_by_number(citations), index_by_id(citations)
        )
        used = {id(entry) for entry in build.sources if entry is not None}
        return [
            OrphanedFootnote(
                number=int(entry.attrs.get("number", 1)),
                ref_id=entry.attrs.get("ref_id"),
                text=entry.text_content,
            )
            for entry in citations
            if id(entry) not in used
        ]

    def insert_footnote(
        self,
        text: str,
        position: int | None = None,
        at: str | None = None,
        occurrence: int | None = None,
        fuzzy: float | dict[str, Any] | None = None,
    ) -> InsertResult | None:
        """Insert a footnote reference and its registry entry.

        The marker and the entry get a provisional number (one more than the
        number of markers before the anchor); the Synchronizer assigns final
        numbers afterwards.

        Args:
            text: The footnote body. Supports markdown: **bold**, *italic*,
                ++underline++, ~~strikethrough~~, `code`, [links](url)
            position: Document position to insert the marker at
            at: Text after which the marker is inserted (alternative to position)
            occurrence: Which match of ``at`` to use (1-indexed) when it occurs
                more than once
            fuzzy: Fuzzy matching for ``at`` (threshold or config dict)

        Returns:
            InsertResult, or None when the body is empty or whitespace

        Raises:
            TextNotFoundError: If 'at' text not found
            AmbiguousTextError: If multiple occurrences of 'at' text found
            PositionError: If the anchor is not inside a textblock, or is
                inside the footnote registry
            ValueError: If neither or both of position and at are given

        Example:
            >>> doc.insert_footnote("See Smith (2020) for details", at="original study")
            >>> doc.insert_footnote("Ibid.", position=42)
        """
        if not text or not text.strip():
            logger.debug("Empty footnote body; nothing inserted")
            return None
        if (position is None) == (at is None):
            raise ValueError("Specify exactly one of 'position' or 'at'")

        document = self._document
        schema = document.schema
        doc = document.doc

        anchor = position if position is not None else self._locate(at, occurrence, fuzzy).end
        self._check_anchor(doc, anchor)

        body = MarkdownParser(schema).parse(text)
        number = 1 + sum(1 for ref in self._scanner.ordered_references(doc) if ref.pos < anchor)
        ref_id = uuid.uuid4().hex
        attrs = {"number": number, "ref_id": ref_id}

        tr = document.transaction()
        tr.insert(anchor, schema.node(FOOTNOTE_REF, attrs))

        entry = schema.node(FOOTNOTE_CITATION, attrs, body)
        scan = self._tracker.scan(tr.doc)
        created = scan.registry is None
        if created:
            tr.insert(tr.doc.content_size, schema.node(FOOTNOTE_REGISTRY, content=[entry]))
        elif number - 1 < len(scan.citations):
            tr.insert(scan.citations[number - 1][1], entry)
        else:
            registry, registry_pos = scan.registry
            tr.insert(registry_pos + registry.node_size - 1, entry)

        document.dispatch(tr)
        logger.debug("Inserted footnote [%d] at %d (%s)", number, anchor, ref_id)
        return InsertResult(number, ref_id, anchor, created_registry=created)

    def edit_footnote(self, number: int, new_text: str) -> None:
        """Replace the body of a footnote.

        Args:
            number: The footnote number to edit
            new_text: The new body (supports inline markdown)

        Raises:
            NoteNotFoundError: If the footnote number is not found
            ValueError: If the new body is empty

        Example:
            >>> doc.edit_footnote(1, "Updated citation text")
        """
        footnote = self.get_footnote(number)
        body = MarkdownParser(self._document.schema).parse(new_text)
        if not body:
            raise ValueError("Footnote text cannot be empty; use delete_footnote() instead")

        tr = self._document.transaction()
        tr.replace(footnote.pos + 1, footnote.pos + footnote.node.node_size - 1, body)
        self._document.dispatch(tr)

    def delete_footnote(self, number: int) -> None:
        """Delete a footnote by removing its reference marker.

        The Synchronizer then drops the orphaned entry and renumbers the
        remaining footnotes.

        Raises:
            NoteNotFoundError: If no marker has this number

        Example:
            >>> doc.delete_footnote(2)
        """
        references = self.references
        for ref in references:
            if ref.number == number:
                tr = self._document.transaction()
                tr.delete(ref.pos, ref.pos + ref.node.node_size)
                self._document.dispatch(tr)
                return
        raise NoteNotFoundError(number, [ref.number for ref in references])

    def _locate(
        self, at: str, occurrence: int | None, fuzzy: float | dict[str, Any] | None
    ) -> TextSpan:
        search = self._document._text_search
        doc = self._document.doc
        matches = [
            span
            for span in search.find_text(doc, at, fuzzy=parse_fuzzy_config(fuzzy))
            if not span.in_registry
        ]

        if not matches:
            raise TextNotFoundError(at, generate_suggestions(at, search.block_texts(doc)))
        if occurrence is not None:
            if not 1 <= occurrence <= len(matches):
                raise TextNotFoundError(
                    at, hint=f"occurrence={occurrence} requested, found {len(matches)} match(es)"
                )
            return matches[occurrence - 1]
        if len(matches) > 1:
            raise AmbiguousTextError(at, matches)
        return matches[0]

    def _check_anchor(self, doc: Node, pos: int) -> None:
        resolved = resolve(doc, pos)
        if not self._document.schema.spec(resolved.parent.type).is_textblock:
            raise PositionError(pos, "footnotes can only be inserted inside text")
        if any(node.type == FOOTNOTE_REGISTRY for node in resolved.ancestors()):
            raise PositionError(pos, "cannot insert a footnote inside the footnote registry")
