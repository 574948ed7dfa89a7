"""
Document class for editing HTML documents with synchronized footnotes.

This module provides the main Document class which holds the current document
snapshot, applies transactions, notifies subscribers of changes and, unless
disabled, runs a Synchronizer that keeps footnote numbering consistent.
"""

import logging
import re
from collections import deque
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING, Any, BinaryIO

from .config import SyncConfig
from .errors import TransactionError
from .html_codec import parse_html, render_html
from .models.node import Node
from .operations.notes import NoteOperations
from .results import InsertResult, SyncResult
from .schema import Schema, default_schema
from .sync.scheduler import Scheduler
from .sync.synchronizer import SyncPlan, Synchronizer
from .text_search import TextSearch, TextSpan
from .transaction import ChangeEvent, Transaction

if TYPE_CHECKING:
    from .models.footnote import Footnote, FootnoteReference, OrphanedFootnote

logger = logging.getLogger(__name__)

Listener = Callable[[ChangeEvent], None]

_FULL_DOCUMENT = re.compile(rb"<html[\s>]", re.IGNORECASE)


class Document:
    """Main class for working with HTML documents containing footnotes.

    Documents can be loaded from:
    - File paths (str or Path)
    - Raw bytes of HTML
    - Open file objects (in binary mode)
    - HTML strings, via ``Document.from_html()``

    Example:
        >>> doc = Document("article.html")
        >>> doc.insert_footnote("See Smith (2020)", at="original study")
        >>> doc.save("article_annotated.html")

    Example with a manual scheduler:
        >>> scheduler = ManualScheduler()
        >>> doc = Document.from_html(markup, scheduler=scheduler)
        >>> doc.insert_footnote("First", at="alpha")
        >>> doc.insert_footnote("Second", at="beta")
        >>> scheduler.flush()  # one pass for both insertions

    Attributes:
        path: Path to the document file (None for in-memory documents)
        schema: Schema the document is parsed and rendered with
        config: Synchronizer settings
    """

    def __init__(
        self,
        source: str | Path | bytes | BinaryIO | None = None,
        schema: Schema | None = None,
        config: SyncConfig | None = None,
        scheduler: Scheduler | None = None,
        sync: bool = True,
    ) -> None:
        """Initialize a Document from an HTML file or in-memory data.

        Args:
            source: Document source - can be:
                    - None for an empty document
                    - Path to an HTML file (str or Path)
                    - Raw bytes of an HTML document
                    - Open file object in binary mode
            schema: Schema to use (default: the shared default schema)
            config: Synchronizer settings (default: SyncConfig())
            scheduler: Scheduler for deferred passes (default: from config)
            sync: Whether to keep footnotes synchronized after each change

        Raises:
            FileNotFoundError: If the source path does not exist
        """
        self.schema = schema or default_schema()
        self.config = config or SyncConfig()
        self.path: Path | None = None
        self._listeners: list[Listener] = []
        self._pending: deque[ChangeEvent] = deque()
        self._settled: deque[Callable[[], None]] = deque()
        self._notifying = False
        self._text_search = TextSearch(self.schema)
        self._note_ops = NoteOperations(self)

        if source is None:
            markup = b""
        elif isinstance(source, bytes):
            markup = source
        elif hasattr(source, "read"):
            markup = source.read()  # type: ignore[union-attr]
        else:
            self.path = Path(source)
            if not self.path.exists():
                raise FileNotFoundError(f"Document not found: {source}")
            markup = self.path.read_bytes()

        if isinstance(markup, str):
            markup = markup.encode("utf-8")
        self.full_document = bool(_FULL_DOCUMENT.search(markup))
        self._doc = parse_html(markup, self.schema)
        logger.debug("Loaded document (%d positions)", self._doc.content_size)

        self._synchronizer: Synchronizer | None = None
        if sync:
            self._synchronizer = Synchronizer(self, scheduler=scheduler, config=self.config)
            self._synchronizer.attach()

    @classmethod
    def from_html(cls, markup: str, **kwargs: Any) -> "Document":
        """Create a Document from an HTML string.

        Accepts the same keyword arguments as the constructor.
        """
        return cls(markup.encode("utf-8"), **kwargs)

    # -------------------------------------------------------------------------
    # Snapshots and transactions
    # -------------------------------------------------------------------------

    @property
    def doc(self) -> Node:
        """The current document snapshot."""
        return self._doc

    @property
    def synchronizer(self) -> Synchronizer | None:
        return self._synchronizer

    def transaction(self) -> Transaction:
        """Start a transaction against the current snapshot."""
        return Transaction(self._doc, self.schema)

    @property
    def notifying(self) -> bool:
        """Whether change listeners are currently being called."""
        return self._notifying

    def dispatch(self, transaction: Transaction) -> None:
        """Make a transaction's result the current snapshot and notify subscribers.

        A transaction dispatched by a listener is applied at once, but its
        notification is queued until every listener has seen the current one.
        Subscribers therefore receive events in the order they were applied.

        Raises:
            TransactionError: If the transaction was started from a snapshot
                that is no longer current
        """
        if transaction.before is not self._doc:
            raise TransactionError(
                "Transaction was built against a stale snapshot; start a new one"
            )
        event = ChangeEvent(before=self._doc, after=transaction.doc, transaction=transaction)
        self._doc = transaction.doc
        logger.debug("Dispatched %r", transaction)
        self._pending.append(event)
        if self._notifying:
            return

        self._notifying = True
        try:
            while self._pending:
                current = self._pending.popleft()
                for listener in list(self._listeners):
                    listener(current)
        finally:
            self._notifying = False
            self._pending.clear()

        while self._settled:
            self._settled.popleft()()

    def when_settled(self, callback: Callable[[], None]) -> None:
        """Run ``callback`` once all queued notifications have been delivered.

        Runs it right away when no notification is in progress. A callback
        already waiting is not queued twice.
        """
        if not self._notifying:
            callback()
        elif callback not in self._settled:
            self._settled.append(callback)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener.

        Returns:
            A function that removes the listener again
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # -------------------------------------------------------------------------
    # Synchronization
    # -------------------------------------------------------------------------

    def sync(self) -> SyncResult:
        """Reconcile footnote numbering now.

        Works with synchronization disabled too, as a one-off pass.
        """
        synchronizer = self._synchronizer or Synchronizer(self, config=self.config)
        return synchronizer.reconcile()

    def check(self) -> SyncPlan:
        """Compute the changes a reconciliation pass would make."""
        synchronizer = self._synchronizer or Synchronizer(self, config=self.config)
        return synchronizer.plan()

    # -------------------------------------------------------------------------
    # Text
    # -------------------------------------------------------------------------

    @property
    def text(self) -> str:
        """Plain text of the document, one line per textblock."""
        return "\n".join(self._text_search.block_texts(self._doc))

    def find_text(
        self,
        text: str,
        case_sensitive: bool = True,
        fuzzy: float | dict[str, Any] | None = None,
    ) -> list[TextSpan]:
        """Find all occurrences of text in the document.

        Example:
            >>> spans = doc.find_text("original study")
            >>> doc.insert_footnote("Ibid.", position=spans[0].end)
        """
        from .fuzzy import parse_fuzzy_config

        return self._text_search.find_text(
            self._doc, text, case_sensitive=case_sensitive, fuzzy=parse_fuzzy_config(fuzzy)
        )

    # -------------------------------------------------------------------------
    # Footnotes
    # -------------------------------------------------------------------------

    @property
    def footnotes(self) -> list["Footnote"]:
        """Get all footnotes in the registry.

        Returns:
            List of Footnote objects
        """
        return self._note_ops.footnotes

    @property
    def references(self) -> list["FootnoteReference"]:
        """Get all reference markers in document order."""
        return self._note_ops.references

    def get_footnote(self, number: int) -> "Footnote":
        """Get a specific footnote by number.

        Raises:
            NoteNotFoundError: If the footnote number is not found
        """
        return self._note_ops.get_footnote(number)

    def insert_footnote(
        self,
        text: str,
        position: int | None = None,
        at: str | None = None,
        occurrence: int | None = None,
        fuzzy: float | dict[str, Any] | None = None,
    ) -> InsertResult | None:
        """Insert a footnote at a position or right after some text.

        Args:
            text: The footnote body (supports inline markdown)
            position: Document position for the reference marker
            at: Text after which the reference marker is inserted
            occurrence: Which match of ``at`` to use (1-indexed)
            fuzzy: Fuzzy matching for ``at`` (threshold or config dict)

        Returns:
            InsertResult, or None if the body was empty

        Raises:
            TextNotFoundError: If 'at' text not found
            AmbiguousTextError: If multiple occurrences of 'at' text found

        Example:
            >>> doc.insert_footnote("See Smith (2020) for details", at="original study")
        """
        return self._note_ops.insert_footnote(
            text, position=position, at=at, occurrence=occurrence, fuzzy=fuzzy
        )

    def edit_footnote(self, number: int, new_text: str) -> None:
        """Replace the body of a footnote.

        Example:
            >>> doc.edit_footnote(1, "Updated citation text")
        """
        self._note_ops.edit_footnote(number, new_text)

    def delete_footnote(self, number: int) -> None:
        """Delete a footnote's reference marker; its entry goes with the next pass.

        Example:
            >>> doc.delete_footnote(2)
        """
        self._note_ops.delete_footnote(number)

    def find_orphaned_footnotes(self) -> list["OrphanedFootnote"]:
        """Find registry entries without a matching reference marker."""
        return self._note_ops.find_orphaned_footnotes()

    # -------------------------------------------------------------------------
    # Output
    # -------------------------------------------------------------------------

    def to_html(self, full_document: bool | None = None) -> str:
        """Render the current snapshot as HTML.

        Args:
            full_document: Emit a complete page with doctype; defaults to
                whatever the source was
        """
        if full_document is None:
            full_document = self.full_document
        return render_html(self._doc, self.schema, full_document=full_document)

    def save(self, output_path: str | Path | None = None) -> None:
        """Save the document to a file.

        Raises:
            ValueError: If output_path is not provided for in-memory documents.
        """
        if output_path is None:
            if self.path is None:
                raise ValueError(
                    "output_path is required for in-memory documents. "
                    "Use doc.save(path) or doc.save_to_bytes() instead."
                )
            output_path = self.path
        Path(output_path).write_bytes(self.save_to_bytes())
        logger.debug("Saved document to %s", output_path)

    def save_to_bytes(self) -> bytes:
        """Render the document as UTF-8 encoded HTML."""
        return self.to_html().encode("utf-8")
