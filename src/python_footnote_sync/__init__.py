"""
python_footnote_sync - Keep footnote numbering consistent in rich-text HTML documents.

This package provides a document model with footnote reference markers and a
footnote registry, plus a synchronizer that renumbers markers by document
order and rebuilds the registry after every edit, without losing authored
footnote text.

Example:
    >>> from python_footnote_sync import Document
    >>> doc = Document("article.html")
    >>> doc.insert_footnote("See Smith (2020)", at="original study")
    >>> doc.save("article_annotated.html")
"""

__version__ = "0.1.0"
__all__ = [
    "Document",
    "SyncConfig",
    "load_config",
    "FootnoteSyncError",
    "TextNotFoundError",
    "AmbiguousTextError",
    "PositionError",
    "SchemaError",
    "TransactionError",
    "NoteNotFoundError",
    "ConfigError",
    "Node",
    "Mark",
    "Footnote",
    "FootnoteReference",
    "OrphanedFootnote",
    "Schema",
    "default_schema",
    "parse_html",
    "render_html",
    "Transaction",
    "ChangeEvent",
    "TextSearch",
    "TextSpan",
    "SyncResult",
    "InsertResult",
    "Synchronizer",
    "SyncState",
    "ManualScheduler",
    "ImmediateScheduler",
    "AsyncioScheduler",
]

# Import configuration
from .config import SyncConfig, load_config

# Import document class
from .document import Document
from .errors import (
    AmbiguousTextError,
    ConfigError,
    FootnoteSyncError,
    NoteNotFoundError,
    PositionError,
    SchemaError,
    TextNotFoundError,
    TransactionError,
)

# Import HTML conversion
from .html_codec import parse_html, render_html

# Import model classes
from .models.footnote import Footnote, FootnoteReference, OrphanedFootnote
from .models.node import Mark, Node

# Import result types
from .results import InsertResult, SyncResult

# Import schema
from .schema import Schema, default_schema

# Import synchronization engine
from .sync import (
    AsyncioScheduler,
    ImmediateScheduler,
    ManualScheduler,
    Synchronizer,
    SyncState,
)

# Import text search
from .text_search import TextSearch, TextSpan

# Import transactions
from .transaction import ChangeEvent, Transaction
