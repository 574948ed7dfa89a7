"""
Document model classes for python_footnote_sync.

These classes provide the immutable node tree and read-only footnote views.
"""

from python_footnote_sync.models.footnote import Footnote, FootnoteReference, OrphanedFootnote
from python_footnote_sync.models.node import Mark, Node

__all__ = [
    "Node",
    "Mark",
    "Footnote",
    "FootnoteReference",
    "OrphanedFootnote",
]
