"""Ordered footnote references of a snapshot."""

from __future__ import annotations

from ..models.footnote import FootnoteReference
from ..models.node import Node
from .tracker import PositionTracker, ScanResult


class ReferenceScanner:
    """Reads reference markers in document order.

    Document order is the only ordering key used for numbering; neither
    insertion time nor the markers' current numbers affect it.
    """

    def __init__(self, tracker: PositionTracker | None = None) -> None:
        self.tracker = tracker or PositionTracker()

    def ordered_references(self, doc: Node) -> list[FootnoteReference]:
        return self.from_scan(self.tracker.scan(doc))

    @staticmethod
    def from_scan(scan: ScanResult) -> list[FootnoteReference]:
        """Build the ordered reference list from an existing scan."""
        return [FootnoteReference(node, pos) for node, pos in scan.references]
