"""
Locate footnote references and the footnote registry in a document snapshot.

A single walk over the snapshot's descendants collects, in document order:

- every footnote reference outside of any registry
- the first registry encountered (the authoritative one)
- the citations held by that registry
- any further registries, which are reported but never edited
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from ..constants import FOOTNOTE_CITATION, FOOTNOTE_REF, FOOTNOTE_REGISTRY
from ..models.node import Node

logger = logging.getLogger(__name__)

Located = tuple[Node, int]


@dataclass
class ScanResult:
    """Positions of the footnote structure of one snapshot.

    Attributes:
        references: ``(marker, pos)`` for every reference in document order
        registry: ``(registry, pos)`` of the authoritative registry, if any
        citations: ``(entry, pos)`` for each citation of that registry
        extra_registries: Further registries, left untouched
    """

    references: list[Located] = field(default_factory=list)
    registry: Located | None = None
    citations: list[Located] = field(default_factory=list)
    extra_registries: list[Located] = field(default_factory=list)


class PositionTracker:
    """Scans snapshots for footnote references, citations and the registry."""

    def scan(self, doc: Node) -> ScanResult:
        """Collect the footnote structure of ``doc``.

        This is a pure function of the snapshot.

        Args:
            doc: Root node of the snapshot

        Returns:
            ScanResult with every list ordered by ascending position
        """
        result = ScanResult()
        registry_end = -1
        for node, pos in doc.descendants():
            if node.type == FOOTNOTE_REGISTRY:
                if result.registry is None:
                    result.registry = (node, pos)
                    self._collect_citations(node, pos, result)
                else:
                    result.extra_registries.append((node, pos))
                registry_end = max(registry_end, pos + node.node_size)
            elif node.type == FOOTNOTE_REF and pos >= registry_end:
                result.references.append((node, pos))

        if result.extra_registries:
            logger.warning(
                "Document has %d footnote registries; using the one at position %d",
                len(result.extra_registries) + 1,
                result.registry[1] if result.registry else -1,
            )
        return result

    def _collect_citations(self, registry: Node, registry_pos: int, result: ScanResult) -> None:
        pos = registry_pos + 1
        for child in registry.content:
            if child.type == FOOTNOTE_CITATION:
                result.citations.append((child, pos))
            pos += child.node_size
