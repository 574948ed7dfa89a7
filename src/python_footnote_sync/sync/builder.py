"""
Synthesize the target registry content from the ordered references.

Each reference gets a citation numbered by its place in document order. The
citation's body is copied verbatim from the prior entry it correlates with:

1. the entry carrying the same stable ``ref_id`` (when enabled), otherwise
2. the first not yet used entry whose prior number equals the reference's
   prior number.

References without a correlated entry get a placeholder body made of a
backlink and the new number. Every prior entry is used at most once.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field

from ..constants import BACKLINK_TEXT, FOOTNOTE_CITATION
from ..models.footnote import FootnoteReference
from ..models.node import Node
from ..schema import Schema, backlink_mark, default_schema

logger = logging.getLogger(__name__)


@dataclass
class RegistryBuild:
    """Target registry content plus how each entry's body was obtained.

    Attributes:
        entries: Target citation nodes, numbered 1..N
        reused: Target numbers whose body was copied from a prior entry
        synthesized: Target numbers that received a placeholder body
        sources: Prior entry each target entry was copied from (None for placeholders)
    """

    entries: list[Node] = field(default_factory=list)
    reused: list[int] = field(default_factory=list)
    synthesized: list[int] = field(default_factory=list)
    sources: list[Node | None] = field(default_factory=list)


def index_by_number(citations: Iterable[Node]) -> dict[int, list[Node]]:
    """Group prior entries by their number, keeping registry order."""
    index: dict[int, list[Node]] = {}
    for entry in citations:
        index.setdefault(int(entry.attrs.get("number", 1)), []).append(entry)
    return index


def index_by_id(citations: Iterable[Node]) -> dict[str, Node]:
    """Map stable ids to prior entries; the first entry with an id wins."""
    index: dict[str, Node] = {}
    for entry in citations:
        ref_id = entry.attrs.get("ref_id")
        if ref_id and ref_id not in index:
            index[ref_id] = entry
    return index


def default_body(schema: Schema, number: int) -> tuple[Node, ...]:
    """Placeholder body: a backlink to the reference followed by the number."""
    return (
        schema.text(BACKLINK_TEXT, [backlink_mark(schema, number)]),
        schema.text(f" {number}"),
    )


class RegistryBuilder:
    """Builds target citation entries for a list of ordered references."""

    def __init__(self, schema: Schema | None = None, correlate_by_id: bool = True) -> None:
        self.schema = schema or default_schema()
        self.correlate_by_id = correlate_by_id

    def build(
        self,
        ordered_refs: Sequence[FootnoteReference],
        prior_entries_by_number: Mapping[int, Node | Sequence[Node]],
        prior_entries_by_id: Mapping[str, Node] | None = None,
    ) -> RegistryBuild:
        """Compute the target registry content.

        Args:
            ordered_refs: References in document order
            prior_entries_by_number: Prior entries keyed by their number; a
                value may be a single entry or all entries with that number
                in registry order
            prior_entries_by_id: Prior entries keyed by stable id

        Returns:
            RegistryBuild with one entry per reference
        """
        used: set[int] = set()
        matched: list[Node | None] = [None] * len(ordered_refs)

        if self.correlate_by_id and prior_entries_by_id:
            for i, ref in enumerate(ordered_refs):
                entry = prior_entries_by_id.get(ref.ref_id) if ref.ref_id else None
                if entry is not None and id(entry) not in used:
                    matched[i] = entry
                    used.add(id(entry))

        for i, ref in enumerate(ordered_refs):
            if matched[i] is not None:
                continue
            candidates = prior_entries_by_number.get(ref.number, ())
            if isinstance(candidates, Node):
                candidates = (candidates,)
            for entry in candidates:
                if id(entry) not in used:
                    matched[i] = entry
                    used.add(id(entry))
                    break

        result = RegistryBuild(sources=matched)
        for i, (ref, entry) in enumerate(zip(ordered_refs, matched, strict=True)):
            number = i + 1
            if entry is not None:
                body = entry.content
                result.reused.append(number)
            else:
                body = default_body(self.schema, number)
                result.synthesized.append(number)
                logger.debug("No prior entry for reference %d (was %d)", number, ref.number)
            result.entries.append(
                self.schema.node(
                    FOOTNOTE_CITATION, {"number": number, "ref_id": ref.ref_id}, body
                )
            )
        return result
