"""
Text search for locating anchors in a document snapshot.

Text inside a textblock may be split over several text nodes (one per mark
combination) and interrupted by inline atoms such as existing footnote
references. Searching builds a character map from each character of the
block's text to its document position, searches the concatenated text and
maps matches back to positions.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any

from .constants import FOOTNOTE_REGISTRY
from .fuzzy import find_similar_text, fuzzy_find_all
from .models.node import Node
from .schema import Schema, default_schema


@dataclass
class TextSpan:
    """A match of search text inside one textblock.

    Attributes:
        start: Document position of the first matched character
        end: Document position right after the last matched character
        block: The textblock containing the match
        block_pos: Position of the textblock
        block_text: Concatenated text of the textblock
        text_start: Offset of the match in ``block_text``
        text_end: End offset of the match in ``block_text`` (exclusive)
        in_registry: Whether the textblock belongs to a footnote registry
        score: Similarity score (1.0 for exact matches)
    """

    start: int
    end: int
    block: Node
    block_pos: int
    block_text: str
    text_start: int
    text_end: int
    in_registry: bool = False
    score: float = 1.0

    @property
    def text(self) -> str:
        return self.block_text[self.text_start : self.text_end]

    @property
    def context(self) -> str:
        """Get surrounding context for disambiguation.

        Returns up to 40 characters before and after the matched text.
        """
        before = self.block_text[max(0, self.text_start - 40) : self.text_start]
        after = self.block_text[self.text_end : self.text_end + 40]
        return f"{before}{self.text}{after}"


def iter_textblocks(
    doc: Node, schema: Schema | None = None
) -> Iterator[tuple[Node, int, bool]]:
    """Yield ``(block, pos, in_registry)`` for every textblock in document order."""
    schema = schema or default_schema()

    def walk(node: Node, start: int, in_registry: bool) -> Iterator[tuple[Node, int, bool]]:
        pos = start
        for child in node.content:
            if not child.is_text and not child.leaf:
                if schema.spec(child.type).is_textblock:
                    yield child, pos, in_registry
                else:
                    yield from walk(child, pos + 1, in_registry or child.type == FOOTNOTE_REGISTRY)
            pos += child.node_size

    yield from walk(doc, 0, False)


def _char_map(block: Node, block_pos: int) -> tuple[str, list[int]]:
    chars: list[str] = []
    positions: list[int] = []
    pos = block_pos + 1
    for child in block.content:
        if child.is_text:
            for i, char in enumerate(child.text or ""):
                chars.append(char)
                positions.append(pos + i)
        pos += child.node_size
    return "".join(chars), positions


class TextSearch:
    """Finds text in the textblocks of a snapshot."""

    def __init__(self, schema: Schema | None = None) -> None:
        self.schema = schema or default_schema()

    def find_text(
        self,
        doc: Node,
        text: str,
        case_sensitive: bool = True,
        fuzzy: dict[str, Any] | None = None,
    ) -> list[TextSpan]:
        """Find all occurrences of text in the document.

        Args:
            doc: Root node of the snapshot
            text: The text to search for
            case_sensitive: Whether to perform case-sensitive search (default: True)
            fuzzy: Fuzzy matching configuration from ``parse_fuzzy_config``
                (default: None for exact matching)

        Returns:
            List of TextSpan objects in document order
        """
        results: list[TextSpan] = []
        if not text:
            return results

        needle = text if case_sensitive else text.lower()
        for block, block_pos, in_registry in iter_textblocks(doc, self.schema):
            full_text, positions = _char_map(block, block_pos)
            if not full_text:
                continue

            if fuzzy:
                found = fuzzy_find_all(
                    full_text,
                    text,
                    threshold=fuzzy["threshold"],
                    algorithm=fuzzy["algorithm"],
                    normalize_ws=fuzzy["normalize_whitespace"],
                )
            else:
                haystack = full_text if case_sensitive else full_text.lower()
                found = []
                start = haystack.find(needle)
                while start != -1:
                    found.append((start, start + len(needle), 1.0))
                    start = haystack.find(needle, start + len(needle))

            for start, end, score in found:
                results.append(
                    TextSpan(
                        start=positions[start],
                        end=positions[end - 1] + 1,
                        block=block,
                        block_pos=block_pos,
                        block_text=full_text,
                        text_start=start,
                        text_end=end,
                        in_registry=in_registry,
                        score=score,
                    )
                )
        return results

    def block_texts(self, doc: Node) -> list[str]:
        return [_char_map(block, pos)[0] for block, pos, _ in iter_textblocks(doc, self.schema)]


def generate_suggestions(text: str, texts: list[str]) -> list[str]:
    """Generate helpful suggestions when anchor text is not found.

    Args:
        text: The text that was searched for
        texts: Text of every searched block

    Returns:
        List of suggestion strings
    """
    suggestions = []
    doc_text = "\n".join(texts)

    if '"' in text and any(c in doc_text for c in "“”"):
        suggestions.append(
            "Document contains curly quotes (“”). "
            "Try replacing straight quotes with curly quotes in search text"
        )
    if "'" in text and any(c in doc_text for c in "‘’"):
        suggestions.append(
            "Document contains curly apostrophes (‘’). "
            "Try replacing straight apostrophes with curly ones in search text"
        )

    if "  " in text:
        suggestions.append(
            "Search text contains double spaces. "
            "Document may have single spaces - try removing extra spaces"
        )

    if text != text.strip():
        suggestions.append(f'Search text has leading/trailing whitespace. Try: "{text.strip()}"')

    if text.lower() in doc_text.lower():
        suggestions.append(
            "Text found with case-insensitive search. Check capitalization in your search text"
        )

    similar = find_similar_text(text, texts)
    if similar:
        quoted = ", ".join(f'"{s}"' for s in similar)
        suggestions.append(f"Similar text in the document: {quoted} (or pass fuzzy=0.8)")

    if not suggestions:
        suggestions.extend(
            [
                "Check for typos in the search text",
                "Try searching for a shorter or more unique phrase",
                "Verify the text exists in the document",
            ]
        )
    return suggestions
