"""
Result classes for footnote operations.

This module provides result types that report what a reconciliation pass
or an insertion did to a document.
"""

from dataclasses import dataclass, field

_PAST_TENSE = {"replace": "replaced", "insert": "inserted", "remove": "removed"}


@dataclass
class SyncResult:
    """Result of a reconciliation pass.

    Attributes:
        applied: Whether the pass dispatched an edit
        references: Number of reference markers found
        renumbered: ``(old, new)`` number for each marker that was rewritten
        reused: Target numbers whose entry body was copied from a prior entry
        synthesized: Target numbers that received a placeholder body
        registry_action: One of "none", "replace", "insert" or "remove"
        skipped_registries: Number of additional registries left untouched
        error: Exception raised during the pass, if any
    """

    applied: bool = False
    references: int = 0
    renumbered: list[tuple[int, int]] = field(default_factory=list)
    reused: list[int] = field(default_factory=list)
    synthesized: list[int] = field(default_factory=list)
    registry_action: str = "none"
    skipped_registries: int = 0
    error: Exception | None = None

    @property
    def success(self) -> bool:
        return self.error is None

    def __str__(self) -> str:
        """Get string representation of the result."""
        if self.error is not None:
            return f"✗ sync: {self.error}"
        if not self.applied:
            return f"✓ sync: consistent ({self.references} footnotes)"

        parts = []
        if self.renumbered:
            parts.append(f"{len(self.renumbered)} markers renumbered")
        if self.registry_action != "none":
            parts.append(f"registry {_PAST_TENSE.get(self.registry_action, self.registry_action)}")
        if self.synthesized:
            parts.append(f"{len(self.synthesized)} placeholder entries")
        return f"✓ sync: {', '.join(parts)} ({self.references} footnotes)"


@dataclass
class InsertResult:
    """Result of inserting a footnote.

    The number is provisional: the next reconciliation pass assigns the
    final one.

    Attributes:
        number: Provisional number given to the marker and its entry
        ref_id: Stable identifier shared by the marker and its entry
        marker_pos: Position of the new marker right after insertion
        created_registry: Whether the registry had to be created
    """

    number: int
    ref_id: str
    marker_pos: int
    created_registry: bool = False

    def __str__(self) -> str:
        """Get string representation of the result."""
        return f"✓ insert_footnote: [{self.number}] at position {self.marker_pos}"
