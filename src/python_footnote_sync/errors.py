"""
Custom exception classes for python_footnote_sync package.

These exceptions provide helpful error messages with suggestions for
resolving common issues when locating anchors and editing documents.
"""

from typing import Any


class FootnoteSyncError(Exception):
    """Base exception for all python_footnote_sync errors."""

    pass


class TextNotFoundError(FootnoteSyncError):
    """Raised when anchor text cannot be found in the document.

    Attributes:
        text: The text that was being searched for
        suggestions: List of helpful suggestions for resolving the issue
        hint: Additional context about why the text wasn't found
    """

    def __init__(
        self,
        text: str,
        suggestions: list[str] | None = None,
        hint: str | None = None,
    ) -> None:
        self.text = text
        self.suggestions = suggestions or []
        self.hint = hint
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format a helpful error message with suggestions."""
        msg = f"Could not find '{self.text}'"

        if self.hint:
            msg += f"\n\nNote: {self.hint}"

        if self.suggestions:
            msg += "\n\nSuggestions:\n"
            for suggestion in self.suggestions:
                msg += f"  • {suggestion}\n"

        return msg


class AmbiguousTextError(FootnoteSyncError):
    """Raised when multiple occurrences of anchor text are found.

    Attributes:
        text: The text that was being searched for
        matches: List of TextSpan objects representing each match
    """

    def __init__(self, text: str, matches: list[Any]) -> None:
        self.text = text
        self.matches = matches
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format an error message showing all matches."""
        msg = f"Found {len(self.matches)} occurrences of '{self.text}'\n\n"

        for i, match in enumerate(self.matches):
            msg += f"{i + 1}. ...{match.context}... (position {match.start})\n"

        msg += "\nTo disambiguate, either:\n"
        msg += "  • Use occurrence=N to target the Nth match (1-indexed)\n"
        msg += "  • Provide a longer, more specific anchor text\n"
        msg += "  • Pass an explicit position instead of anchor text"
        return msg


class PositionError(FootnoteSyncError):
    """Raised when a document position is out of range or unusable.

    Attributes:
        pos: The offending position
        reason: Explanation of why the position cannot be used
    """

    def __init__(self, pos: int, reason: str | None = None) -> None:
        self.pos = pos
        self.reason = reason
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format an error message with the position details."""
        msg = f"Invalid position {self.pos}"
        if self.reason:
            msg += f": {self.reason}"
        return msg


class SchemaError(FootnoteSyncError):
    """Raised when a node is unknown or placed where its schema forbids it.

    Attributes:
        node_type: The node type involved
        errors: List of specific validation messages (optional)
    """

    def __init__(
        self, message: str, node_type: str | None = None, errors: list[str] | None = None
    ) -> None:
        self.node_type = node_type
        self.errors = errors or []
        super().__init__(message)


class TransactionError(FootnoteSyncError):
    """Raised when a transaction cannot be dispatched.

    This occurs when a transaction was built against a snapshot that is no
    longer the document's current one.
    """

    pass


class NoteNotFoundError(FootnoteSyncError):
    """Raised when a footnote cannot be found by number.

    Attributes:
        number: The number that was searched for
        available: List of valid numbers in the document
    """

    def __init__(self, number: int, available: list[int] | None = None) -> None:
        self.number = number
        self.available = available or []
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format an error message with available numbers."""
        msg = f"Footnote {self.number} not found"
        if self.available:
            numbers = ", ".join(str(n) for n in self.available)
            msg += f"\n\nAvailable footnotes: {numbers}"
        else:
            msg += "\n\nNo footnotes exist in the document"
        return msg


class ConfigError(FootnoteSyncError):
    """Raised when a configuration mapping or file is invalid.

    Attributes:
        errors: List of specific problems found in the configuration
    """

    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        self.errors = errors or []
        super().__init__(message)
