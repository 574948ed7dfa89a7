"""
Operations package for Document manipulation.

This package contains classes that handle specific operations on documents,
extracted from the main Document class to improve separation of concerns.
"""

from .notes import NoteOperations

__all__ = [
    "NoteOperations",
]
