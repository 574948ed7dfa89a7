"""
Centralized constants for node types, HTML hooks and other magic values.

This module consolidates the node type names, CSS classes, HTML attribute
names and defaults that are shared by the schema, the HTML codec and the
synchronization engine. Import from here to ensure consistency.
"""

import re

# =============================================================================
# Node Types
# =============================================================================

DOC = "doc"
PARAGRAPH = "paragraph"
HEADING = "heading"
BLOCKQUOTE = "blockquote"
TEXT = "text"
HARD_BREAK = "hard_break"

# Footnote node types
FOOTNOTE_REF = "footnote_ref"
FOOTNOTE_CITATION = "footnote_citation"
FOOTNOTE_REGISTRY = "footnote_registry"


# =============================================================================
# Mark Types
# =============================================================================

LINK = "link"
BOLD = "bold"
ITALIC = "italic"
UNDERLINE = "underline"
STRIKETHROUGH = "strikethrough"
CODE = "code"


# =============================================================================
# HTML Hooks
# =============================================================================

# CSS classes
REF_CLASS = "footnote-ref"
CITATION_CLASS = "footnote-citation"
REGISTRY_CLASS = "footnotes"
BACKLINK_CLASS = "footnote-backlink"
LABEL_CLASS = "footnote-label"

# Element id of the rendered registry
REGISTRY_ID = "footnote-registry"
REGISTRY_LABEL = "Footnotes"

# Data attributes
NUMBER_ATTR = "data-number"
REF_ID_ATTR = "data-footnote-id"

# Anchor ids used for back-navigation between marker and entry
CITATION_ANCHOR = "fn{number}"
REF_ANCHOR = "fnref{number}"

# Visible bracketed label, e.g. "[3]"
BRACKET_LABEL = re.compile(r"\[\s*(\d+)\s*\]")

# Leading "[3] " label at the start of a legacy citation body
LEADING_LABEL = re.compile(r"^\s*\[\s*\d+\s*\]\s*")


# =============================================================================
# Parse Rule Priorities
# =============================================================================

DEFAULT_PRIORITY = 50
HIGH_PRIORITY = 100


# =============================================================================
# Synchronization Defaults
# =============================================================================

# Transaction metadata key used to stamp engine-produced edits
ORIGIN_META_KEY = "origin"

# Origin tag value for edits produced by the synchronizer
SYNC_ORIGIN = "footnote-sync"

# Trailing debounce delay for the asyncio scheduler
DEFAULT_DEBOUNCE_SECONDS = 0.05

# Backlink glyph used in synthesized citation bodies
BACKLINK_TEXT = "↩"
