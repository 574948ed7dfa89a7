"""
Inline markdown parser for footnote bodies.

This module provides a customized markdown parser that converts markdown-formatted
text into inline document nodes (text nodes with marks, plus hard breaks). The
parser supports the following syntax:

- *italic* or _italic_ -> italic mark
- **bold** or __bold__ -> bold mark
- ++underline++ -> underline mark (custom extension)
- ~~strikethrough~~ -> strikethrough mark
- `code` -> code mark
- [text](url "title") -> link mark

Block structure (headings, lists, multiple paragraphs) is flattened into a
single run of inline content: paragraphs are joined with a space.
"""

from __future__ import annotations

import re
from re import Match
from typing import TYPE_CHECKING, Any

from .constants import BOLD, CODE, HARD_BREAK, ITALIC, LINK, STRIKETHROUGH, UNDERLINE
from .models.node import Mark, Node, normalize_inline
from .schema import Schema, default_schema

if TYPE_CHECKING:
    from mistune.core import InlineState
    from mistune.inline_parser import InlineParser as MistuneInlineParser
    from mistune.markdown import Markdown


# Underline pattern: ++text++ (similar to strikethrough pattern)
_UNDERLINE_END = re.compile(r"(?:[^\s+])\+\+(?!\+)")


def _parse_underline(inline: MistuneInlineParser, m: Match[str], state: InlineState) -> int | None:
    """Parse ++underline++ syntax."""
    pos = m.end()
    m1 = _UNDERLINE_END.search(state.src, pos)
    if not m1:
        return None
    end_pos = m1.end()
    new_state = state.copy()
    new_state.src = state.src[pos : end_pos - 2]
    children = inline.render(new_state)
    state.append_token({"type": "underline", "children": children})
    return end_pos


def _underline_plugin(md: Markdown) -> None:
    """Register the ++underline++ syntax with mistune."""
    md.inline.register(
        "underline",
        r"\+\+(?=[^\s+])",
        _parse_underline,
        before="link",
    )


_MARK_TOKENS = {
    "emphasis": ITALIC,
    "strong": BOLD,
    "strikethrough": STRIKETHROUGH,
    "underline": UNDERLINE,
}


class NodeRenderer:
    """Custom mistune renderer that outputs inline document nodes.

    This renderer walks mistune's token tree with a stack of active marks
    instead of producing HTML output.
    """

    NAME = "nodes"

    def __init__(self, schema: Schema) -> None:
        self.schema = schema
        self._nodes: list[Node] = []
        self._marks: list[Mark] = []

    def reset(self) -> None:
        """Reset the renderer state for a new parse."""
        self._nodes = []
        self._marks = []

    def get_nodes(self) -> list[Node]:
        """Get the accumulated nodes with adjacent equal runs merged."""
        return list(normalize_inline(self._nodes))

    def _add_text(self, text: str, *extra: Mark) -> None:
        if text:
            self._nodes.append(self.schema.text(text, [*self._marks, *extra]))

    def _with_mark(self, mark: Mark, children: list[dict[str, Any]]) -> None:
        self._marks.append(mark)
        self._render_children(children)
        self._marks.pop()

    def _render_children(self, children: list[dict[str, Any]]) -> None:
        """Recursively render child tokens."""
        for token in children:
            tok_type = token["type"]

            if tok_type == "text":
                self._add_text(token.get("raw", ""))
            elif tok_type in _MARK_TOKENS:
                mark = self.schema.mark(_MARK_TOKENS[tok_type])
                self._with_mark(mark, token.get("children", []))
            elif tok_type == "codespan":
                self._add_text(token.get("raw", ""), self.schema.mark(CODE))
            elif tok_type == "softbreak":
                self._add_text(" ")
            elif tok_type == "linebreak":
                self._nodes.append(self.schema.node(HARD_BREAK))
            elif tok_type == "link":
                attrs = token.get("attrs", {})
                link = self.schema.mark(LINK, href=attrs.get("url"), title=attrs.get("title"))
                self._with_mark(link, token.get("children", []))
            elif tok_type == "inline_html":
                self._add_text(token.get("raw", ""))
            elif tok_type in ("paragraph", "heading", "block_text"):
                if self._nodes:
                    self._add_text(" ")
                self._render_children(token.get("children", []))
            elif "children" in token:
                self._render_children(token["children"])

    def __call__(self, tokens: list[dict[str, Any]], state: Any) -> str:
        """Render a list of tokens."""
        self._render_children(tokens)
        return ""


class MarkdownParser:
    """Parser for inline markdown to document nodes.

    Supported syntax:
        - *italic* or _italic_ -> italic
        - **bold** or __bold__ -> bold
        - ++underline++ -> underline
        - ~~strikethrough~~ -> strikethrough
        - `code` -> code
        - [text](url) -> link
        - \\* -> escaped asterisk (literal *)
    """

    def __init__(self, schema: Schema | None = None) -> None:
        import mistune

        self._renderer = NodeRenderer(schema or default_schema())
        self._md = mistune.create_markdown(
            renderer=self._renderer,  # type: ignore[arg-type]
            plugins=["strikethrough", _underline_plugin],
        )

    def parse(self, text: str) -> list[Node]:
        """Parse markdown text into inline nodes.

        Leading and trailing whitespace is dropped.

        Args:
            text: Markdown-formatted text

        Returns:
            List of inline nodes (empty for blank input)
        """
        if not text or not text.strip():
            return []

        self._renderer.reset()
        self._md(text.strip())
        nodes = self._renderer.get_nodes()

        # Text mistune turns into no tokens at all (e.g. a lone "*")
        if not nodes:
            return [self._renderer.schema.text(text.strip())]
        return nodes


def parse_markdown(text: str, schema: Schema | None = None) -> list[Node]:
    """Convenience function to parse inline markdown.

    Example:
        >>> nodes = parse_markdown("See **Smith**, p. 4")
        >>> [(n.text, [m.type for m in n.marks]) for n in nodes]
        [('See ', []), ('Smith', ['bold']), (', p. 4', [])]
    """
    return MarkdownParser(schema).parse(text)
