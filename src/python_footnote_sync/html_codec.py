"""
HTML parsing and rendering for python_footnote_sync documents.

Parsing walks the lxml element tree and asks the schema's parse rules, highest
priority first, what each element becomes: a node, a mark applied to the text
inside it, or nothing (the element is transparent and its children are parsed
in its place). Stray inline content in a block context is wrapped in the
parent's default text block.

Rendering uses each registration's render rule and nests marks so that
consecutive text nodes sharing a mark share one element.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from typing import Any

import lxml.html
from lxml import etree

from .constants import DOC, FOOTNOTE_CITATION, FOOTNOTE_REGISTRY, PARAGRAPH
from .models.node import Mark, Node, normalize_inline
from .schema import MarkSpec, NodeSpec, ParseRule, Schema, default_schema

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")

# Elements whose content never becomes document content
_IGNORED_TAGS = {"head", "script", "style", "template", "title", "meta", "link"}

# Byte input without a charset declaration is read as UTF-8
_UTF8_PARSER = lxml.html.HTMLParser(encoding="utf-8")


# =============================================================================
# Parsing
# =============================================================================


class _DOMParser:
    """Turns an lxml element tree into a node tree for one schema."""

    def __init__(self, schema: Schema) -> None:
        self.schema = schema
        self.rules = schema.parse_rules()

    def _match(self, element: etree._Element) -> tuple[ParseRule, NodeSpec | MarkSpec] | None:
        for rule, spec in self.rules:
            if rule.matches(element):
                return rule, spec
        return None

    def _text(self, raw: str | None, marks: tuple[Mark, ...]) -> list[Node]:
        if not raw:
            return []
        collapsed = _WHITESPACE.sub(" ", raw)
        return [self.schema.text(collapsed, marks)]

    def parse_children(self, element: etree._Element, marks: tuple[Mark, ...]) -> list[Node]:
        """Parse the children of ``element`` into a mixed block/inline list."""
        nodes = self._text(element.text, marks)
        for child in element:
            nodes.extend(self.parse_element(child, marks))
            nodes.extend(self._text(child.tail, marks))
        return nodes

    def parse_element(self, element: etree._Element, marks: tuple[Mark, ...]) -> list[Node]:
        if not isinstance(element.tag, str) or element.tag in _IGNORED_TAGS:
            return []

        matched = self._match(element)
        if matched is None:
            return self.parse_children(element, marks)

        rule, spec = matched
        if isinstance(spec, MarkSpec):
            mark = self.schema.mark(spec.name, **rule.attrs_for(element))
            return self.parse_children(element, marks + (mark,))

        attrs = rule.attrs_for(element)
        if spec.atom:
            node = self.schema.node(spec.name, attrs)
        elif spec.is_textblock:
            content = self.inline_content(self.parse_children(element, ()))
            node = self.schema.node(spec.name, attrs, content)
        else:
            content = self.fit_block_content(spec, self.parse_children(element, ()))
            node = self.schema.node(spec.name, attrs, content)

        if rule.postprocess is not None:
            node = rule.postprocess(element, node)
        return [node]

    def inline_content(self, nodes: Sequence[Node]) -> list[Node]:
        """Flatten nested blocks and trim surrounding whitespace."""
        flat: list[Node] = []
        for node in nodes:
            if self.schema.spec(node.type).inline:
                flat.append(node)
            else:
                flat.extend(self.inline_content(node.content))
        return _trim(flat)

    def fit_block_content(self, parent: NodeSpec, nodes: Sequence[Node]) -> list[Node]:
        """Arrange a mixed node list into valid content for a block container."""
        wrapper = FOOTNOTE_CITATION if parent.name == FOOTNOTE_REGISTRY else PARAGRAPH
        result: list[Node] = []
        run: list[Node] = []

        def flush() -> None:
            inline = _trim(run)
            run.clear()
            if inline:
                result.append(self.schema.node(wrapper, content=inline))

        for node in nodes:
            spec = self.schema.spec(node.type)
            if spec.inline:
                run.append(node)
                continue
            flush()
            if self.schema.allows(parent, node):
                result.append(node)
            elif node.content and all(self.schema.allows(parent, c) for c in node.content):
                result.extend(node.content)
            else:
                logger.debug("Dropping '%s' block inside '%s'", node.type, parent.name)
        flush()
        return result


def _trim(nodes: Sequence[Node]) -> list[Node]:
    content = list(normalize_inline(nodes))
    if content and content[0].is_text:
        stripped = (content[0].text or "").lstrip()
        content[0:1] = [content[0].with_text(stripped)] if stripped else []
    if content and content[-1].is_text:
        stripped = (content[-1].text or "").rstrip()
        content[-1:] = [content[-1].with_text(stripped)] if stripped else []
    return content


def parse_html(markup: str | bytes, schema: Schema | None = None) -> Node:
    """Parse an HTML document or fragment into a document node.

    Args:
        markup: HTML source; fragments are accepted and wrapped in a body
        schema: Schema to parse with (defaults to the shared default schema)

    Returns:
        The root ``doc`` node

    Example:
        >>> doc = parse_html('<p>Text<a class="footnote-ref" data-number="1">[1]</a></p>')
        >>> doc.content[0].content[1].type
        'footnote_ref'
    """
    schema = schema or default_schema()
    if not markup or not markup.strip():
        return empty_document(schema)

    if isinstance(markup, bytes):
        root = lxml.html.document_fromstring(markup, parser=_UTF8_PARSER)
    else:
        root = lxml.html.document_fromstring(markup)
    body = root.find("body")
    if body is None:
        body = root

    parser = _DOMParser(schema)
    content = parser.fit_block_content(schema.spec(DOC), parser.parse_children(body, ()))
    if not content:
        return empty_document(schema)
    return schema.node(DOC, content=content)


def empty_document(schema: Schema | None = None) -> Node:
    """A document holding a single empty paragraph."""
    schema = schema or default_schema()
    return schema.node(DOC, content=[schema.node(PARAGRAPH)])


# =============================================================================
# Rendering
# =============================================================================


def _clean_attrs(attrs: dict[str, Any]) -> dict[str, str]:
    return {key: str(value) for key, value in attrs.items() if value is not None}


def _append_text(element: etree._Element, text: str) -> None:
    if len(element):
        last = element[-1]
        last.tail = (last.tail or "") + text
    else:
        element.text = (element.text or "") + text


def _render_inline(schema: Schema, parent: etree._Element, nodes: Sequence[Node]) -> None:
    stack: list[tuple[Mark | None, etree._Element]] = [(None, parent)]
    for node in nodes:
        marks = node.marks
        keep = 0
        while keep < len(marks) and keep + 1 < len(stack) and stack[keep + 1][0] == marks[keep]:
            keep += 1
        del stack[keep + 1 :]
        for mark in marks[keep:]:
            dom = schema.mark_spec(mark.type).to_dom(mark)  # type: ignore[misc]
            element = etree.SubElement(stack[-1][1], dom.tag, _clean_attrs(dom.attrs))
            stack.append((mark, element))
        if node.is_text:
            _append_text(stack[-1][1], node.text or "")
        else:
            _render_node(schema, stack[-1][1], node)


def _render_node(schema: Schema, parent: etree._Element, node: Node) -> etree._Element:
    spec = schema.spec(node.type)
    if spec.to_dom is None:
        raise ValueError(f"Node type '{node.type}' has no render rule")
    dom = spec.to_dom(node)
    element = etree.SubElement(parent, dom.tag, _clean_attrs(dom.attrs))
    if dom.label is not None:
        label = etree.SubElement(element, dom.label.tag, _clean_attrs(dom.label.attrs))
        label.text = dom.label.text
        label.tail = " "
    if node.leaf:
        element.text = dom.text
    elif spec.is_textblock:
        _render_inline(schema, element, node.content)
    else:
        element.text = "\n"
        for child in node.content:
            _render_node(schema, element, child)
    if not spec.inline:
        element.tail = "\n"
    return element


def render_node(node: Node, schema: Schema | None = None) -> str:
    """Render a single non-text node to an HTML string."""
    schema = schema or default_schema()
    holder = etree.Element("div")
    element = _render_node(schema, holder, node)
    element.tail = None
    return lxml.html.tostring(element, encoding="unicode")


def render_html(doc: Node, schema: Schema | None = None, full_document: bool = False) -> str:
    """Render a document node to HTML.

    Args:
        doc: Root ``doc`` node
        schema: Schema to render with (defaults to the shared default schema)
        full_document: Wrap the content in ``<html>``/``<body>`` with a doctype

    Returns:
        HTML string
    """
    schema = schema or default_schema()
    body = etree.Element("body")
    body.text = "\n"
    for child in doc.content:
        _render_node(schema, body, child)

    if full_document:
        html = etree.Element("html")
        head = etree.SubElement(html, "head")
        etree.SubElement(head, "meta", charset="utf-8")
        html.append(body)
        return lxml.html.tostring(html, encoding="unicode", doctype="<!DOCTYPE html>")

    return "".join(lxml.html.tostring(child, encoding="unicode") for child in body)
