"""
Node and mark type registrations for python_footnote_sync documents.

A Schema describes which node types exist, where they may appear, which
attributes they carry and how they map to and from HTML. Parse rules are XPath
expressions evaluated against each element (``self::...``) together with a
priority used to disambiguate overlapping rules, such as a generic link anchor
versus a footnote reference anchor.

The three footnote registrations are:

- ``footnote_ref``: inline atom placed at the point of citation
- ``footnote_citation``: block holding the authored footnote text
- ``footnote_registry``: block container holding the citations
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any, NamedTuple

from lxml import etree

from .constants import (
    BACKLINK_CLASS,
    BLOCKQUOTE,
    BOLD,
    BRACKET_LABEL,
    CITATION_ANCHOR,
    CITATION_CLASS,
    CODE,
    DEFAULT_PRIORITY,
    DOC,
    FOOTNOTE_CITATION,
    FOOTNOTE_REF,
    FOOTNOTE_REGISTRY,
    HARD_BREAK,
    HEADING,
    HIGH_PRIORITY,
    ITALIC,
    LABEL_CLASS,
    LEADING_LABEL,
    LINK,
    NUMBER_ATTR,
    PARAGRAPH,
    REF_ANCHOR,
    REF_CLASS,
    REF_ID_ATTR,
    REGISTRY_CLASS,
    REGISTRY_ID,
    REGISTRY_LABEL,
    STRIKETHROUGH,
    TEXT,
    UNDERLINE,
)
from .errors import SchemaError
from .models.node import Mark, Node, normalize_inline

logger = logging.getLogger(__name__)


class DOMSpec(NamedTuple):
    """How a node or mark renders to HTML.

    Attributes:
        tag: Element tag name
        attrs: HTML attributes (None values are omitted)
        text: Literal text content for leaf nodes
        label: Element rendered ahead of a textblock's content, followed by a space
    """

    tag: str
    attrs: dict[str, Any]
    text: str | None = None
    label: DOMSpec | None = None


@dataclass(frozen=True)
class ParseRule:
    """Match an HTML element to a node or mark type.

    Attributes:
        xpath: XPath expression evaluated with the element as context node
        priority: Higher priorities are tried first
        get_attrs: Extract attributes from the matched element
        postprocess: Adjust the parsed node (node rules only)
    """

    xpath: str
    priority: int = DEFAULT_PRIORITY
    get_attrs: Callable[[etree._Element], dict[str, Any]] | None = None
    postprocess: Callable[[etree._Element, Node], Node] | None = None
    _compiled: etree.XPath = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_compiled", etree.XPath(self.xpath))

    def matches(self, element: etree._Element) -> bool:
        return bool(self._compiled(element))

    def attrs_for(self, element: etree._Element) -> dict[str, Any]:
        return self.get_attrs(element) if self.get_attrs else {}


@dataclass
class NodeSpec:
    """Registration of a node type.

    Attributes:
        name: Node type name
        group: Group the node belongs to ("block" or "inline")
        content: Allowed child groups or type names (empty for leaves)
        inline: Whether the node is placed inline
        atom: Whether the node is a leaf occupying a single position
        attrs: Attribute names mapped to their defaults
        parse_rules: HTML parse rules
        to_dom: Render rule
    """

    name: str
    group: str | None = None
    content: tuple[str, ...] = ()
    inline: bool = False
    atom: bool = False
    attrs: dict[str, Any] = field(default_factory=dict)
    parse_rules: tuple[ParseRule, ...] = ()
    to_dom: Callable[[Node], DOMSpec] | None = None

    @property
    def is_textblock(self) -> bool:
        return "inline" in self.content


@dataclass
class MarkSpec:
    """Registration of a mark type.

    Attributes:
        name: Mark type name
        attrs: Attribute names mapped to their defaults
        parse_rules: HTML parse rules
        to_dom: Render rule
    """

    name: str
    attrs: dict[str, Any] = field(default_factory=dict)
    parse_rules: tuple[ParseRule, ...] = ()
    to_dom: Callable[[Mark], DOMSpec] | None = None


class Schema:
    """A set of node and mark registrations plus node factories.

    Example:
        >>> schema = default_schema()
        >>> para = schema.node("paragraph", content=[schema.text("Hello")])
        >>> para.node_size
        7
    """

    def __init__(self, nodes: Sequence[NodeSpec], marks: Sequence[MarkSpec] = ()) -> None:
        self._nodes: dict[str, NodeSpec] = {spec.name: spec for spec in nodes}
        self._marks: dict[str, MarkSpec] = {spec.name: spec for spec in marks}
        self._mark_rank = {spec.name: rank for rank, spec in enumerate(marks)}
        if DOC not in self._nodes or TEXT not in self._nodes:
            raise SchemaError("Schema requires 'doc' and 'text' node types")

    @property
    def node_specs(self) -> list[NodeSpec]:
        return list(self._nodes.values())

    @property
    def mark_specs(self) -> list[MarkSpec]:
        return list(self._marks.values())

    def spec(self, name: str) -> NodeSpec:
        """Get the registration for a node type.

        Raises:
            SchemaError: If the type is not registered
        """
        try:
            return self._nodes[name]
        except KeyError:
            raise SchemaError(f"Unknown node type '{name}'", node_type=name) from None

    def mark_spec(self, name: str) -> MarkSpec:
        try:
            return self._marks[name]
        except KeyError:
            raise SchemaError(f"Unknown mark type '{name}'", node_type=name) from None

    def _fill_attrs(
        self, defaults: dict[str, Any], attrs: dict[str, Any] | None, name: str
    ) -> dict[str, Any]:
        attrs = attrs or {}
        unknown = sorted(set(attrs) - set(defaults))
        if unknown:
            raise SchemaError(
                f"Unknown attribute(s) for '{name}': {', '.join(unknown)}", node_type=name
            )
        filled = dict(defaults)
        filled.update(attrs)
        return filled

    def node(
        self,
        type_name: str,
        attrs: dict[str, Any] | None = None,
        content: Iterable[Node] = (),
    ) -> Node:
        """Create a node, filling in attribute defaults and validating content.

        Args:
            type_name: Registered node type
            attrs: Attribute values overriding the defaults
            content: Child nodes

        Returns:
            The new node

        Raises:
            SchemaError: If the type, an attribute or a child is not allowed
        """
        spec = self.spec(type_name)
        if type_name == TEXT:
            raise SchemaError("Use Schema.text() to create text nodes", node_type=TEXT)
        children = tuple(content)
        if spec.atom and children:
            raise SchemaError(f"Atom node '{type_name}' cannot have content", node_type=type_name)
        node = Node(
            type=type_name,
            attrs=self._fill_attrs(spec.attrs, attrs, type_name),
            content=normalize_inline(children) if spec.is_textblock else children,
            leaf=spec.atom,
        )
        self.validate_content(node)
        return node

    def text(self, text: str, marks: Iterable[Mark] = ()) -> Node:
        """Create a text node with marks sorted in schema order."""
        if not text:
            raise SchemaError("Empty text nodes are not allowed", node_type=TEXT)
        ordered = tuple(sorted(set_marks(marks), key=lambda m: self._mark_rank.get(m.type, 0)))
        return Node(type=TEXT, text=text, marks=ordered)

    def mark(self, type_name: str, **attrs: Any) -> Mark:
        spec = self.mark_spec(type_name)
        return Mark(type=type_name, attrs=self._fill_attrs(spec.attrs, attrs, type_name))

    def allows(self, parent: NodeSpec, child: Node) -> bool:
        """Check whether ``child`` may appear inside a ``parent`` node."""
        child_spec = self.spec(child.type)
        return child.type in parent.content or (
            child_spec.group is not None and child_spec.group in parent.content
        )

    def validate_content(self, node: Node) -> None:
        """Check that every child of ``node`` is allowed by its spec.

        Raises:
            SchemaError: Listing every disallowed child
        """
        spec = self.spec(node.type)
        errors = [
            f"'{child.type}' is not allowed inside '{node.type}'"
            for child in node.content
            if not self.allows(spec, child)
        ]
        if errors:
            raise SchemaError(
                f"Invalid content for '{node.type}'", node_type=node.type, errors=errors
            )

    def parse_rules(self) -> list[tuple[ParseRule, NodeSpec | MarkSpec]]:
        """All parse rules, highest priority first.

        Rules with equal priority keep registration order (node types
        before mark types).
        """
        rules: list[tuple[ParseRule, NodeSpec | MarkSpec]] = []
        for spec in self._nodes.values():
            rules.extend((rule, spec) for rule in spec.parse_rules)
        for mark_spec in self._marks.values():
            rules.extend((rule, mark_spec) for rule in mark_spec.parse_rules)
        return sorted(rules, key=lambda item: -item[0].priority)


def set_marks(marks: Iterable[Mark]) -> list[Mark]:
    """Deduplicate marks, keeping the last mark of each type."""
    by_type: dict[str, Mark] = {}
    for mark in marks:
        by_type[mark.type] = mark
    return list(by_type.values())


# =============================================================================
# Number attribute parsing
# =============================================================================


def _data_number(element: etree._Element) -> int | None:
    raw = element.get(NUMBER_ATTR)
    if raw is None:
        return None
    try:
        number = int(raw.strip())
    except ValueError:
        return None
    return number if number >= 1 else None


def parse_number(element: etree._Element) -> int:
    """Read a footnote number from an element.

    Falls back to the visible bracketed label (``[3]``) when the
    ``data-number`` attribute is missing or garbled, and to 1 when that
    fails too.

    Example:
        >>> parse_number(lxml.html.fragment_fromstring('<a data-number="4">x</a>'))
        4
        >>> parse_number(lxml.html.fragment_fromstring('<a>[7]</a>'))
        7
    """
    number = _data_number(element)
    if number is not None:
        return number

    match = BRACKET_LABEL.search("".join(element.itertext()))
    if match and int(match.group(1)) >= 1:
        logger.debug("Recovered footnote number %s from visible label", match.group(1))
        return int(match.group(1))

    logger.debug("No usable footnote number on <%s>, defaulting to 1", element.tag)
    return 1


def _footnote_attrs(element: etree._Element) -> dict[str, Any]:
    return {"number": parse_number(element), "ref_id": element.get(REF_ID_ATTR) or None}


def _is_rendered_label(node: Node) -> bool:
    return node.is_text and any(
        mark.type == LINK and LABEL_CLASS in (mark.attrs.get("class") or "").split()
        for mark in node.marks
    )


def _drop_leading_space(content: tuple[Node, ...]) -> tuple[Node, ...]:
    if not content or not content[0].is_text:
        return content
    stripped = (content[0].text or "").lstrip()
    return ((content[0].with_text(stripped),) if stripped else ()) + content[1:]


def _strip_citation_label(element: etree._Element, node: Node) -> Node:
    """Drop the leading number label from a parsed citation body.

    A rendered label (``<a class="footnote-label">[n]</a>``) is always
    dropped. A plain-text ``[n] `` label from legacy markup is dropped only
    when it supplied the number.
    """
    if not node.content:
        return node
    if _is_rendered_label(node.content[0]):
        return node.with_content(_drop_leading_space(node.content[1:]))
    if _data_number(element) is not None:
        return node
    first = node.content[0]
    if not first.is_text:
        return node
    stripped = LEADING_LABEL.sub("", first.text or "", count=1)
    if stripped == first.text:
        return node
    rest = node.content[1:]
    content = ((first.with_text(stripped),) if stripped else ()) + rest
    return node.with_content(content)


def _has_class(name: str) -> str:
    return f"contains(concat(' ', normalize-space(@class), ' '), ' {name} ')"


_IN_REGISTRY = f"ancestor::*[@id='{REGISTRY_ID}' or {_has_class(REGISTRY_CLASS)}]"


# =============================================================================
# Render rules
# =============================================================================


def _ref_to_dom(node: Node) -> DOMSpec:
    number = node.attrs["number"]
    return DOMSpec(
        "a",
        {
            "class": REF_CLASS,
            NUMBER_ATTR: str(number),
            REF_ID_ATTR: node.attrs.get("ref_id"),
            "href": "#" + CITATION_ANCHOR.format(number=number),
            "id": REF_ANCHOR.format(number=number),
        },
        f"[{number}]",
    )


def _citation_to_dom(node: Node) -> DOMSpec:
    number = node.attrs["number"]
    return DOMSpec(
        "p",
        {
            "class": CITATION_CLASS,
            NUMBER_ATTR: str(number),
            REF_ID_ATTR: node.attrs.get("ref_id"),
            "id": CITATION_ANCHOR.format(number=number),
        },
        label=DOMSpec(
            "a",
            {"class": LABEL_CLASS, "href": "#" + REF_ANCHOR.format(number=number)},
            f"[{number}]",
        ),
    )


def _registry_to_dom(node: Node) -> DOMSpec:
    return DOMSpec(
        "aside", {"id": REGISTRY_ID, "class": REGISTRY_CLASS, "aria-label": REGISTRY_LABEL}
    )


# =============================================================================
# Registrations
# =============================================================================


def footnote_specs() -> list[NodeSpec]:
    """The three footnote node-type registrations."""
    return [
        NodeSpec(
            name=FOOTNOTE_REF,
            group="inline",
            inline=True,
            atom=True,
            attrs={"number": 1, "ref_id": None},
            parse_rules=(
                ParseRule(f"self::a[{_has_class(REF_CLASS)}]", HIGH_PRIORITY, _footnote_attrs),
                ParseRule(f"self::sup[{_has_class(REF_CLASS)}]", HIGH_PRIORITY, _footnote_attrs),
            ),
            to_dom=_ref_to_dom,
        ),
        NodeSpec(
            name=FOOTNOTE_CITATION,
            group="block",
            content=("inline",),
            attrs={"number": 1, "ref_id": None},
            parse_rules=(
                ParseRule(
                    f"self::p[{_IN_REGISTRY}]",
                    HIGH_PRIORITY,
                    _footnote_attrs,
                    _strip_citation_label,
                ),
                ParseRule(
                    f"self::li[{_IN_REGISTRY}]",
                    HIGH_PRIORITY,
                    _footnote_attrs,
                    _strip_citation_label,
                ),
                ParseRule(
                    f"self::p[{_has_class(CITATION_CLASS)}]",
                    DEFAULT_PRIORITY,
                    _footnote_attrs,
                    _strip_citation_label,
                ),
                ParseRule(
                    f"self::li[{_has_class(CITATION_CLASS)}]",
                    DEFAULT_PRIORITY,
                    _footnote_attrs,
                    _strip_citation_label,
                ),
            ),
            to_dom=_citation_to_dom,
        ),
        NodeSpec(
            name=FOOTNOTE_REGISTRY,
            group="block",
            content=(FOOTNOTE_CITATION,),
            parse_rules=(
                ParseRule(f"self::div[@id='{REGISTRY_ID}']", HIGH_PRIORITY),
                ParseRule(f"self::aside[{_has_class(REGISTRY_CLASS)}]", HIGH_PRIORITY),
                ParseRule(f"self::section[{_has_class(REGISTRY_CLASS)}]", DEFAULT_PRIORITY),
            ),
            to_dom=_registry_to_dom,
        ),
    ]


def core_specs() -> list[NodeSpec]:
    """Basic document structure: doc, paragraphs, headings, quotes, text."""
    headings = tuple(
        ParseRule(f"self::h{level}", DEFAULT_PRIORITY, lambda el, lv=level: {"level": lv})
        for level in range(1, 7)
    )
    return [
        NodeSpec(name=DOC, content=("block",)),
        NodeSpec(
            name=PARAGRAPH,
            group="block",
            content=("inline",),
            parse_rules=(ParseRule("self::p", DEFAULT_PRIORITY),),
            to_dom=lambda node: DOMSpec("p", {}),
        ),
        NodeSpec(
            name=HEADING,
            group="block",
            content=("inline",),
            attrs={"level": 1},
            parse_rules=headings,
            to_dom=lambda node: DOMSpec(f"h{node.attrs['level']}", {}),
        ),
        NodeSpec(
            name=BLOCKQUOTE,
            group="block",
            content=("block",),
            parse_rules=(ParseRule("self::blockquote", DEFAULT_PRIORITY),),
            to_dom=lambda node: DOMSpec("blockquote", {}),
        ),
        NodeSpec(name=TEXT, group="inline", inline=True),
        NodeSpec(
            name=HARD_BREAK,
            group="inline",
            inline=True,
            atom=True,
            parse_rules=(ParseRule("self::br", DEFAULT_PRIORITY),),
            to_dom=lambda node: DOMSpec("br", {}),
        ),
    ]


def _link_attrs(element: etree._Element) -> dict[str, Any]:
    return {
        "href": element.get("href"),
        "title": element.get("title"),
        "class": element.get("class"),
    }


def core_marks() -> list[MarkSpec]:
    """Inline formatting marks, outermost first."""
    return [
        MarkSpec(
            name=LINK,
            attrs={"href": None, "title": None, "class": None},
            parse_rules=(ParseRule("self::a[@href]", DEFAULT_PRIORITY, _link_attrs),),
            to_dom=lambda mark: DOMSpec("a", dict(mark.attrs)),
        ),
        MarkSpec(
            name=BOLD,
            parse_rules=(ParseRule("self::strong | self::b", DEFAULT_PRIORITY),),
            to_dom=lambda mark: DOMSpec("strong", {}),
        ),
        MarkSpec(
            name=ITALIC,
            parse_rules=(ParseRule("self::em | self::i", DEFAULT_PRIORITY),),
            to_dom=lambda mark: DOMSpec("em", {}),
        ),
        MarkSpec(
            name=UNDERLINE,
            parse_rules=(ParseRule("self::u", DEFAULT_PRIORITY),),
            to_dom=lambda mark: DOMSpec("u", {}),
        ),
        MarkSpec(
            name=STRIKETHROUGH,
            parse_rules=(ParseRule("self::s | self::del | self::strike", DEFAULT_PRIORITY),),
            to_dom=lambda mark: DOMSpec("s", {}),
        ),
        MarkSpec(
            name=CODE,
            parse_rules=(ParseRule("self::code", DEFAULT_PRIORITY),),
            to_dom=lambda mark: DOMSpec("code", {}),
        ),
    ]


def backlink_mark(schema: Schema, number: int) -> Mark:
    """Link mark pointing back from a citation to its reference marker."""
    return schema.mark(
        LINK, href="#" + REF_ANCHOR.format(number=number), **{"class": BACKLINK_CLASS}
    )


_default_schema: Schema | None = None


def default_schema() -> Schema:
    """Get the shared schema with core and footnote registrations."""
    global _default_schema
    if _default_schema is None:
        _default_schema = Schema(footnote_specs() + core_specs(), core_marks())
    return _default_schema
