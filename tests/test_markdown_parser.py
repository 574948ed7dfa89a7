"""Tests for the markdown parser module."""

from python_footnote_sync import default_schema
from python_footnote_sync.markdown_parser import MarkdownParser, parse_markdown


def runs(text: str) -> list[tuple[str, list[str]]]:
    """Parse markdown and return (text, mark types) per node."""
    return [
        (node.text if node.is_text else node.type, [mark.type for mark in node.marks])
        for node in parse_markdown(text)
    ]


class TestMarkdownParserBasic:
    """Tests for basic markdown parsing."""

    def test_plain_text(self):
        """Test parsing plain text without formatting."""
        assert runs("Hello world") == [("Hello world", [])]

    def test_empty_string(self):
        """Test parsing empty string."""
        assert parse_markdown("") == []

    def test_whitespace_only(self):
        """Test parsing whitespace-only text."""
        assert parse_markdown("   \n ") == []

    def test_bold_text(self):
        """Test parsing **bold** text."""
        assert runs("This is **bold** text") == [
            ("This is ", []),
            ("bold", ["bold"]),
            (" text", []),
        ]

    def test_italic_text(self):
        """Test parsing *italic* text."""
        assert runs("This is *italic* text")[1] == ("italic", ["italic"])

    def test_underscore_italic(self):
        """Test parsing _italic_ text."""
        assert runs("This is _italic_ text")[1] == ("italic", ["italic"])

    def test_underline_text(self):
        """Test parsing ++underline++ text."""
        assert runs("This is ++underlined++ text")[1] == ("underlined", ["underline"])

    def test_strikethrough_text(self):
        """Test parsing ~~strikethrough~~ text."""
        assert runs("This is ~~struck~~ text")[1] == ("struck", ["strikethrough"])

    def test_code_span(self):
        """Test parsing `code` spans."""
        assert runs("Call `sync()` now")[1] == ("sync()", ["code"])

    def test_link(self):
        """Test parsing [text](url) links."""
        nodes = parse_markdown('See [the paper](https://example.com "Title")')
        link = nodes[1].marks[0]
        assert nodes[1].text == "the paper"
        assert link.type == "link"
        assert link.attrs["href"] == "https://example.com"
        assert link.attrs["title"] == "Title"


class TestMarkdownParserNesting:
    """Tests for nested and combined formatting."""

    def test_bold_with_nested_italic(self):
        """Test italic inside bold carries both marks."""
        assert runs("**bold _both_**") == [("bold ", ["bold"]), ("both", ["bold", "italic"])]

    def test_mixed_formatting(self):
        """Test several formats in one body."""
        result = runs("**bold** and *italic* and ++underline++")
        marked = [(text, marks) for text, marks in result if marks]
        assert marked == [("bold", ["bold"]), ("italic", ["italic"]), ("underline", ["underline"])]


class TestMarkdownParserEscapes:
    """Tests for escaped markdown characters."""

    def test_escaped_asterisk(self):
        """Test that \\* produces literal asterisk."""
        assert runs(r"This is \*not italic\*") == [("This is *not italic*", [])]

    def test_escaped_plus(self):
        """Test that \\+ in underline syntax is handled."""
        result = runs(r"This is \+\+not underline\+\+")
        assert all("underline" not in marks for _text, marks in result)


class TestMarkdownParserBlocks:
    """Tests for block structure flattening."""

    def test_paragraphs_joined(self):
        """Test that paragraphs become one run separated by a space."""
        assert runs("First part.\n\nSecond part.") == [("First part. Second part.", [])]

    def test_soft_break(self):
        """Test that a soft line break becomes a space."""
        assert runs("line one\nline two") == [("line one line two", [])]

    def test_hard_break(self):
        """Test that a hard line break becomes a hard_break node."""
        assert runs("line one  \nline two") == [
            ("line one", []),
            ("hard_break", []),
            ("line two", []),
        ]

    def test_surrounding_whitespace_stripped(self):
        """Test leading and trailing whitespace is dropped."""
        assert runs("  padded  ") == [("padded", [])]


class TestMarkdownParserInstance:
    """Tests for reusing a parser instance."""

    def test_parser_is_reusable(self):
        """Test that parses do not leak into each other."""
        parser = MarkdownParser(default_schema())
        assert [node.text for node in parser.parse("first")] == ["first"]
        assert [node.text for node in parser.parse("second")] == ["second"]
