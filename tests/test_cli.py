"""Tests for the command-line interface."""

from pathlib import Path

from typer.testing import CliRunner

from python_footnote_sync import Document
from python_footnote_sync.cli import app

runner = CliRunner()

CONSISTENT = (
    '<p>Alpha<a class="footnote-ref" data-number="1" data-footnote-id="a">[1]</a> beta.</p>'
    '<aside id="footnote-registry" class="footnotes">'
    '<p class="footnote-citation" data-number="1" data-footnote-id="a">First note</p>'
    "</aside>"
)

OUT_OF_SYNC = (
    '<p>One<a class="footnote-ref" data-number="2">[2]</a>'
    ' two<a class="footnote-ref" data-number="1">[1]</a></p>'
    '<div id="footnote-registry"><p data-number="1">First</p><p data-number="2">Second</p></div>'
)


def write_html(path: Path, content: str) -> Path:
    """Write an HTML file for testing."""
    path.write_text(content, encoding="utf-8")
    return path


class TestVersion:
    """Tests for --version flag."""

    def test_version_flag(self):
        """Test that --version shows version and exits."""
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert "footnote-sync version" in result.output
        assert "0.1.0" in result.output

    def test_help(self):
        """Test that --help lists the commands."""
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for command in ("sync", "check", "insert", "list"):
            assert command in result.output


class TestSyncCommand:
    """Tests for the sync command."""

    def test_sync_rewrites_file(self, tmp_path):
        """Test renumbering in place."""
        path = write_html(tmp_path / "doc.html", OUT_OF_SYNC)
        result = runner.invoke(app, ["sync", str(path)])

        assert result.exit_code == 0
        assert "2 markers renumbered" in result.output
        assert f"Saved to {path}" in result.output
        doc = Document(path)
        assert [(fn.number, fn.text) for fn in doc.footnotes] == [(1, "Second"), (2, "First")]

    def test_sync_to_output_file(self, tmp_path):
        """Test writing the result elsewhere."""
        path = write_html(tmp_path / "doc.html", OUT_OF_SYNC)
        out = tmp_path / "out.html"
        result = runner.invoke(app, ["sync", str(path), "-o", str(out)])

        assert result.exit_code == 0
        assert out.exists()
        assert path.read_text(encoding="utf-8") == OUT_OF_SYNC

    def test_sync_consistent(self, tmp_path):
        """Test a consistent document reports no changes."""
        path = write_html(tmp_path / "doc.html", CONSISTENT)
        result = runner.invoke(app, ["sync", str(path)])
        assert result.exit_code == 0
        assert "consistent (1 footnotes)" in result.output

    def test_sync_missing_file(self, tmp_path):
        """Test a missing input file."""
        result = runner.invoke(app, ["sync", str(tmp_path / "missing.html")])
        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_sync_with_config(self, tmp_path):
        """Test passing a YAML configuration."""
        path = write_html(tmp_path / "doc.html", OUT_OF_SYNC)
        config = write_html(tmp_path / "sync.yaml", "sync:\n  correlate_by_id: false\n")
        result = runner.invoke(app, ["sync", str(path), "--config", str(config)])
        assert result.exit_code == 0

    def test_sync_bad_config(self, tmp_path):
        """Test an invalid configuration file."""
        path = write_html(tmp_path / "doc.html", OUT_OF_SYNC)
        config = write_html(tmp_path / "sync.yaml", "sync:\n  scheduler: threads\n")
        result = runner.invoke(app, ["sync", str(path), "-c", str(config)])
        assert result.exit_code == 1
        assert "Invalid sync configuration" in result.output


class TestCheckCommand:
    """Tests for the check command."""

    def test_check_consistent(self, tmp_path):
        """Test exit code 0 for a consistent document."""
        path = write_html(tmp_path / "doc.html", CONSISTENT)
        result = runner.invoke(app, ["check", str(path)])
        assert result.exit_code == 0
        assert "Footnotes are consistent (1 footnotes)" in result.output

    def test_check_out_of_sync(self, tmp_path):
        """Test exit code 1 and the pending changes."""
        path = write_html(tmp_path / "doc.html", OUT_OF_SYNC)
        result = runner.invoke(app, ["check", str(path)])
        assert result.exit_code == 1
        assert "Footnotes are out of sync:" in result.output
        assert "marker [2] -> [1]" in result.output
        assert "rewrite registry: 2 -> 2 entries" in result.output

    def test_check_does_not_modify(self, tmp_path):
        """Test that check leaves the file alone."""
        path = write_html(tmp_path / "doc.html", OUT_OF_SYNC)
        runner.invoke(app, ["check", str(path)])
        assert path.read_text(encoding="utf-8") == OUT_OF_SYNC


class TestInsertCommand:
    """Tests for the insert command."""

    def test_insert(self, tmp_path):
        """Test inserting a footnote after some text."""
        path = write_html(tmp_path / "doc.html", CONSISTENT)
        result = runner.invoke(app, ["insert", str(path), "--text", "New note", "--at", "beta"])

        assert result.exit_code == 0
        assert f"Inserted footnote [2] and saved to {path}" in result.output
        assert [fn.text for fn in Document(path).footnotes] == ["First note", "New note"]

    def test_insert_reports_final_number(self, tmp_path):
        """Test the reported number is the one after renumbering."""
        path = write_html(tmp_path / "doc.html", "<p>Alpha beta.</p>")
        runner.invoke(app, ["insert", str(path), "-t", "Later", "-a", "beta"])
        result = runner.invoke(app, ["insert", str(path), "-t", "Earlier", "-a", "Alpha"])
        assert result.exit_code == 0
        assert "Inserted footnote [1]" in result.output
        assert [fn.text for fn in Document(path).footnotes] == ["Earlier", "Later"]

    def test_insert_empty_text(self, tmp_path):
        """Test that an empty body is an error."""
        path = write_html(tmp_path / "doc.html", CONSISTENT)
        result = runner.invoke(app, ["insert", str(path), "-t", "  ", "-a", "beta"])
        assert result.exit_code == 1
        assert "Footnote text is empty" in result.output

    def test_insert_anchor_not_found(self, tmp_path):
        """Test a missing anchor."""
        path = write_html(tmp_path / "doc.html", CONSISTENT)
        result = runner.invoke(app, ["insert", str(path), "-t", "Note", "-a", "gamma"])
        assert result.exit_code == 1
        assert "Could not find 'gamma'" in result.output

    def test_insert_occurrence(self, tmp_path):
        """Test choosing among repeated anchors."""
        path = write_html(tmp_path / "doc.html", "<p>the cat and the dog</p>")
        out = tmp_path / "out.html"
        result = runner.invoke(
            app, ["insert", str(path), "-t", "Note", "-a", "the", "-n", "2", "-o", str(out)]
        )
        assert result.exit_code == 0
        assert Document(out).references[0].pos == 16


class TestListCommand:
    """Tests for the list command."""

    def test_list(self, tmp_path):
        """Test listing footnotes."""
        path = write_html(tmp_path / "doc.html", CONSISTENT)
        result = runner.invoke(app, ["list", str(path)])
        assert result.exit_code == 0
        assert "[1] First note" in result.output

    def test_list_empty(self, tmp_path):
        """Test a document without footnotes."""
        path = write_html(tmp_path / "doc.html", "<p>Plain.</p>")
        result = runner.invoke(app, ["list", str(path)])
        assert result.exit_code == 0
        assert "No footnotes" in result.output

    def test_list_orphans(self, tmp_path):
        """Test that orphaned entries are reported."""
        path = write_html(
            tmp_path / "doc.html",
            '<p>Text.</p><div id="footnote-registry"><p data-number="1">Lost</p></div>',
        )
        result = runner.invoke(app, ["list", str(path)])
        assert result.exit_code == 0
        assert "[1] Lost" in result.output
        assert "Orphaned footnotes: 1" in result.output
