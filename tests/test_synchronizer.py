"""Tests for the reconciliation state machine."""

import asyncio
import logging

import pytest

from python_footnote_sync import (
    AsyncioScheduler,
    Document,
    ManualScheduler,
    SyncConfig,
    SyncState,
    TransactionError,
)
from python_footnote_sync.sync import RegistryAction

# "Alpha beta gamma delta." spans positions 1..24 of the first paragraph
ARTICLE = "<p>Alpha beta gamma delta.</p>"

UNNUMBERED = (
    '<p>A<a class="footnote-ref" data-number="1">[1]</a>'
    ' B<a class="footnote-ref" data-number="1">[1]</a></p>'
)

LEGACY = (
    '<p>One<a class="footnote-ref" data-number="1">[1]</a>'
    ' two<a class="footnote-ref" data-number="2">[2]</a>'
    ' three<a class="footnote-ref" data-number="3">[3]</a></p>'
    '<div id="footnote-registry">'
    '<p data-number="1">First</p><p data-number="2">Second</p><p data-number="3">Third</p>'
    "</div>"
)


def manual_document(html: str = ARTICLE, **kwargs) -> tuple[Document, ManualScheduler]:
    """Create a document whose passes run only on flush()."""
    scheduler = ManualScheduler()
    return Document.from_html(html, scheduler=scheduler, **kwargs), scheduler


def footnote_texts(doc: Document) -> list[tuple[int, str]]:
    """Get (number, text) for each registry entry."""
    return [(fn.number, fn.text) for fn in doc.footnotes]


def assert_consistent(doc: Document) -> None:
    """Check the numbering invariants."""
    refs = doc.references
    footnotes = doc.footnotes
    expected = list(range(1, len(refs) + 1))
    assert [r.number for r in refs] == expected
    assert [fn.number for fn in footnotes] == expected
    assert [fn.ref_id for fn in footnotes] == [r.ref_id for r in refs]


class TestStateMachine:
    """Tests for state transitions."""

    def test_initial_state(self):
        """Test a new synchronizer is idle."""
        doc, _ = manual_document()
        assert doc.synchronizer.state is SyncState.IDLE

    def test_external_change_schedules(self):
        """Test that an edit moves the machine to SCHEDULED."""
        doc, scheduler = manual_document()
        doc.insert_footnote("A", at="delta")
        assert doc.synchronizer.state is SyncState.SCHEDULED
        assert scheduler.pending == 1

    def test_changes_coalesce(self):
        """Test that a burst of edits costs a single pass."""
        doc, scheduler = manual_document()
        doc.insert_footnote("A", at="delta")
        doc.insert_footnote("B", at="Alpha")
        doc.insert_footnote("C", at="gamma")
        assert scheduler.pending == 1
        assert scheduler.flush() == 1
        assert doc.synchronizer.state is SyncState.IDLE
        assert footnote_texts(doc) == [(1, "B"), (2, "C"), (3, "A")]

    def test_self_tagged_changes_ignored(self):
        """Test that the pass's own edit does not schedule another pass."""
        doc, scheduler = manual_document()
        events = []
        doc.subscribe(events.append)
        doc.insert_footnote("A", at="delta")
        doc.insert_footnote("B", at="Alpha")
        scheduler.flush()

        tagged = [e for e in events if doc.synchronizer.gate.is_tagged(e)]
        assert len(events) == 3
        assert len(tagged) == 1
        assert scheduler.pending == 0
        assert doc.synchronizer.state is SyncState.IDLE

    def test_no_op_transaction_ignored(self):
        """Test that a transaction without changes schedules nothing."""
        doc, scheduler = manual_document()
        doc.dispatch(doc.transaction())
        assert scheduler.pending == 0
        assert doc.synchronizer.state is SyncState.IDLE

    def test_change_during_pass_reruns(self):
        """Test that an external edit during APPLYING schedules another pass."""
        doc, scheduler = manual_document()
        sync = doc.synchronizer
        seen = []

        def edit_during_pass(event):
            if sync.gate.is_tagged(event) and not seen:
                seen.append(sync.state)
                tr = doc.transaction()
                tr.insert(1, doc.schema.text("Intro. "))
                doc.dispatch(tr)

        doc.subscribe(edit_during_pass)
        doc.insert_footnote("A", at="delta")
        doc.insert_footnote("B", at="Alpha")
        scheduler.flush()

        assert seen == [SyncState.APPLYING]
        assert sync.state is SyncState.IDLE
        assert doc.text.startswith("Intro. Alpha")
        assert_consistent(doc)

    def test_rerun_goes_to_scheduled(self):
        """Test the state right after a pass that saw an external edit."""
        doc, scheduler = manual_document()
        sync = doc.synchronizer
        states = []

        def edit_during_pass(event):
            if sync.gate.is_tagged(event) and not states:
                tr = doc.transaction()
                tr.insert(1, doc.schema.text("X"))
                doc.dispatch(tr)
                states.append(sync.state)

        doc.subscribe(edit_during_pass)
        doc.insert_footnote("A", at="delta")
        doc.insert_footnote("B", at="Alpha")
        sync.reconcile()

        assert states == [SyncState.APPLYING]
        assert sync.state is SyncState.SCHEDULED
        assert scheduler.pending == 1

    def test_reconcile_during_pass_rejected(self):
        """Test that a nested reconcile raises TransactionError."""
        doc, scheduler = manual_document()
        sync = doc.synchronizer
        errors = []

        def nested(event):
            if sync.gate.is_tagged(event):
                try:
                    sync.reconcile()
                except TransactionError as e:
                    errors.append(e)

        doc.subscribe(nested)
        doc.insert_footnote("A", at="delta")
        doc.insert_footnote("B", at="Alpha")
        scheduler.flush()
        assert len(errors) == 1

    def test_immediate_pass_runs_after_listeners(self):
        """Test that listeners see an edit before the pass it triggers."""
        doc = Document.from_html(ARTICLE)
        seen = []

        def record(event):
            seen.append((doc.synchronizer.gate.is_tagged(event), event.after is doc.doc))

        doc.subscribe(record)
        doc.insert_footnote("A", at="delta")
        doc.insert_footnote("B", at="Alpha")

        assert seen == [(False, True), (False, True), (True, True)]
        assert doc.synchronizer.state is SyncState.IDLE
        assert footnote_texts(doc) == [(1, "B"), (2, "A")]

    def test_detach(self):
        """Test a detached synchronizer ignores edits and drops pending passes."""
        doc, scheduler = manual_document()
        doc.insert_footnote("A", at="delta")
        doc.synchronizer.detach()
        assert scheduler.pending == 0
        assert doc.synchronizer.state is SyncState.IDLE
        assert not doc.synchronizer.attached

        doc.insert_footnote("B", at="Alpha")
        assert scheduler.pending == 0
        assert [r.number for r in doc.references] == [1, 1]

    def test_failed_pass_reported(self, monkeypatch, caplog):
        """Test that an exception in a pass is logged and returned, not raised."""
        doc, scheduler = manual_document()
        sync = doc.synchronizer

        def broken(*args, **kwargs):
            raise RuntimeError("boom")

        monkeypatch.setattr(sync.builder, "build", broken)
        with caplog.at_level(logging.ERROR):
            result = doc.sync()

        assert not result.success
        assert isinstance(result.error, RuntimeError)
        assert str(result) == "✗ sync: boom"
        assert sync.state is SyncState.IDLE
        assert "Footnote reconciliation failed" in caplog.text

        monkeypatch.undo()
        doc.insert_footnote("A", at="delta")
        scheduler.flush()
        assert sync.last_result.success


class TestNumbering:
    """Tests for the numbering invariants."""

    def test_concrete_scenario(self):
        """Test insert A, insert B before A, then delete B's marker."""
        doc, scheduler = manual_document()

        doc.insert_footnote("A", at="delta")
        scheduler.flush()
        assert footnote_texts(doc) == [(1, "A")]

        doc.insert_footnote("B", at="Alpha")
        scheduler.flush()
        assert footnote_texts(doc) == [(1, "B"), (2, "A")]
        assert [r.number for r in doc.references] == [1, 2]

        doc.delete_footnote(1)
        scheduler.flush()
        assert footnote_texts(doc) == [(1, "A")]
        assert [r.number for r in doc.references] == [1]

    @pytest.mark.parametrize("correlate_by_id", [True, False])
    def test_concrete_scenario_by_number(self, correlate_by_id):
        """Test the scenario holds with and without stable id correlation."""
        config = SyncConfig(correlate_by_id=correlate_by_id)
        doc, scheduler = manual_document(config=config)
        doc.insert_footnote("A", at="delta")
        doc.insert_footnote("B", at="Alpha")
        scheduler.flush()
        assert footnote_texts(doc) == [(1, "B"), (2, "A")]
        doc.delete_footnote(1)
        scheduler.flush()
        assert footnote_texts(doc) == [(1, "A")]

    def test_many_insertions(self):
        """Test numbering after insertions in arbitrary order."""
        doc, scheduler = manual_document(
            "<p>Alpha beta gamma delta.</p><p>Epsilon zeta eta.</p>"
        )
        for anchor in ["zeta", "Alpha", "eta.", "gamma", "beta", "Epsilon"]:
            doc.insert_footnote(f"Note on {anchor}", at=anchor)
        scheduler.flush()

        assert_consistent(doc)
        assert [fn.text for fn in doc.footnotes] == [
            "Note on Alpha",
            "Note on beta",
            "Note on gamma",
            "Note on Epsilon",
            "Note on zeta",
            "Note on eta.",
        ]

    def test_insertions_with_immediate_passes(self):
        """Test the same invariants when every edit is reconciled at once."""
        doc = Document.from_html(ARTICLE)
        for anchor in ["delta", "Alpha", "gamma"]:
            doc.insert_footnote(f"Note on {anchor}", at=anchor)
            assert_consistent(doc)
        assert [fn.text for fn in doc.footnotes] == [
            "Note on Alpha",
            "Note on gamma",
            "Note on delta",
        ]

    def test_idempotent(self):
        """Test a second pass produces no edit."""
        doc, scheduler = manual_document(UNNUMBERED)
        first = doc.sync()
        assert first.applied
        second = doc.sync()
        assert not second.applied
        assert doc.check().is_consistent

    def test_preserves_bodies_when_inserting_earlier(self):
        """Test authored bodies follow their markers on renumbering."""
        doc, scheduler = manual_document(LEGACY)
        doc.insert_footnote("New", at="One")
        scheduler.flush()
        assert footnote_texts(doc) == [(1, "New"), (2, "First"), (3, "Second"), (4, "Third")]
        assert_consistent(doc)

    def test_deleting_middle_marker(self):
        """Test deleting a marker drops its entry and renumbers the rest."""
        doc, scheduler = manual_document(LEGACY)
        doc.delete_footnote(2)
        scheduler.flush()
        assert footnote_texts(doc) == [(1, "First"), (2, "Third")]
        assert [r.number for r in doc.references] == [1, 2]

    def test_deleting_surrounding_text(self):
        """Test that removing text holding a marker is handled like a deletion."""
        doc, scheduler = manual_document(LEGACY)
        # " two" and its marker sit at positions 5..9
        tr = doc.transaction()
        tr.delete(5, 10)
        doc.dispatch(tr)
        scheduler.flush()
        assert doc.text.startswith("One three")
        assert footnote_texts(doc) == [(1, "First"), (2, "Third")]

    def test_moving_marker_reorders_entries(self):
        """Test cut and paste of a marker moves its entry too."""
        doc, scheduler = manual_document(LEGACY)
        third = doc.references[2]
        tr = doc.transaction()
        tr.delete(third.pos, third.pos + 1)
        tr.insert(1, third.node)
        doc.dispatch(tr)
        scheduler.flush()
        assert footnote_texts(doc) == [(1, "Third"), (2, "First"), (3, "Second")]


class TestRegistryActions:
    """Tests for creating, rewriting and removing the registry."""

    def test_missing_registry_created(self):
        """Test that markers without registry get one with placeholders."""
        doc, _ = manual_document(UNNUMBERED)
        result = doc.sync()
        assert result.registry_action == "insert"
        assert result.renumbered == [(1, 2)]
        assert result.synthesized == [1, 2]
        assert str(result) == (
            "✓ sync: 1 markers renumbered, registry inserted, 2 placeholder entries "
            "(2 footnotes)"
        )
        assert doc.doc.content[-1].type == "footnote_registry"
        assert [fn.text for fn in doc.footnotes] == ["↩ 1", "↩ 2"]

    def test_empty_registry_removed(self):
        """Test that the registry goes away with the last marker."""
        doc = Document.from_html(ARTICLE)
        doc.insert_footnote("Only", at="delta")
        doc.delete_footnote(1)
        assert doc.footnotes == []
        assert all(node.type != "footnote_registry" for node in doc.doc.content)
        assert doc.synchronizer.last_result.registry_action == "remove"

    def test_empty_registry_kept(self):
        """Test that the registry can be kept as an empty container."""
        config = SyncConfig(remove_empty_registry=False)
        doc = Document.from_html(ARTICLE, config=config)
        doc.insert_footnote("Only", at="delta")
        doc.delete_footnote(1)
        registry = doc.doc.content[-1]
        assert registry.type == "footnote_registry"
        assert registry.content == ()

    def test_extra_registries_untouched(self):
        """Test that only the first registry is rewritten."""
        doc, _ = manual_document(
            '<p>A<a class="footnote-ref" data-number="2">[2]</a></p>'
            '<div id="footnote-registry"><p data-number="2">Kept</p></div>'
            '<aside class="footnotes"><p data-number="9">Other</p></aside>'
        )
        other = doc.doc.content[2]
        result = doc.sync()
        assert result.skipped_registries == 1
        assert doc.doc.content[2] == other
        assert footnote_texts(doc) == [(1, "Kept")]

    def test_stray_entries_dropped(self):
        """Test that entries without a marker disappear on the next pass."""
        doc, _ = manual_document(
            '<p>A<a class="footnote-ref" data-number="1">[1]</a></p>'
            '<div id="footnote-registry"><p data-number="1">Kept</p>'
            '<p data-number="2">Stray</p></div>'
        )
        result = doc.sync()
        assert result.registry_action == "replace"
        assert footnote_texts(doc) == [(1, "Kept")]

    def test_consistent_document_untouched(self):
        """Test that a consistent document is left exactly as it was."""
        doc, _ = manual_document(
            '<p>A<a class="footnote-ref" data-number="1">[1]</a></p>'
            '<div id="footnote-registry"><p data-number="1">Note</p></div>'
        )
        before = doc.doc
        result = doc.sync()
        assert not result.applied
        assert str(result) == "✓ sync: consistent (1 footnotes)"
        assert doc.doc is before


class TestPlan:
    """Tests for dry-run planning."""

    def test_plan_describes_changes(self):
        """Test the human-readable change list."""
        doc, _ = manual_document(UNNUMBERED)
        plan = doc.check()
        assert not plan.is_consistent
        assert plan.registry_action is RegistryAction.INSERT
        assert plan.describe() == ["marker [1] -> [2]", "create registry with 2 entries"]

    def test_plan_rewrite(self):
        """Test the description of a registry rewrite."""
        doc, scheduler = manual_document(LEGACY)
        doc.delete_footnote(1)
        assert doc.check().describe() == [
            "marker [2] -> [1]",
            "marker [3] -> [2]",
            "rewrite registry: 3 -> 2 entries",
        ]

    def test_plan_does_not_apply(self):
        """Test that planning leaves the document alone."""
        doc, _ = manual_document(UNNUMBERED)
        before = doc.doc
        doc.check()
        assert doc.doc is before

    def test_check_without_synchronizer(self):
        """Test check() and sync() on a document with sync disabled."""
        doc = Document.from_html(UNNUMBERED, sync=False)
        assert not doc.check().is_consistent
        assert doc.sync().applied
        assert doc.check().is_consistent


class TestAsyncio:
    """Tests for debounced passes on an event loop."""

    def test_debounced_pass(self):
        """Test that edits within the quiet period share one pass."""

        async def scenario():
            doc = Document.from_html(ARTICLE, scheduler=AsyncioScheduler(delay=0.01))
            passes = []

            def record(event):
                if doc.synchronizer.gate.is_tagged(event):
                    passes.append(event)

            doc.subscribe(record)
            doc.insert_footnote("A", at="delta")
            doc.insert_footnote("B", at="Alpha")
            assert doc.synchronizer.state is SyncState.SCHEDULED
            await asyncio.sleep(0.1)
            return doc, passes

        doc, passes = asyncio.run(scenario())
        assert len(passes) == 1
        assert doc.synchronizer.state is SyncState.IDLE
        assert footnote_texts(doc) == [(1, "B"), (2, "A")]
