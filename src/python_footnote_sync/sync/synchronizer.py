"""
Keep reference numbers and the footnote registry consistent with each other.

The Synchronizer listens to a document's change notifications. After an
external change it schedules one deferred reconciliation pass, which:

1. scans the snapshot for references and the registry
2. builds the target registry content (numbers 1..N in document order)
3. diffs the current state against the target
4. writes the difference as a single tagged transaction

Its own edits carry an origin tag; notifications with that tag are ignored,
so a pass never triggers another pass.

State machine::

    IDLE --external--> SCHEDULED --fire--> APPLYING --done--> IDLE
                       SCHEDULED --external--> SCHEDULED (coalesced)
                                   APPLYING --external--> flag rerun;
                                   after the pass go to SCHEDULED
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from ..config import SyncConfig
from ..constants import FOOTNOTE_REGISTRY
from ..errors import TransactionError
from ..models.node import Node
from ..results import SyncResult
from ..transaction import ChangeEvent, Transaction
from .builder import RegistryBuild, RegistryBuilder, index_by_id, index_by_number
from .gate import ChangeGate
from .scanner import ReferenceScanner
from .scheduler import Scheduler, create_scheduler
from .tracker import PositionTracker, ScanResult

if TYPE_CHECKING:
    from ..document import Document

logger = logging.getLogger(__name__)


class SyncState(Enum):
    IDLE = "idle"
    SCHEDULED = "scheduled"
    APPLYING = "applying"


class RegistryAction(str, Enum):
    NONE = "none"
    REPLACE = "replace"
    INSERT = "insert"
    REMOVE = "remove"


@dataclass
class SyncPlan:
    """Difference between a snapshot and its consistent form.

    Attributes:
        scan: The scanned footnote structure
        build: The target registry content
        marker_updates: ``(pos, old_number, new_number)`` per marker to rewrite
        registry_action: What to do with the registry
    """

    scan: ScanResult
    build: RegistryBuild
    marker_updates: list[tuple[int, int, int]] = field(default_factory=list)
    registry_action: RegistryAction = RegistryAction.NONE

    @property
    def is_consistent(self) -> bool:
        return not self.marker_updates and self.registry_action is RegistryAction.NONE

    def describe(self) -> list[str]:
        """Human-readable list of pending changes."""
        lines = [f"marker [{old}] -> [{new}]" for _pos, old, new in self.marker_updates]
        if self.registry_action is RegistryAction.INSERT:
            lines.append(f"create registry with {len(self.build.entries)} entries")
        elif self.registry_action is RegistryAction.REMOVE:
            lines.append("remove empty registry")
        elif self.registry_action is RegistryAction.REPLACE:
            current = len(self.scan.citations)
            line = f"rewrite registry: {current} -> {len(self.build.entries)} entries"
            if self.build.synthesized:
                line += f", {len(self.build.synthesized)} placeholders"
            lines.append(line)
        return lines


class Synchronizer:
    """Reconciles footnote numbering of a document after each external change.

    Args:
        document: The document to keep consistent
        scheduler: When deferred passes run (defaults to the configured kind)
        config: Synchronizer settings

    Example:
        >>> sync = Synchronizer(doc, scheduler=ManualScheduler())
        >>> sync.attach()
        >>> doc.insert_footnote("See Smith", at="results")
        >>> sync.state
        <SyncState.SCHEDULED: 'scheduled'>
    """

    def __init__(
        self,
        document: Document,
        scheduler: Scheduler | None = None,
        config: SyncConfig | None = None,
    ) -> None:
        self.document = document
        self.config = config or SyncConfig()
        self.scheduler = scheduler or create_scheduler(
            self.config.scheduler, self.config.debounce_seconds
        )
        self.gate = ChangeGate(self.config.origin)
        self.tracker = PositionTracker()
        self.scanner = ReferenceScanner(self.tracker)
        self.builder = RegistryBuilder(document.schema, self.config.correlate_by_id)
        self.state = SyncState.IDLE
        self.last_result: SyncResult | None = None
        self._rerun = False
        self._unsubscribe: Callable[[], None] | None = None

    @property
    def attached(self) -> bool:
        return self._unsubscribe is not None

    def attach(self) -> None:
        """Start listening to the document's change notifications."""
        if self._unsubscribe is None:
            self._unsubscribe = self.document.subscribe(self.handle_change)

    def detach(self) -> None:
        """Stop listening and drop any pending pass."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self.scheduler.cancel()
        self._set_state(SyncState.IDLE)

    def handle_change(self, event: ChangeEvent) -> None:
        """React to a dispatched transaction."""
        if self.gate.is_tagged(event):
            logger.debug("Ignoring self-tagged change")
            return
        if event.before is event.after:
            return

        if self.state is SyncState.APPLYING:
            logger.debug("External change during pass; rerun requested")
            self._rerun = True
            return
        self._schedule()

    def _set_state(self, state: SyncState) -> None:
        if state is not self.state:
            logger.debug("Sync state %s -> %s", self.state.value, state.value)
            self.state = state

    def _schedule(self) -> None:
        # Set before scheduling: an immediate scheduler fires inside schedule()
        self._set_state(SyncState.SCHEDULED)
        self.scheduler.schedule(self._fire)

    def _fire(self) -> None:
        if self.state is not SyncState.SCHEDULED:
            logger.debug("Skipping stale pass in state %s", self.state.value)
            return
        if self.document.notifying:
            # Listeners still have to see the change that triggered this pass
            self.document.when_settled(self._fire)
            return
        self._run_pass()

    def reconcile(self) -> SyncResult:
        """Run a pass now, regardless of any scheduled one.

        Raises:
            TransactionError: If called from within a running pass
        """
        if self.state is SyncState.APPLYING:
            raise TransactionError("A reconciliation pass is already running")
        return self._run_pass()

    def _run_pass(self) -> SyncResult:
        self._set_state(SyncState.APPLYING)
        self._rerun = False
        try:
            result = self._apply()
        except Exception as e:
            logger.exception("Footnote reconciliation failed")
            result = SyncResult(error=e)
        self.last_result = result

        if self._rerun:
            self._rerun = False
            self._schedule()
        else:
            self._set_state(SyncState.IDLE)
        return result

    def plan(self, doc: Node | None = None) -> SyncPlan:
        """Compute the edits a pass would make, without applying them."""
        doc = doc if doc is not None else self.document.doc
        scan = self.tracker.scan(doc)
        refs = self.scanner.from_scan(scan)
        citations = [entry for entry, _pos in scan.citations]
        build = self.builder.build(refs, index_by_number(citations), index_by_id(citations))

        plan = SyncPlan(scan=scan, build=build)
        for i, ref in enumerate(refs):
            if ref.number != i + 1:
                plan.marker_updates.append((ref.pos, ref.number, i + 1))

        if scan.registry is None:
            if build.entries:
                plan.registry_action = RegistryAction.INSERT
        else:
            registry = scan.registry[0]
            if not build.entries and self.config.remove_empty_registry:
                plan.registry_action = RegistryAction.REMOVE
            elif registry.content != tuple(build.entries):
                plan.registry_action = RegistryAction.REPLACE
        return plan

    def _apply(self) -> SyncResult:
        plan = self.plan()
        result = SyncResult(
            references=len(plan.build.entries),
            reused=plan.build.reused,
            synthesized=plan.build.synthesized,
            skipped_registries=len(plan.scan.extra_registries),
        )
        if plan.is_consistent:
            logger.debug("Footnotes consistent (%d references)", result.references)
            return result

        tr = self.document.transaction()
        self._write(tr, plan)
        self.gate.tag(tr)
        self.document.dispatch(tr)

        result.applied = True
        result.renumbered = [(old, new) for _pos, old, new in plan.marker_updates]
        result.registry_action = plan.registry_action.value
        logger.debug(
            "Applied pass: %d markers renumbered, registry %s",
            len(plan.marker_updates),
            plan.registry_action.value,
        )
        return result

    def _write(self, tr: Transaction, plan: SyncPlan) -> None:
        # Attribute rewrites keep node sizes, so registry positions stay valid
        for pos, _old, new in plan.marker_updates:
            tr.set_node_attrs(pos, number=new)

        schema = self.document.schema
        if plan.registry_action is RegistryAction.INSERT:
            registry_node = schema.node(FOOTNOTE_REGISTRY, content=plan.build.entries)
            tr.insert(tr.doc.content_size, registry_node)
        elif plan.scan.registry is not None:
            registry, pos = plan.scan.registry
            if plan.registry_action is RegistryAction.REMOVE:
                tr.delete(pos, pos + registry.node_size)
            elif plan.registry_action is RegistryAction.REPLACE:
                rewritten = registry.with_content(plan.build.entries)
                tr.replace(pos, pos + registry.node_size, [rewritten])
