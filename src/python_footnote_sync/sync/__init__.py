"""
Footnote synchronization engine.

This package keeps reference markers and the footnote registry consistent:

- tracker: Locates references, the registry and its citations in a snapshot
- scanner: Orders references by document position
- builder: Computes the target registry content
- gate: Tags the engine's own edits so they are not reprocessed
- scheduler: Decides when deferred passes run
- synchronizer: The state machine tying these together
"""

from .builder import RegistryBuild, RegistryBuilder
from .gate import ChangeGate
from .scanner import ReferenceScanner
from .scheduler import (
    AsyncioScheduler,
    ImmediateScheduler,
    ManualScheduler,
    Scheduler,
    create_scheduler,
)
from .synchronizer import RegistryAction, Synchronizer, SyncPlan, SyncState
from .tracker import PositionTracker, ScanResult

__all__ = [
    "AsyncioScheduler",
    "ChangeGate",
    "ImmediateScheduler",
    "ManualScheduler",
    "PositionTracker",
    "ReferenceScanner",
    "RegistryAction",
    "RegistryBuild",
    "RegistryBuilder",
    "ScanResult",
    "Scheduler",
    "SyncPlan",
    "SyncState",
    "Synchronizer",
    "create_scheduler",
]
