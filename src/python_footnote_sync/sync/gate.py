"""Origin tagging for edits produced by the synchronizer."""

from __future__ import annotations

from ..constants import ORIGIN_META_KEY, SYNC_ORIGIN
from ..transaction import ChangeEvent, Transaction


class ChangeGate:
    """Stamps transactions with an origin tag and recognizes them later.

    The synchronizer tags every transaction it dispatches, and ignores every
    change notification carrying its own tag. This is the only mechanism
    preventing a pass from triggering another pass.
    """

    def __init__(self, origin: str = SYNC_ORIGIN) -> None:
        self.origin = origin

    def tag(self, transaction: Transaction) -> Transaction:
        return transaction.set_meta(ORIGIN_META_KEY, self.origin)

    def is_tagged(self, event: ChangeEvent | Transaction) -> bool:
        return event.get_meta(ORIGIN_META_KEY) == self.origin
