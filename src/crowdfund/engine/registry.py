"""Campaign registry — owns the counter that hands out campaign ids.

The counter is the only state shared across campaigns. ``next_id`` and
``advance`` must run inside the same store transaction as the campaign
write that uses the id, otherwise two creates could receive the same id.
"""

from __future__ import annotations

from crowdfund.models.campaign import U32_MAX, CampaignError, ErrorKind
from crowdfund.persistence.state_store import COUNTER_KEY, StateStore


class CampaignRegistry:
    """Reads and advances the persisted campaign counter."""

    def __init__(self, store: StateStore) -> None:
        self._store = store

    @property
    def count(self) -> int:
        """Current counter value, 0 if never initialized."""
        return int(self._store.get(COUNTER_KEY, 0))

    def initialize(self) -> None:
        """Reset the counter to 0.

        Existing campaign records are left in place. After a reset the
        next create reuses id 0 and overwrites whatever is stored there.
        """
        self._store.set(COUNTER_KEY, 0)

    def next_id(self) -> int:
        """Return the id the next campaign will receive."""
        return self.count

    def advance(self, used_id: int) -> int:
        """Persist the counter past used_id. Returns the new count."""
        if used_id >= U32_MAX:
            raise CampaignError(
                ErrorKind.OUT_OF_RANGE,
                f"Campaign counter exhausted at {used_id}",
            )
        new_count = used_id + 1
        self._store.set(COUNTER_KEY, new_count)
        return new_count
