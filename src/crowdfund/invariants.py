"""Invariant checks over a persisted campaign store.

Used by ``crowdfund check-invariants`` and tools/check_invariants.py to
audit a data directory after the fact.
"""

from __future__ import annotations

from crowdfund.models.campaign import I128_MAX, U32_MAX, U64_MAX, Campaign
from crowdfund.persistence.state_store import CAMPAIGN_PREFIX, COUNTER_KEY, StateStore


def check_store(store: StateStore) -> list[str]:
    """Return a list of invariant violations (empty = OK)."""
    errors: list[str] = []

    count = store.get(COUNTER_KEY, 0)
    if isinstance(count, bool) or not isinstance(count, int) or not 0 <= count <= U32_MAX:
        errors.append(f"{COUNTER_KEY} must be a u32, got {count!r}")
        count = None

    for key in store.keys(CAMPAIGN_PREFIX):
        suffix = key[len(CAMPAIGN_PREFIX):]
        if not suffix.isdigit() or int(suffix) > U32_MAX:
            errors.append(f"{key}: campaign id is not a u32")
            continue
        campaign_id = int(suffix)

        try:
            campaign = Campaign.from_dict(store.get(key))
        except (ValueError, TypeError) as e:
            errors.append(f"{key}: malformed record ({e})")
            continue

        if not 0 <= campaign.raised <= campaign.target:
            errors.append(
                f"{key}: raised {campaign.raised} outside [0, target {campaign.target}]"
            )
        if campaign.target > I128_MAX:
            errors.append(f"{key}: target exceeds i128")
        if not 0 <= campaign.deadline <= U64_MAX:
            errors.append(f"{key}: deadline is not a u64")
        if count is not None and campaign_id >= count:
            errors.append(
                f"{key}: id {campaign_id} >= counter {count} "
                f"(counter was reset; next create will overwrite a campaign)"
            )

    return errors
