"""Read-only campaign queries. No authentication, no side effects."""

from __future__ import annotations

from typing import Optional

from crowdfund.engine.registry import CampaignRegistry
from crowdfund.models.campaign import U32_MAX, Campaign, CampaignError, ErrorKind, check_width
from crowdfund.persistence.state_store import StateStore, campaign_key


class CampaignQueries:
    """Looks up stored campaigns and the registry counter."""

    def __init__(self, store: StateStore, registry: CampaignRegistry) -> None:
        self._store = store
        self._registry = registry

    def get_campaign(self, campaign_id: int) -> Campaign:
        """Return a copy of the stored campaign.

        Raises CampaignError(NOT_FOUND) if no record exists.
        """
        check_width("campaign_id", campaign_id, 0, U32_MAX)
        data = self._store.get(campaign_key(campaign_id))
        if data is None:
            raise CampaignError(ErrorKind.NOT_FOUND, "Campaign not found")
        return Campaign.from_dict(data)

    def get_count(self) -> int:
        return self._registry.count

    def list_campaigns(
        self,
        start: int = 0,
        limit: Optional[int] = None,
    ) -> list[tuple[int, Campaign]]:
        """Return (id, campaign) pairs for ids in [start, count), in id order.

        Ids without a stored record are skipped.
        """
        result: list[tuple[int, Campaign]] = []
        for campaign_id in range(max(start, 0), self.get_count()):
            if limit is not None and len(result) >= limit:
                break
            data = self._store.get(campaign_key(campaign_id))
            if data is not None:
                result.append((campaign_id, Campaign.from_dict(data)))
        return result
