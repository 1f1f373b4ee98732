"""Campaign state machine — create, donate and claim with guard enforcement.

Guard order is part of the contract: callers identify failures by the
first guard that trips, so checks run in exactly this sequence.

donate:
    1. donor authenticates              → UNAUTHORIZED
    2. amount > 0                       → INVALID_AMOUNT
    3. campaign exists                  → NOT_FOUND
    4. now <= deadline                  → CAMPAIGN_ENDED
    5. raised < target                  → TARGET_REACHED
    6. raised + amount <= target        → WOULD_EXCEED_TARGET

claim:
    1. campaign exists                  → NOT_FOUND
    2. stored creator authenticates     → UNAUTHORIZED
    3. not already claimed              → ALREADY_CLAIMED
    4. now > deadline                   → CAMPAIGN_STILL_ACTIVE

Each operation runs inside one store transaction, so a failed guard or a
failed write leaves no trace. Notifications are emitted by the service
layer after commit.
"""

from __future__ import annotations

import logging

from crowdfund.clock import Clock
from crowdfund.engine.registry import CampaignRegistry
from crowdfund.identity.authenticator import Authenticator
from crowdfund.models.campaign import (
    I128_MAX,
    I128_MIN,
    U32_MAX,
    U64_MAX,
    Campaign,
    CampaignError,
    ErrorKind,
    check_width,
)
from crowdfund.persistence.state_store import StateStore, campaign_key

logger = logging.getLogger(__name__)


class CampaignStateMachine:
    """Applies campaign transitions against the durable store.

    Usage:
        machine = CampaignStateMachine(store, registry, authenticator, clock)
        campaign_id = machine.create("alice", "T", "D", 1_000, deadline)
        machine.donate("bob", campaign_id, 100)
        machine.claim(campaign_id)  # after the deadline, as alice
    """

    def __init__(
        self,
        store: StateStore,
        registry: CampaignRegistry,
        authenticator: Authenticator,
        clock: Clock,
    ) -> None:
        self._store = store
        self._registry = registry
        self._auth = authenticator
        self._clock = clock

    def create(
        self,
        creator: str,
        title: str,
        description: str,
        target: int,
        deadline: int,
    ) -> int:
        """Register a new campaign and return its id.

        Neither a positive target nor a future deadline is required.
        """
        check_width("target", target, I128_MIN, I128_MAX)
        check_width("deadline", deadline, 0, U64_MAX)
        self._require_auth(creator)

        with self._store.transaction():
            campaign_id = self._registry.next_id()
            key = campaign_key(campaign_id)
            if self._store.has(key):
                logger.warning(
                    "Campaign %d already exists; overwriting (counter was reset)",
                    campaign_id,
                )
            campaign = Campaign(
                creator=creator,
                title=title,
                description=description,
                target=target,
                deadline=deadline,
            )
            self._store.set(key, campaign.to_dict())
            self._registry.advance(campaign_id)

        logger.info("Campaign %d created", campaign_id)
        return campaign_id

    def donate(self, donor: str, campaign_id: int, amount: int) -> Campaign:
        """Add amount to a campaign's raised total. Returns the updated record."""
        check_width("campaign_id", campaign_id, 0, U32_MAX)
        check_width("amount", amount, I128_MIN, I128_MAX)
        self._require_auth(donor)

        if amount <= 0:
            raise CampaignError(ErrorKind.INVALID_AMOUNT, "Amount must be positive")

        with self._store.transaction():
            campaign = self._load(campaign_id)

            if self._clock.now() > campaign.deadline:
                raise CampaignError(ErrorKind.CAMPAIGN_ENDED, "Campaign has ended")
            if campaign.raised >= campaign.target:
                raise CampaignError(
                    ErrorKind.TARGET_REACHED,
                    "Campaign has already reached its target",
                )
            if campaign.raised + amount > campaign.target:
                raise CampaignError(
                    ErrorKind.WOULD_EXCEED_TARGET,
                    "Donation would exceed campaign target",
                )

            campaign.raised += amount
            self._store.set(campaign_key(campaign_id), campaign.to_dict())

        logger.info("Donation of %d to campaign %d", amount, campaign_id)
        return campaign

    def claim(self, campaign_id: int) -> Campaign:
        """Mark a concluded campaign as claimed by its creator.

        Does not require the target to have been reached.
        """
        check_width("campaign_id", campaign_id, 0, U32_MAX)

        with self._store.transaction():
            campaign = self._load(campaign_id)
            # Ownership comes from the stored record, never from the caller.
            self._require_auth(campaign.creator)

            if campaign.claimed:
                raise CampaignError(ErrorKind.ALREADY_CLAIMED, "Already claimed")
            if self._clock.now() <= campaign.deadline:
                raise CampaignError(
                    ErrorKind.CAMPAIGN_STILL_ACTIVE, "Campaign still active"
                )

            campaign.claimed = True
            self._store.set(campaign_key(campaign_id), campaign.to_dict())

        logger.info("Campaign %d claimed by creator", campaign_id)
        return campaign

    def _require_auth(self, identity: str) -> None:
        if not self._auth.authenticate(identity):
            raise CampaignError(
                ErrorKind.UNAUTHORIZED,
                f"Caller is not authorized as {identity}",
            )

    def _load(self, campaign_id: int) -> Campaign:
        data = self._store.get(campaign_key(campaign_id))
        if data is None:
            raise CampaignError(ErrorKind.NOT_FOUND, "Campaign not found")
        return Campaign.from_dict(data)
