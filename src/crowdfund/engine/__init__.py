"""Campaign engine — registry, state machine and queries."""

from crowdfund.engine.queries import CampaignQueries
from crowdfund.engine.registry import CampaignRegistry
from crowdfund.engine.state_machine import CampaignStateMachine

__all__ = ["CampaignQueries", "CampaignRegistry", "CampaignStateMachine"]
