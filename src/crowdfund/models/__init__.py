"""Core data models for the crowdfund ledger."""

from crowdfund.models.campaign import (
    Campaign,
    CampaignError,
    CampaignStatus,
    ErrorKind,
)

__all__ = [
    "Campaign",
    "CampaignError",
    "CampaignStatus",
    "ErrorKind",
]
