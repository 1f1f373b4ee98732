"""Crowdfund ledger — campaign funding state machine."""

from crowdfund.models.campaign import Campaign, CampaignError, CampaignStatus, ErrorKind
from crowdfund.service import CrowdfundService, ServiceResult

__all__ = [
    "Campaign",
    "CampaignError",
    "CampaignStatus",
    "CrowdfundService",
    "ErrorKind",
    "ServiceResult",
]
