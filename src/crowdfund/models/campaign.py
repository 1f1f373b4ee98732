"""Campaign models — the stored campaign record, its status view, error kinds.

A campaign is created open, fills toward its target while the deadline has
not passed, and is claimed once by its creator after the deadline.

Lifecycle (derived, never stored):
    OPEN → FUNDED     (raised reaches target)
    OPEN → EXPIRED    (deadline passes below target)
    FUNDED/EXPIRED → CLAIMED   (creator claims after the deadline)

Invariants enforced by the engine, checked by tools/check_invariants.py:
- 0 <= raised <= target
- claimed only ever goes False → True
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any


# Host integer widths for the persisted fields.
U32_MAX = 2**32 - 1
U64_MAX = 2**64 - 1
I128_MIN = -(2**127)
I128_MAX = 2**127 - 1


class ErrorKind(str, enum.Enum):
    """Reason a campaign operation was rejected."""
    UNAUTHORIZED = "unauthorized"
    INVALID_AMOUNT = "invalid_amount"
    NOT_FOUND = "not_found"
    CAMPAIGN_ENDED = "campaign_ended"
    TARGET_REACHED = "target_reached"
    WOULD_EXCEED_TARGET = "would_exceed_target"
    ALREADY_CLAIMED = "already_claimed"
    CAMPAIGN_STILL_ACTIVE = "campaign_still_active"
    OUT_OF_RANGE = "out_of_range"


class CampaignError(ValueError):
    """A guard condition failed. The whole operation has no effect."""

    def __init__(self, kind: ErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind


class CampaignStatus(str, enum.Enum):
    """Read-only lifecycle view of a campaign at a given ledger time."""
    OPEN = "open"
    FUNDED = "funded"
    EXPIRED = "expired"
    CLAIMED = "claimed"


@dataclass
class Campaign:
    """A single funding effort.

    Mutable — donate updates ``raised`` and claim sets ``claimed``.
    Everything else is fixed at creation.
    """
    creator: str
    title: str
    description: str
    target: int
    deadline: int
    raised: int = 0
    claimed: bool = False

    def status(self, now: int) -> CampaignStatus:
        if self.claimed:
            return CampaignStatus.CLAIMED
        if self.raised >= self.target:
            return CampaignStatus.FUNDED
        if now > self.deadline:
            return CampaignStatus.EXPIRED
        return CampaignStatus.OPEN

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON storage. i128 fields are kept as strings."""
        return {
            "creator": self.creator,
            "title": self.title,
            "description": self.description,
            "target": str(self.target),
            "deadline": self.deadline,
            "raised": str(self.raised),
            "claimed": self.claimed,
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> Campaign:
        """Rebuild a campaign from its stored form.

        Raises ValueError on missing or mistyped fields.
        """
        try:
            claimed = data["claimed"]
            if not isinstance(claimed, bool):
                raise ValueError(f"claimed must be a bool, got {claimed!r}")
            return Campaign(
                creator=str(data["creator"]),
                title=str(data["title"]),
                description=str(data["description"]),
                target=int(data["target"]),
                deadline=int(data["deadline"]),
                raised=int(data["raised"]),
                claimed=claimed,
            )
        except KeyError as e:
            raise ValueError(f"Campaign record missing field: {e.args[0]}") from e


def check_width(name: str, value: int, low: int, high: int) -> None:
    """Reject values that do not fit the declared host integer width."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise CampaignError(
            ErrorKind.OUT_OF_RANGE,
            f"{name} must be an integer, got {type(value).__name__}",
        )
    if not low <= value <= high:
        raise CampaignError(
            ErrorKind.OUT_OF_RANGE,
            f"{name} out of range [{low}, {high}]: {value}",
        )
