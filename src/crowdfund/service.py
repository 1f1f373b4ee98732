"""Crowdfund service — unified facade over the campaign engine.

This is the primary interface for programmatic access. It owns the
transaction boundary for every operation:

- Mutating calls (initialize, create, donate, claim) run as one
  serialized store transaction. A guard failure rolls everything back and
  comes back as a failed ServiceResult carrying the ErrorKind.
- Notifications are appended to the event log only after the store has
  committed, so observers never see an event for a rolled-back call.
- Read calls (get_campaign, get_count, list_campaigns, recent_events)
  never mutate state and need no authentication.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from crowdfund.clock import Clock, SystemClock
from crowdfund.engine.queries import CampaignQueries
from crowdfund.engine.registry import CampaignRegistry
from crowdfund.engine.state_machine import CampaignStateMachine
from crowdfund.identity.authenticator import Authenticator, DenyAllAuthenticator
from crowdfund.models.campaign import Campaign, CampaignError, ErrorKind
from crowdfund.persistence.event_log import EventKind, EventLog, EventRecord
from crowdfund.persistence.state_store import CAMPAIGN_PREFIX, StateStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ServiceResult:
    """Result of a service operation."""
    success: bool
    error: Optional[ErrorKind] = None
    errors: list[str] = field(default_factory=list)
    data: dict[str, Any] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)


class CrowdfundService:
    """Campaign ledger facade.

    Usage:
        service = CrowdfundService(authenticator=TrustedCallerAuthenticator(["alice"]))
        service.initialize()
        result = service.create("alice", "School", "Build a school", 1_000, deadline)
        campaign_id = result.data["campaign_id"]
        service.donate("alice", campaign_id, 100)
        service.get_campaign(campaign_id).raised  # 100

    Persistence (optional):
        service = CrowdfundService(
            store=StateStore(storage_path=data / "state.json"),
            event_log=EventLog(storage_path=data / "events.jsonl"),
        )

    Each mutating call accepts an ``auth`` override for hosts where the
    caller's proof travels with the individual call (signed requests).
    """

    def __init__(
        self,
        store: Optional[StateStore] = None,
        event_log: Optional[EventLog] = None,
        authenticator: Optional[Authenticator] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self._store = store if store is not None else StateStore()
        self._event_log = event_log if event_log is not None else EventLog()
        # Fail closed: without an authenticator nobody can mutate.
        self._auth = authenticator if authenticator is not None else DenyAllAuthenticator()
        self._clock = clock if clock is not None else SystemClock()
        self._registry = CampaignRegistry(self._store)
        self._queries = CampaignQueries(self._store, self._registry)
        self._lock = threading.RLock()
        # Initialize counter from persisted log to avoid ID collision on restart
        self._event_counter = self._event_log.count

    @property
    def clock(self) -> Clock:
        return self._clock

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def initialize(self) -> ServiceResult:
        """Reset the campaign counter to 0. Existing campaigns are kept."""
        def _apply() -> dict[str, Any]:
            self._registry.initialize()
            return {"count": 0}

        return self._run(
            "initialize",
            _apply,
            lambda data: (EventKind.REGISTRY_INITIALIZED, "system", {"count": 0}),
        )

    def create(
        self,
        creator: str,
        title: str,
        description: str,
        target: int,
        deadline: int,
        *,
        auth: Optional[Authenticator] = None,
    ) -> ServiceResult:
        """Create a campaign. data: {"campaign_id": int}."""
        def _apply() -> dict[str, Any]:
            campaign_id = self._machine(auth).create(
                creator, title, description, target, deadline
            )
            return {"campaign_id": campaign_id}

        return self._run(
            "create",
            _apply,
            lambda data: (
                EventKind.CAMPAIGN_CREATED,
                creator,
                {"campaign_id": data["campaign_id"], "creator": creator},
            ),
        )

    def donate(
        self,
        donor: str,
        campaign_id: int,
        amount: int,
        *,
        auth: Optional[Authenticator] = None,
    ) -> ServiceResult:
        """Donate to a campaign. data: {"campaign_id", "raised"}."""
        def _apply() -> dict[str, Any]:
            campaign = self._machine(auth).donate(donor, campaign_id, amount)
            return {"campaign_id": campaign_id, "raised": campaign.raised}

        return self._run(
            "donate",
            _apply,
            lambda data: (
                EventKind.DONATION_RECEIVED,
                donor,
                {"campaign_id": campaign_id, "donor": donor, "amount": amount},
            ),
        )

    def claim(
        self,
        campaign_id: int,
        *,
        auth: Optional[Authenticator] = None,
    ) -> ServiceResult:
        """Claim a concluded campaign as its creator. data: {"campaign_id", "raised"}."""
        def _apply() -> dict[str, Any]:
            campaign = self._machine(auth).claim(campaign_id)
            return {
                "campaign_id": campaign_id,
                "creator": campaign.creator,
                "raised": campaign.raised,
            }

        return self._run(
            "claim",
            _apply,
            lambda data: (
                EventKind.CAMPAIGN_CLAIMED,
                data["creator"],
                {
                    "campaign_id": campaign_id,
                    "creator": data["creator"],
                    "raised": data["raised"],
                },
            ),
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_campaign(self, campaign_id: int) -> Campaign:
        """Return a copy of the campaign. Raises CampaignError(NOT_FOUND)."""
        with self._lock:
            return self._queries.get_campaign(campaign_id)

    def get_count(self) -> int:
        with self._lock:
            return self._queries.get_count()

    def list_campaigns(
        self,
        start: int = 0,
        limit: Optional[int] = None,
    ) -> list[tuple[int, Campaign]]:
        with self._lock:
            return self._queries.list_campaigns(start=start, limit=limit)

    def recent_events(
        self,
        limit: int = 10,
        kind: Optional[EventKind] = None,
        campaign_id: Optional[int] = None,
    ) -> list[EventRecord]:
        """Newest-first notification feed."""
        with self._lock:
            return self._event_log.recent(limit, kind, campaign_id)

    def status(self) -> dict[str, Any]:
        """Summary of stored campaigns by lifecycle status at current ledger time."""
        with self._lock:
            now = self._clock.now()
            # Every stored record, including any left above a reset counter.
            stored = self._store.keys(CAMPAIGN_PREFIX)
            by_status: dict[str, int] = {}
            for key in stored:
                campaign = Campaign.from_dict(self._store.get(key))
                label = campaign.status(now).value
                by_status[label] = by_status.get(label, 0) + 1
            return {
                "ledger_time": now,
                "campaign_count": self._queries.get_count(),
                "stored_campaigns": len(stored),
                "campaigns_by_status": by_status,
                "event_count": self._event_log.count,
            }

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _machine(self, auth: Optional[Authenticator]) -> CampaignStateMachine:
        return CampaignStateMachine(
            self._store,
            self._registry,
            auth if auth is not None else self._auth,
            self._clock,
        )

    def _run(
        self,
        operation: str,
        apply: Callable[[], dict[str, Any]],
        describe: Callable[[dict[str, Any]], tuple[EventKind, str, dict[str, Any]]],
    ) -> ServiceResult:
        """Run apply() in one transaction, then emit its notification.

        Guard failures and persistence failures roll the transaction back
        and come back as a failed ServiceResult.
        """
        with self._lock:
            try:
                with self._store.transaction():
                    data = apply()
            except CampaignError as e:
                logger.info("%s rejected (%s): %s", operation, e.kind.value, e)
                return ServiceResult(success=False, error=e.kind, errors=[str(e)])
            except OSError as e:
                logger.error("%s failed to persist: %s", operation, e)
                return ServiceResult(success=False, errors=[f"Persistence failure: {e}"])

            kind, actor_id, payload = describe(data)
            warning = self._emit(kind, actor_id, payload)
            warnings = [warning] if warning else []
            return ServiceResult(success=True, data=data, warnings=warnings)

    def _next_event_id(self) -> str:
        self._event_counter += 1
        return f"EVT-{self._event_counter:08d}"

    def _emit(
        self,
        kind: EventKind,
        actor_id: str,
        payload: dict[str, Any],
    ) -> Optional[str]:
        """Append a notification. Returns a warning string on failure.

        The state change is already committed at this point and is not
        undone if the log write fails.
        """
        try:
            event = EventRecord.create(
                event_id=self._next_event_id(),
                event_kind=kind,
                actor_id=actor_id,
                payload=payload,
                ledger_time=self._clock.now(),
            )
            self._event_log.append(event)
        except (ValueError, OSError) as e:
            logger.error("Event log failure for %s: %s", kind.value, e)
            return f"Event log failure: {e}"
        return None
