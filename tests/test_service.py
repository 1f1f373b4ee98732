"""Tests for CrowdfundService — proves the facade keeps calls atomic and typed."""

import threading
from pathlib import Path

import pytest

from crowdfund.clock import ManualClock
from crowdfund.identity.authenticator import (
    AllowAllAuthenticator,
    DenyAllAuthenticator,
    TrustedCallerAuthenticator,
)
from crowdfund.models.campaign import CampaignError, CampaignStatus, ErrorKind
from crowdfund.persistence.event_log import EventKind, EventLog
from crowdfund.persistence.state_store import StateStore
from crowdfund.service import CrowdfundService


NOW = 1_700_000_000
DAY = 86_400
U64_LATE = 2**64 - 1


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(NOW)


@pytest.fixture
def service(clock: ManualClock) -> CrowdfundService:
    svc = CrowdfundService(authenticator=AllowAllAuthenticator(), clock=clock)
    svc.initialize()
    return svc


def _create(service: CrowdfundService, target: int = 1_000_000_000, deadline: int = NOW + DAY) -> int:
    result = service.create("creator", "T", "D", target, deadline)
    assert result.success
    return result.data["campaign_id"]


class TestInitialize:
    def test_count_starts_at_zero(self, service: CrowdfundService) -> None:
        assert service.get_count() == 0

    def test_reinitialize_keeps_campaigns(self, service: CrowdfundService) -> None:
        _create(service)
        assert service.initialize().success
        assert service.get_count() == 0
        assert service.get_campaign(0).title == "T"

    def test_count_defaults_to_zero_without_initialize(self, clock: ManualClock) -> None:
        assert CrowdfundService(clock=clock).get_count() == 0


class TestCreate:
    def test_create_returns_consecutive_ids(self, service: CrowdfundService) -> None:
        assert _create(service) == 0
        assert _create(service) == 1
        assert service.get_count() == 2

    def test_create_emits_event(self, service: CrowdfundService) -> None:
        _create(service)
        event = service.recent_events(1)[0]
        assert event.event_kind == EventKind.CAMPAIGN_CREATED
        assert event.payload == {"campaign_id": 0, "creator": "creator"}

    def test_unauthorized_create_is_typed_failure(self, clock: ManualClock) -> None:
        service = CrowdfundService(authenticator=DenyAllAuthenticator(), clock=clock)
        result = service.create("creator", "T", "D", 100, NOW + DAY)
        assert not result.success
        assert result.error == ErrorKind.UNAUTHORIZED
        assert service.get_count() == 0

    def test_default_authenticator_denies(self, clock: ManualClock) -> None:
        result = CrowdfundService(clock=clock).create("creator", "T", "D", 100, NOW + DAY)
        assert result.error == ErrorKind.UNAUTHORIZED

    def test_per_call_auth_override(self, clock: ManualClock) -> None:
        service = CrowdfundService(clock=clock)
        result = service.create(
            "alice", "T", "D", 100, NOW + DAY,
            auth=TrustedCallerAuthenticator(["alice"]),
        )
        assert result.success


class TestDonate:
    def test_sequenced_donations(self, service: CrowdfundService) -> None:
        cid = _create(service, target=1000)
        assert service.donate("donor", cid, 100).success
        result = service.donate("donor", cid, 200)
        assert result.success
        assert result.data == {"campaign_id": cid, "raised": 300}
        assert service.get_campaign(cid).raised == 300

    def test_donation_event_payload(self, service: CrowdfundService) -> None:
        cid = _create(service)
        service.donate("donor", cid, 42)
        event = service.recent_events(1)[0]
        assert event.event_kind == EventKind.DONATION_RECEIVED
        assert event.actor_id == "donor"
        assert event.payload == {"campaign_id": cid, "donor": "donor", "amount": 42}

    def test_failed_donation_leaves_no_trace(self, service: CrowdfundService) -> None:
        cid = _create(service, target=100)
        events_before = len(service.recent_events(100))
        result = service.donate("donor", cid, 101)
        assert not result.success
        assert result.error == ErrorKind.WOULD_EXCEED_TARGET
        assert result.errors == ["Donation would exceed campaign target"]
        assert service.get_campaign(cid).raised == 0
        assert len(service.recent_events(100)) == events_before

    def test_unknown_campaign(self, service: CrowdfundService) -> None:
        result = service.donate("donor", 5, 1)
        assert result.error == ErrorKind.NOT_FOUND

    def test_concurrent_donations_never_exceed_target(self, service: CrowdfundService) -> None:
        cid = _create(service, target=1_000)
        results = []

        def _donate() -> None:
            results.append(service.donate("donor", cid, 300))

        threads = [threading.Thread(target=_donate) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        succeeded = [r for r in results if r.success]
        assert len(succeeded) == 3
        assert service.get_campaign(cid).raised == 900
        assert all(r.error == ErrorKind.WOULD_EXCEED_TARGET for r in results if not r.success)


class TestClaim:
    def test_claim_emits_raised(self, service: CrowdfundService, clock: ManualClock) -> None:
        cid = _create(service)
        service.donate("donor", cid, 250)
        clock.advance(DAY + 1)
        result = service.claim(cid)
        assert result.success
        assert result.data["raised"] == 250
        event = service.recent_events(1)[0]
        assert event.event_kind == EventKind.CAMPAIGN_CLAIMED
        assert event.payload == {"campaign_id": cid, "creator": "creator", "raised": 250}

    def test_claim_before_deadline(self, service: CrowdfundService) -> None:
        cid = _create(service)
        result = service.claim(cid)
        assert result.error == ErrorKind.CAMPAIGN_STILL_ACTIVE
        assert not service.get_campaign(cid).claimed


class TestQueries:
    def test_get_campaign_returns_copy(self, service: CrowdfundService) -> None:
        cid = _create(service)
        campaign = service.get_campaign(cid)
        campaign.raised = 999
        assert service.get_campaign(cid).raised == 0

    def test_reads_are_idempotent(self, service: CrowdfundService) -> None:
        cid = _create(service)
        first = (service.get_campaign(cid), service.get_count())
        second = (service.get_campaign(cid), service.get_count())
        assert first == second

    def test_get_unknown_campaign_raises(self, service: CrowdfundService) -> None:
        with pytest.raises(CampaignError, match="Campaign not found") as exc:
            service.get_campaign(99)
        assert exc.value.kind == ErrorKind.NOT_FOUND

    def test_list_campaigns(self, service: CrowdfundService) -> None:
        for _ in range(3):
            _create(service)
        listed = service.list_campaigns(start=1, limit=5)
        assert [cid for cid, _ in listed] == [1, 2]

    def test_recent_events_newest_first(self, service: CrowdfundService) -> None:
        cid = _create(service)
        service.donate("donor", cid, 1)
        kinds = [e.event_kind for e in service.recent_events(3)]
        assert kinds == [
            EventKind.DONATION_RECEIVED,
            EventKind.CAMPAIGN_CREATED,
            EventKind.REGISTRY_INITIALIZED,
        ]

    def test_status_counts(self, service: CrowdfundService, clock: ManualClock) -> None:
        funded = _create(service, target=10)
        service.donate("donor", funded, 10)
        _create(service, target=10, deadline=NOW - 1)
        _create(service, target=10)
        status = service.status()
        assert status["campaign_count"] == 3
        assert status["campaigns_by_status"] == {
            CampaignStatus.FUNDED.value: 1,
            CampaignStatus.EXPIRED.value: 1,
            CampaignStatus.OPEN.value: 1,
        }


class TestEndToEnd:
    def test_full_lifecycle(self, clock: ManualClock) -> None:
        service = CrowdfundService(authenticator=AllowAllAuthenticator(), clock=clock)
        service.initialize()
        result = service.create("creator", "T", "D", 1_000_000_000, clock.now() + 86_400)
        assert result.data["campaign_id"] == 0

        assert service.donate("donor", 0, 100_000_000).success
        assert service.get_campaign(0).raised == 100_000_000

        clock.advance(86_401)
        assert service.claim(0).success
        assert service.get_campaign(0).claimed

        again = service.claim(0)
        assert not again.success
        assert again.error == ErrorKind.ALREADY_CLAIMED
        assert service.get_campaign(0).raised == 100_000_000


class TestPersistence:
    def test_state_survives_reopen(self, tmp_path: Path, clock: ManualClock) -> None:
        def _open() -> CrowdfundService:
            return CrowdfundService(
                store=StateStore(storage_path=tmp_path / "state.json"),
                event_log=EventLog(storage_path=tmp_path / "events.jsonl"),
                authenticator=AllowAllAuthenticator(),
                clock=clock,
            )

        first = _open()
        first.initialize()
        cid = first.create("creator", "T", "D", 2**100, NOW + DAY).data["campaign_id"]
        first.donate("donor", cid, 2**99)

        second = _open()
        assert second.get_count() == 1
        assert second.get_campaign(cid).raised == 2**99
        assert len(second.recent_events(10)) == 3

        # Event ids continue past the persisted log.
        assert second.donate("donor", cid, 1).success
        assert second.recent_events(1)[0].event_id == "EVT-00000004"

    def test_persistence_failure_rolls_back(self, tmp_path: Path, clock: ManualClock) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        service = CrowdfundService(
            store=StateStore(storage_path=blocker / "state.json"),
            authenticator=AllowAllAuthenticator(),
            clock=clock,
        )
        result = service.create("creator", "T", "D", 100, NOW + DAY)
        assert not result.success
        assert result.error is None
        assert "Persistence failure" in result.errors[0]
        assert service.get_count() == 0
        assert service.recent_events(10) == []


class TestLedgerTimeRange:
    def test_claim_at_far_future_ledger_time(self) -> None:
        clock = ManualClock(NOW)
        service = CrowdfundService(authenticator=AllowAllAuthenticator(), clock=clock)
        cid = service.create("creator", "T", "D", 100, 2**63).data["campaign_id"]
        clock.set(2**63 + 1)

        result = service.claim(cid)
        assert result.success
        assert result.warnings == []
        event = service.recent_events(1)[0]
        assert event.event_kind == EventKind.CAMPAIGN_CLAIMED
        assert event.ledger_time == 2**63 + 1
        assert event.timestamp_utc is None

    def test_events_recorded_past_year_9999(self) -> None:
        clock = ManualClock(10**12)
        service = CrowdfundService(authenticator=AllowAllAuthenticator(), clock=clock)
        result = service.create("creator", "T", "D", 100, 10**12 + 5)
        assert result.success
        assert result.warnings == []
        events = service.recent_events(10)
        assert len(events) == 1
        assert events[0].ledger_time == 10**12

    def test_far_future_events_survive_reopen(self, tmp_path: Path) -> None:
        clock = ManualClock(U64_LATE)
        path = tmp_path / "events.jsonl"
        service = CrowdfundService(
            event_log=EventLog(storage_path=path),
            authenticator=AllowAllAuthenticator(),
            clock=clock,
        )
        service.create("creator", "T", "D", 100, U64_LATE)
        reloaded = EventLog(storage_path=path)
        assert reloaded.events()[0].ledger_time == U64_LATE


class TestCallerIdentity:
    def test_padded_creator_is_a_different_identity(self, clock: ManualClock) -> None:
        service = CrowdfundService(clock=clock)
        created = service.create(
            " alice", "T", "D", 100, NOW + 1,
            auth=TrustedCallerAuthenticator([" alice"]),
        )
        cid = created.data["campaign_id"]
        clock.advance(2)

        result = service.claim(cid, auth=TrustedCallerAuthenticator(["alice"]))
        assert not result.success
        assert result.error == ErrorKind.UNAUTHORIZED
        assert not service.get_campaign(cid).claimed

        assert service.claim(cid, auth=TrustedCallerAuthenticator([" alice"])).success


class TestStatusAfterReinitialize:
    def test_records_above_counter_are_counted(self, service: CrowdfundService) -> None:
        for _ in range(3):
            _create(service)
        service.initialize()
        status = service.status()
        assert status["campaign_count"] == 0
        assert status["stored_campaigns"] == 3
        assert status["campaigns_by_status"] == {CampaignStatus.OPEN.value: 3}


class TestEventFeed:
    def test_events_filtered_by_campaign(self, service: CrowdfundService) -> None:
        first = _create(service)
        second = _create(service)
        service.donate("donor", first, 5)
        service.donate("donor", second, 7)
        events = service.recent_events(10, campaign_id=second)
        assert [e.event_kind for e in events] == [
            EventKind.DONATION_RECEIVED,
            EventKind.CAMPAIGN_CREATED,
        ]
