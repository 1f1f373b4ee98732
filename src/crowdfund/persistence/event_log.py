"""Append-only event log — the notification record of every campaign change.

Every committed create, donation and claim appends one event. Events are
immutable once written and are consumed by external observers (feeds,
indexers); the engine never reads them back. The log can be persisted to
a JSONL file and reloaded with integrity verification.
"""

from __future__ import annotations

import enum
import hashlib
import json
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional


class EventKind(str, enum.Enum):
    """Classification of campaign events."""
    REGISTRY_INITIALIZED = "registry_initialized"
    CAMPAIGN_CREATED = "campaign_created"
    DONATION_RECEIVED = "donation_received"
    CAMPAIGN_CLAIMED = "campaign_claimed"


def _canonical_hash(
    event_id: str,
    event_kind: str,
    ledger_time: int,
    actor_id: str,
    payload: dict[str, Any],
) -> str:
    canonical = json.dumps(
        {
            "event_id": event_id,
            "event_kind": event_kind,
            "ledger_time": ledger_time,
            "actor_id": actor_id,
            "payload": payload,
        },
        sort_keys=True,
        ensure_ascii=False,
    ).encode("utf-8")
    return f"sha256:{hashlib.sha256(canonical).hexdigest()}"


@dataclass(frozen=True)
class EventRecord:
    """A single immutable event.

    The event_hash is computed at creation time over the canonical JSON
    form, so any later edit to a persisted line is detectable.

    ledger_time is the integer clock reading (any u64 value). The UTC
    rendering is derived from it and is None when the value lies outside
    what datetime can represent.
    """
    event_id: str
    event_kind: EventKind
    ledger_time: int
    actor_id: str
    payload: dict[str, Any]
    event_hash: str

    @staticmethod
    def create(
        event_id: str,
        event_kind: EventKind,
        actor_id: str,
        payload: dict[str, Any],
        ledger_time: int,
    ) -> EventRecord:
        """Create a new event record with computed hash."""
        return EventRecord(
            event_id=event_id,
            event_kind=event_kind,
            ledger_time=ledger_time,
            actor_id=actor_id,
            payload=payload,
            event_hash=_canonical_hash(
                event_id, event_kind.value, ledger_time, actor_id, payload
            ),
        )

    @property
    def timestamp_utc(self) -> Optional[str]:
        try:
            ts = datetime.fromtimestamp(self.ledger_time, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
        return ts.strftime("%Y-%m-%dT%H:%M:%SZ")

    def to_dict(self) -> dict[str, Any]:
        return {
            "event_id": self.event_id,
            "event_kind": self.event_kind.value,
            "ledger_time": self.ledger_time,
            "timestamp_utc": self.timestamp_utc,
            "actor_id": self.actor_id,
            "payload": self.payload,
            "event_hash": self.event_hash,
        }


class EventLog:
    """Append-only event log with optional file persistence.

    Events can only be appended, never modified or deleted.
    The log can be persisted to a JSONL file (one JSON object per line)
    and loaded back for recovery.
    """

    def __init__(self, storage_path: Optional[Path] = None) -> None:
        self._events: list[EventRecord] = []
        self._storage_path = storage_path
        self._event_ids: set[str] = set()

        if storage_path and storage_path.exists():
            self._load_from_file(storage_path)

    def append(self, event: EventRecord) -> None:
        """Append an event to the log.

        Raises ValueError if event_id is a duplicate (replay protection).
        """
        if event.event_id in self._event_ids:
            raise ValueError(f"Duplicate event ID: {event.event_id}")

        if self._storage_path:
            self._append_to_file(event)

        self._events.append(event)
        self._event_ids.add(event.event_id)

    def events(self, kind: Optional[EventKind] = None) -> list[EventRecord]:
        """Return events, optionally filtered by kind."""
        if kind is None:
            return list(self._events)
        return [e for e in self._events if e.event_kind == kind]

    def recent(
        self,
        limit: int,
        kind: Optional[EventKind] = None,
        campaign_id: Optional[int] = None,
    ) -> list[EventRecord]:
        """Return up to limit events, newest first, optionally for one campaign."""
        if limit <= 0:
            return []
        selected = self.events(kind)
        if campaign_id is not None:
            selected = [e for e in selected if e.payload.get("campaign_id") == campaign_id]
        return list(reversed(selected[-limit:]))

    @property
    def count(self) -> int:
        return len(self._events)

    def _append_to_file(self, event: EventRecord) -> None:
        """Append a single event to the JSONL file."""
        self._storage_path.parent.mkdir(parents=True, exist_ok=True)
        with self._storage_path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(event.to_dict(), sort_keys=True, ensure_ascii=False) + "\n")

    def _load_from_file(self, path: Path) -> None:
        """Load events from a JSONL file with integrity verification.

        Fail-closed: rejects tampered records (hash mismatch) and
        duplicate event IDs (replay protection on recovery).
        """
        with path.open("r", encoding="utf-8") as f:
            for line_num, line in enumerate(f, 1):
                line = line.strip()
                if not line:
                    continue
                data = json.loads(line)

                event_id = data["event_id"]
                if event_id in self._event_ids:
                    raise ValueError(
                        f"Duplicate event ID on recovery (line {line_num}): {event_id}"
                    )

                expected_hash = _canonical_hash(
                    data["event_id"],
                    data["event_kind"],
                    data["ledger_time"],
                    data["actor_id"],
                    data["payload"],
                )
                if data["event_hash"] != expected_hash:
                    raise ValueError(
                        f"Integrity check failed (line {line_num}): event {event_id} "
                        f"stored hash {data['event_hash']} != computed {expected_hash}"
                    )

                event = EventRecord(
                    event_id=data["event_id"],
                    event_kind=EventKind(data["event_kind"]),
                    ledger_time=data["ledger_time"],
                    actor_id=data["actor_id"],
                    payload=data["payload"],
                    event_hash=data["event_hash"],
                )
                self._events.append(event)
                self._event_ids.add(event.event_id)
