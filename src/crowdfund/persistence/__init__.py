"""Persistence — durable state store and append-only event log."""

from crowdfund.persistence.event_log import EventKind, EventLog, EventRecord
from crowdfund.persistence.state_store import StateStore

__all__ = ["EventKind", "EventLog", "EventRecord", "StateStore"]
