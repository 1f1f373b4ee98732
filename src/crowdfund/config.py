"""Runtime configuration, resolved from the environment.

Values come from process environment variables, optionally seeded from a
``.env`` file at the project root (existing variables win):

    CROWDFUND_DATA_DIR          directory for state.json / events.jsonl
    CROWDFUND_LOG_LEVEL         logging level name (default WARNING)
    CROWDFUND_UNIT_SCALE        base units per display unit (default 10^7)
    CROWDFUND_EVENT_FEED_LIMIT  default size of the recent events feed
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv


ROOT = Path(__file__).resolve().parents[2]
DEFAULT_DATA = ROOT / "data"
DEFAULT_UNIT_SCALE = 10_000_000  # stroops per XLM
DEFAULT_EVENT_FEED_LIMIT = 10


def _positive_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from e
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")
    return value


@dataclass(frozen=True)
class CrowdfundConfig:
    data_dir: Path = DEFAULT_DATA
    log_level: str = "WARNING"
    unit_scale: int = DEFAULT_UNIT_SCALE
    event_feed_limit: int = DEFAULT_EVENT_FEED_LIMIT

    @property
    def state_path(self) -> Path:
        return self.data_dir / "state.json"

    @property
    def events_path(self) -> Path:
        return self.data_dir / "events.jsonl"

    @staticmethod
    def from_env(
        env: Optional[Mapping[str, str]] = None,
        dotenv_path: Optional[Path] = None,
    ) -> CrowdfundConfig:
        """Build a config from env (defaults to os.environ after loading .env)."""
        if env is None:
            load_dotenv(dotenv_path or ROOT / ".env")
            env = os.environ

        data_dir = env.get("CROWDFUND_DATA_DIR")
        log_level = env.get("CROWDFUND_LOG_LEVEL", "WARNING").strip().upper()
        if not isinstance(logging.getLevelName(log_level), int):
            raise ValueError(f"CROWDFUND_LOG_LEVEL is not a logging level: {log_level!r}")

        return CrowdfundConfig(
            data_dir=Path(data_dir).expanduser() if data_dir else DEFAULT_DATA,
            log_level=log_level,
            unit_scale=_positive_int(env, "CROWDFUND_UNIT_SCALE", DEFAULT_UNIT_SCALE),
            event_feed_limit=_positive_int(
                env, "CROWDFUND_EVENT_FEED_LIMIT", DEFAULT_EVENT_FEED_LIMIT
            ),
        )
