#!/usr/bin/env python3
"""Crowdfund invariant checks against a persisted data directory.

Usage:
    python3 tools/check_invariants.py            # uses CROWDFUND_DATA_DIR or data/
    python3 tools/check_invariants.py path/to/data
"""

import sys
from pathlib import Path

# Add src to path for crowdfund imports
ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / "src"))

from crowdfund.config import CrowdfundConfig
from crowdfund.invariants import check_store
from crowdfund.persistence.state_store import StateStore


def check(data_dir: Path | None = None) -> int:
    if data_dir is None:
        data_dir = CrowdfundConfig.from_env().data_dir
    state_path = data_dir / "state.json"
    if not state_path.exists():
        print(f"No state file at {state_path}; nothing to check.")
        return 0

    errors = check_store(StateStore(storage_path=state_path))
    if errors:
        print("Invariant check failed:")
        for err in errors:
            print(f"- {err}")
        return 1

    print("Invariant check passed.")
    return 0


if __name__ == "__main__":
    raise SystemExit(check(Path(sys.argv[1]) if len(sys.argv) > 1 else None))
