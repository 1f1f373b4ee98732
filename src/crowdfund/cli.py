"""Crowdfund CLI — command-line interface for the campaign ledger.

Usage:
    python -m crowdfund.cli init
    python -m crowdfund.cli create --caller alice --title "School" --description "Build it" \
        --target 100 --duration 86400
    python -m crowdfund.cli donate --caller bob --id 0 --amount 10
    python -m crowdfund.cli claim --caller alice --id 0
    python -m crowdfund.cli show --id 0
    python -m crowdfund.cli list
    python -m crowdfund.cli events --limit 5 --id 0
    python -m crowdfund.cli check-invariants

Amounts are given in display units (XLM by default) and converted to base
units with the configured scale; pass --raw to give base units directly.
The local operator is trusted: --caller is the authenticated identity.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Optional

from crowdfund.clock import SystemClock
from crowdfund.config import CrowdfundConfig
from crowdfund.identity.authenticator import TrustedCallerAuthenticator
from crowdfund.invariants import check_store
from crowdfund.models.campaign import Campaign, CampaignError
from crowdfund.persistence.event_log import EventLog
from crowdfund.persistence.state_store import StateStore
from crowdfund.service import CrowdfundService, ServiceResult
from crowdfund.units import format_amount, to_base_units


def _make_service(config: CrowdfundConfig, caller: Optional[str] = None) -> CrowdfundService:
    """Create a CrowdfundService with durable persistence."""
    config.data_dir.mkdir(parents=True, exist_ok=True)
    return CrowdfundService(
        store=StateStore(storage_path=config.state_path),
        event_log=EventLog(storage_path=config.events_path),
        authenticator=TrustedCallerAuthenticator([caller] if caller else []),
        clock=SystemClock(),
    )


def _amount(raw_value: str, args: argparse.Namespace) -> int:
    if args.raw:
        return int(raw_value)
    return to_base_units(raw_value, args.cfg.unit_scale)


def _campaign_json(campaign_id: int, campaign: Campaign, config: CrowdfundConfig, now: int) -> dict:
    return {
        "id": campaign_id,
        "creator": campaign.creator,
        "title": campaign.title,
        "description": campaign.description,
        "target": format_amount(campaign.target, config.unit_scale),
        "raised": format_amount(campaign.raised, config.unit_scale),
        "deadline": campaign.deadline,
        "claimed": campaign.claimed,
        "status": campaign.status(now).value,
    }


def _report(result: ServiceResult, success_message: str) -> int:
    if result.success:
        print(success_message.format(**result.data))
        for warning in result.warnings:
            print(f"Warning: {warning}", file=sys.stderr)
        return 0
    print(f"Failed: {'; '.join(result.errors)}", file=sys.stderr)
    return 1


def cmd_init(args: argparse.Namespace) -> int:
    service = _make_service(args.cfg)
    return _report(service.initialize(), "Campaign counter reset to {count}")


def cmd_create(args: argparse.Namespace) -> int:
    service = _make_service(args.cfg, args.caller)
    if args.deadline is not None:
        deadline = args.deadline
    else:
        deadline = service.clock.now() + args.duration
    result = service.create(
        creator=args.caller,
        title=args.title,
        description=args.description,
        target=_amount(args.target, args),
        deadline=deadline,
    )
    return _report(result, "Created campaign: {campaign_id}")


def cmd_donate(args: argparse.Namespace) -> int:
    service = _make_service(args.cfg, args.caller)
    result = service.donate(args.caller, args.id, _amount(args.amount, args))
    return _report(result, "Donated to campaign {campaign_id} (raised: {raised})")


def cmd_claim(args: argparse.Namespace) -> int:
    service = _make_service(args.cfg, args.caller)
    result = service.claim(args.id)
    return _report(result, "Claimed campaign {campaign_id} (raised: {raised})")


def cmd_show(args: argparse.Namespace) -> int:
    service = _make_service(args.cfg)
    try:
        campaign = service.get_campaign(args.id)
    except CampaignError as e:
        print(f"Failed: {e}", file=sys.stderr)
        return 1
    now = service.clock.now()
    print(json.dumps(_campaign_json(args.id, campaign, args.cfg, now), indent=2))
    return 0


def cmd_count(args: argparse.Namespace) -> int:
    service = _make_service(args.cfg)
    print(service.get_count())
    return 0


def cmd_list(args: argparse.Namespace) -> int:
    service = _make_service(args.cfg)
    now = service.clock.now()
    campaigns = service.list_campaigns(start=args.start, limit=args.limit)
    print(json.dumps(
        [_campaign_json(cid, c, args.cfg, now) for cid, c in campaigns],
        indent=2,
    ))
    return 0


def cmd_events(args: argparse.Namespace) -> int:
    service = _make_service(args.cfg)
    limit = args.limit if args.limit is not None else args.cfg.event_feed_limit
    events = service.recent_events(limit, campaign_id=args.id)
    print(json.dumps([e.to_dict() for e in events], indent=2))
    return 0


def cmd_status(args: argparse.Namespace) -> int:
    service = _make_service(args.cfg)
    print(json.dumps(service.status(), indent=2))
    return 0


def cmd_check_invariants(args: argparse.Namespace) -> int:
    """Audit the persisted store for invariant violations."""
    errors = check_store(StateStore(storage_path=args.cfg.state_path))
    if errors:
        print("Invariant check failed:")
        for err in errors:
            print(f"- {err}")
        return 1
    print("Invariant check passed.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="crowdfund",
        description="Crowdfund ledger — campaign funding CLI",
    )
    parser.add_argument(
        "--data-dir",
        type=Path,
        help="Directory for state.json and events.jsonl (default: CROWDFUND_DATA_DIR or data/)",
    )
    parser.add_argument("--log-level", help="Logging level (default: CROWDFUND_LOG_LEVEL or WARNING)")
    sub = parser.add_subparsers(dest="command")

    # init
    sub.add_parser("init", help="Reset the campaign counter to 0")

    # create
    p_create = sub.add_parser("create", help="Create a campaign")
    p_create.add_argument("--caller", required=True, help="Creator identity")
    p_create.add_argument("--title", required=True, help="Campaign title")
    p_create.add_argument("--description", default="", help="Campaign description")
    p_create.add_argument("--target", required=True, help="Funding goal (display units)")
    p_create.add_argument("--raw", action="store_true", help="Amounts are base units")
    when = p_create.add_mutually_exclusive_group(required=True)
    when.add_argument("--deadline", type=int, help="Deadline (ledger timestamp)")
    when.add_argument("--duration", type=int, help="Seconds from now until the deadline")

    # donate
    p_donate = sub.add_parser("donate", help="Donate to a campaign")
    p_donate.add_argument("--caller", required=True, help="Donor identity")
    p_donate.add_argument("--id", type=int, required=True, help="Campaign ID")
    p_donate.add_argument("--amount", required=True, help="Amount (display units)")
    p_donate.add_argument("--raw", action="store_true", help="Amounts are base units")

    # claim
    p_claim = sub.add_parser("claim", help="Claim a concluded campaign")
    p_claim.add_argument("--caller", required=True, help="Creator identity")
    p_claim.add_argument("--id", type=int, required=True, help="Campaign ID")

    # show
    p_show = sub.add_parser("show", help="Show one campaign")
    p_show.add_argument("--id", type=int, required=True, help="Campaign ID")

    # count
    sub.add_parser("count", help="Show the campaign counter")

    # list
    p_list = sub.add_parser("list", help="List campaigns")
    p_list.add_argument("--start", type=int, default=0, help="First campaign ID")
    p_list.add_argument("--limit", type=int, help="Maximum campaigns to show")

    # events
    p_events = sub.add_parser("events", help="Show recent events, newest first")
    p_events.add_argument("--limit", type=int, help="Number of events (default: config)")
    p_events.add_argument("--id", type=int, help="Only events for this campaign ID")

    # status
    sub.add_parser("status", help="Show ledger summary")

    # check-invariants
    sub.add_parser("check-invariants", help="Audit stored campaigns against invariants")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    try:
        config = CrowdfundConfig.from_env()
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1
    if args.data_dir is not None:
        config = replace(config, data_dir=args.data_dir)
    if args.log_level:
        config = replace(config, log_level=args.log_level.upper())
    try:
        logging.basicConfig(
            level=config.log_level,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1
    args.cfg = config

    commands = {
        "init": cmd_init,
        "create": cmd_create,
        "donate": cmd_donate,
        "claim": cmd_claim,
        "show": cmd_show,
        "count": cmd_count,
        "list": cmd_list,
        "events": cmd_events,
        "status": cmd_status,
        "check-invariants": cmd_check_invariants,
    }

    handler = commands.get(args.command)
    if handler is None:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 1

    try:
        return handler(args)
    except ValueError as e:
        print(f"Failed: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
