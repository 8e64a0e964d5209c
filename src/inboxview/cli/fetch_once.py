"""One-shot fetch: refresh one mailbox and print its mail as JSON."""

from __future__ import annotations

import argparse
import asyncio
import json
from datetime import datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from loguru import logger

from inboxview.api.routes import MailResponse
from inboxview.application.mailbox.query import apply
from inboxview.application.mailbox.stats import compute_stats
from inboxview.domain.entities.criteria import DateRange, FilterCriteria, ReadState
from inboxview.domain.entities.mail import MailCategory
from inboxview.domain.exceptions import InboxViewError
from inboxview.infrastructure import build_registry, configure_logging, get_settings


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Fetch mail sent to an address and print it as JSON")
    parser.add_argument("--to", required=True, help="Target email address")
    parser.add_argument("--query", "-q", default="", help="Text filter over sender, subject and preview")
    parser.add_argument(
        "--category",
        default="all",
        choices=["all", *(c.value for c in MailCategory)],
        help="Only mail in this category",
    )
    parser.add_argument("--read-state", default="all", choices=[s.value for s in ReadState])
    parser.add_argument("--date-range", default="all", choices=[d.value for d in DateRange])
    parser.add_argument("--tz", default=None, help="IANA zone for today/this week (default: local)")
    parser.add_argument("--stats", action="store_true", help="Print counters instead of the mail list")
    return parser


async def fetch(args: argparse.Namespace) -> list[dict] | dict:
    settings = get_settings()
    registry = build_registry(settings)
    # a one-shot run never needs the periodic timer
    registry.auto_refresh = False
    try:
        mailbox = await registry.open(args.to)
        mails = mailbox.store.all()
    finally:
        await registry.close()

    zone_name = args.tz or settings.local_timezone
    now = datetime.now(ZoneInfo(zone_name)) if zone_name else datetime.now().astimezone()

    if args.stats:
        stats = compute_stats(mails, now=now)
        return {"address": mailbox.address, "total": stats.total, "unread": stats.unread, "today": stats.today}

    criteria = FilterCriteria(
        text=args.query,
        category=None if args.category == "all" else MailCategory(args.category),
        read_state=ReadState(args.read_state),
        date_range=DateRange(args.date_range),
    )
    return [
        MailResponse.model_validate(mail).model_dump(mode="json", by_alias=True)
        for mail in apply(criteria, mails, now=now)
    ]


def main() -> int:
    args = build_parser().parse_args()
    configure_logging(get_settings().log_level)

    try:
        result = asyncio.run(fetch(args))
    except InboxViewError as e:
        logger.error(f"{e.kind}: {e.message}")
        return 1
    except (ValueError, ZoneInfoNotFoundError) as e:
        logger.error(f"Configuration error: {e}")
        return 2

    print(json.dumps(result, indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
