"""
Command dispatcher for the betting commands.

The chat bot runs one subcommand per chat command, passing the caller's
nick, and relays the single line printed on stdout. Exit status is 0 when
the command ran and 1 when it did not.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from paddock.core.config import Settings, get_settings
from paddock.core.errors import BettingError
from paddock.core.logging import configure_logging
from paddock.services import bets as bet_service
from paddock.services import participants, roster
from paddock.services.settlement import SettlementPipeline
from paddock.store.tables import EntityStore

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="paddock", description="F1 betting championship commands")
    ap.add_argument("--data-dir", type=Path, default=None, help="Directory holding the table files")
    sub = ap.add_subparsers(dest="command", required=True)

    p = sub.add_parser("process-bets", help="Grade bets against the current result (admin)")
    p.add_argument("nick")

    p = sub.add_parser("register", help="Create a betting account")
    p.add_argument("nick")

    sub.add_parser("points", help="Show the betting championship standings")
    sub.add_parser("drivers", help="List the driver codes")
    sub.add_parser("init", help="Create missing table files")

    p = sub.add_parser("bet", help="Show or place a bet: podium then fastest lap")
    p.add_argument("nick")
    p.add_argument("event")
    p.add_argument("picks", nargs="*")

    p = sub.add_parser("result", help="Enter the official result (admin)")
    p.add_argument("nick")
    p.add_argument("event")
    p.add_argument("picks", nargs="*", help="first second third fastest-lap")
    return ap


def dispatch(args: argparse.Namespace, settings: Settings) -> str:
    store = EntityStore.from_settings(settings)

    if args.command == "process-bets":
        return SettlementPipeline(store, settings).run(args.nick).message

    if args.command == "result":
        result = bet_service.enter_result(store, settings, args.nick, args.event, args.picks)
        return f"Result for the {result.event} recorded."

    if args.command == "init":
        created = store.ensure_tables()
        return f"Created {', '.join(created)}." if created else "All tables already exist."

    store.recover()

    if args.command == "register":
        participants.register(store, settings, args.nick)
        return "You were successfully registered."

    if args.command == "points":
        return participants.format_standings(participants.standings(store.load("users")))

    if args.command == "drivers":
        return roster.driver_codes(store.load("drivers"))

    if args.command == "bet":
        if not args.picks:
            bet = bet_service.current_bet(store, settings, args.nick, args.event)
            if bet is None:
                return f"You haven't placed a bet for the {args.event} yet."
            first, second, third = (pick.upper() for pick in bet.podium)
            return (
                f"Your current bet for the {args.event}: {first} {second} {third}, "
                f"fastest lap {bet.fastest_lap.upper()}"
            )
        bet_service.place_bet(store, settings, args.nick, args.event, args.picks)
        return f"Your bet for the {args.event} was successfully updated."

    raise ValueError(f"Unknown command {args.command!r}")


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    if args.data_dir is not None:
        settings = settings.model_copy(update={"data_dir": args.data_dir})
    configure_logging(settings.log_level)

    try:
        reply = dispatch(args, settings)
    except BettingError as e:
        logger.warning("%s failed: %s", args.command, e)
        print(e.user_message)
        return 1
    print(reply)
    return 0


if __name__ == "__main__":
    sys.exit(main())
