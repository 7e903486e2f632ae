"""
Bet placement and official result entry.

Both write a single table with a plain ``save``; neither touches scores.
Settlement (``paddock.services.settlement``) is the only writer of points.
"""

import logging
from typing import List, Optional, Sequence

from paddock.core.config import Settings
from paddock.core.errors import AlreadyProcessed, BetsClosed, InvalidBet, InvalidInput, NotRegistered, ResultPending
from paddock.schemas.entities import Driver, OfficialResult, Participant, Prediction
from paddock.schemas.keys import Key
from paddock.services.participants import is_registered
from paddock.services.roster import unknown_drivers
from paddock.services.settlement import require_admin
from paddock.store.codec import unstorable
from paddock.store.tables import EntityStore

logger = logging.getLogger(__name__)

PICKS = 4  # first, second, third, fastest lap


def _check_text(store: EntityStore, *values: str) -> None:
    bad = unstorable(values, store.delimiter)
    if bad:
        raise InvalidInput(bad, store.delimiter)


def _check_picks(store: EntityStore, picks: Sequence[str]) -> None:
    if len(picks) != PICKS:
        raise InvalidBet(
            f"got {len(picks)} picks",
            user_message=f"The bet must contain {PICKS} drivers: podium and fastest lap.",
        )
    drivers: List[Driver] = store.load("drivers")
    unknown = unknown_drivers(picks, drivers)
    if unknown:
        raise InvalidBet(f"unknown driver(s) {unknown}")


def _require_registered(store: EntityStore, settings: Settings, nick: str) -> None:
    users: List[Participant] = store.load("users")
    if not is_registered(nick, users):
        raise NotRegistered(settings.admin_nick)


def current_bet(store: EntityStore, settings: Settings, nick: str, event: str) -> Optional[Prediction]:
    _require_registered(store, settings, nick)
    bets: List[Prediction] = store.load("bets")
    for bet in reversed(bets):
        if bet.event_key == event and bet.handle_key == nick:
            return bet
    return None


def place_bet(store: EntityStore, settings: Settings, nick: str, event: str, picks: Sequence[str]) -> Prediction:
    """Create or replace ``nick``'s bet for ``event``."""
    _check_text(store, nick, event, *picks)
    _require_registered(store, settings, nick)
    _check_picks(store, picks)

    results: List[OfficialResult] = store.load("race_results")
    if any(r.event_key == event for r in results):
        raise BetsClosed(f"result for {event} already on file")

    first, second, third, fastest_lap = (pick.lower() for pick in picks)
    bet = Prediction(
        event=event.lower(), handle=nick.lower(),
        first=first, second=second, third=third, fastest_lap=fastest_lap,
    )
    bets: List[Prediction] = store.load("bets")
    for i, existing in enumerate(bets):
        if existing.event_key == event and existing.handle_key == nick:
            bets[i] = bet
            break
    else:
        bets.append(bet)
    store.save("bets", bets)
    logger.info("Stored bet for %s by %s", bet.event, bet.handle)
    return bet


def enter_result(store: EntityStore, settings: Settings, caller: str, event: str, picks: Sequence[str]) -> OfficialResult:
    """Record the official result for ``event`` as the current, pending one."""
    require_admin(caller, settings)
    _check_text(store, event, *picks)
    store.recover()
    _check_picks(store, picks)

    results: List[OfficialResult] = store.load("race_results")
    first, second, third, fourth = picks
    result = OfficialResult(event=event, first=first, second=second, third=third, fourth=fourth)

    head = results[0] if results else None
    if head is not None and head.event_key == Key(event):
        if head.is_processed:
            raise AlreadyProcessed(head.event)
        results[0] = result
        logger.info("Corrected pending result for %s", event)
    else:
        if head is not None and not head.is_processed:
            raise ResultPending(head.event)
        results.insert(0, result)
        logger.info("Recorded result for %s", event)
    store.save("race_results", results)
    return result
