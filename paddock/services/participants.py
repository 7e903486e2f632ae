import logging
import re
from typing import List, Tuple

from paddock.core.config import Settings
from paddock.core.errors import AlreadyRegistered, InvalidInput
from paddock.schemas.entities import Participant
from paddock.store.codec import unstorable
from paddock.store.tables import EntityStore

logger = logging.getLogger(__name__)

_NON_ALNUM = re.compile(r"[^A-Za-z0-9]+")


def is_registered(nick: str, users: List[Participant]) -> bool:
    return any(user.key == nick for user in users)


def register(store: EntityStore, settings: Settings, nick: str) -> Participant:
    bad = unstorable([nick], store.delimiter)
    if bad:
        raise InvalidInput(bad, store.delimiter)
    users: List[Participant] = store.load("users")
    if is_registered(nick, users):
        raise AlreadyRegistered(f"{nick} already in users table")

    user = Participant(handle=nick.lower(), time_zone=settings.default_time_zone)
    users.append(user)
    store.save("users", users)
    logger.info("Registered %s", user.handle)
    return user


def tag(handle: str) -> str:
    """Three-letter leaderboard tag, e.g. ``"v-tnw" -> "VTN"``."""
    return _NON_ALNUM.sub("", handle).upper()[:3]


def standings(users: List[Participant]) -> List[Tuple[int, str, int]]:
    """(rank, tag, points) for everyone who has scored, best first."""
    ranked = sorted((u for u in users if u.total_points > 0), key=lambda u: u.total_points, reverse=True)
    return [(rank, tag(u.handle), u.total_points) for rank, u in enumerate(ranked, start=1)]


def format_standings(rows: List[Tuple[int, str, int]]) -> str:
    if not rows:
        return "No points have been scored yet."
    return " | ".join(f"{rank}. {name} {points}" for rank, name, points in rows)
