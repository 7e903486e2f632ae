"""
Settlement - grade every outstanding bet against the current official
result and credit the points to the participants.

A result moves from pending to processed exactly once. The guard is the
result's processed marker; the three affected tables (users, bets,
race_results) are committed in a single store transaction, so either all
of a run's effects land or none of them do.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List

from paddock.core.config import Settings
from paddock.core.errors import AlreadyProcessed, NoResult, Unauthorized
from paddock.schemas.entities import OfficialResult, Participant, Prediction
from paddock.schemas.keys import Key
from paddock.services.scoring import score
from paddock.store.tables import EntityStore

logger = logging.getLogger(__name__)


@dataclass
class SettlementReport:
    event: str
    graded: int = 0
    credited: Dict[str, int] = field(default_factory=dict)
    uncredited: List[str] = field(default_factory=list)

    @property
    def message(self) -> str:
        return f"{self.event} bets successfully processed."


def require_admin(caller: str, settings: Settings) -> None:
    if Key(caller) != settings.admin_nick:
        raise Unauthorized(settings.admin_nick)


def current_result(results: List[OfficialResult]) -> OfficialResult:
    """The result being settled: by convention the first row of the table.

    Only one pending result is expected at a time; anything after the
    first row is history.
    """
    if not results:
        raise NoResult("race_results table is empty")
    return results[0]


class SettlementPipeline:
    def __init__(self, store: EntityStore, settings: Settings):
        self.store = store
        self.settings = settings

    def run(self, caller: str) -> SettlementReport:
        require_admin(caller, self.settings)

        self.store.recover()
        results: List[OfficialResult] = self.store.load("race_results")
        result = current_result(results)
        if result.is_processed:
            raise AlreadyProcessed(result.event)

        bets: List[Prediction] = self.store.load("bets")
        users: List[Participant] = self.store.load("users")
        report = self.grade(result, bets, users)

        result.mark_processed()
        with self.store.transaction() as batch:
            batch.save("users", users)
            batch.save("bets", bets)
            batch.save("race_results", results)

        logger.info(
            "Settled %s: %d bet(s) graded, credited %s",
            report.event, report.graded, report.credited or "nobody",
        )
        if report.uncredited:
            logger.warning("No participant for bet(s) by %s; points not credited", report.uncredited)
        return report

    @staticmethod
    def grade(result: OfficialResult, bets: List[Prediction], users: List[Participant]) -> SettlementReport:
        """Score the bets for ``result`` in place and fold them into user totals."""
        report = SettlementReport(event=result.event)
        users_by_key: Dict[Key, List[Participant]] = {}
        for user in users:
            # Handles are unique by convention; duplicate rows are all credited.
            users_by_key.setdefault(user.key, []).append(user)

        for bet in bets:
            if bet.event_key != result.event_key:
                continue
            points = score(bet, result)
            bet.awarded_points = points
            report.graded += 1

            matches = users_by_key.get(bet.handle_key)
            if not matches:
                report.uncredited.append(bet.handle)
                continue
            for user in matches:
                user.total_points += points
                report.credited[user.handle] = report.credited.get(user.handle, 0) + points
        return report
