from typing import List, Sequence

from paddock.schemas.entities import Driver
from paddock.schemas.keys import Key


def driver_codes(drivers: List[Driver]) -> str:
    return " | ".join(driver.code for driver in drivers)


def unknown_drivers(picks: Sequence[str], drivers: List[Driver]) -> List[str]:
    known = {driver.key for driver in drivers}
    return [pick for pick in picks if Key(pick) not in known]
