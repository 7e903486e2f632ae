from paddock.schemas.entities import OfficialResult, Prediction
from paddock.schemas.keys import Key

CORRECT = 5       # pick in the exact podium slot
PODIUM = 3        # pick on the podium, wrong slot
FASTEST_LAP = 1
BOOST = 10        # bonus for a perfect podium


def _slot_points(pick: str, actual: str, podium: set) -> int:
    pick_key = Key(pick)
    if pick_key == actual:
        return CORRECT
    if pick_key in podium:
        return PODIUM
    return 0


def score(prediction: Prediction, result: OfficialResult) -> int:
    """Points earned by ``prediction`` against ``result``.

    Predictions for another event score 0. Each podium pick is graded on
    its own slot; a perfect podium adds BOOST and a correct fastest-lap
    pick adds FASTEST_LAP. All comparisons ignore case.
    """
    if prediction.event_key != result.event_key:
        return 0

    podium = {Key(driver) for driver in result.podium}
    points = sum(
        _slot_points(pick, actual, podium)
        for pick, actual in zip(prediction.podium, result.podium)
    )
    if points == 3 * CORRECT:
        points += BOOST
    if Key(prediction.fastest_lap) == result.fourth:
        points += FASTEST_LAP
    return points
