"""
Day-level ordering repairs.

Displayed times are free-form, so ordering is driven by activity kind rather
than by parsing times. Every pass is a stable reorder: nothing is added or
removed, and activities without a constraint between them keep their order.

The first and last day of a trip are then retimed so their displayed times
run forward: activities on the arrival day start after the arrival, and the
departure day ends with check-out at 15:00 and departure at 18:00.
"""

import logging

from planora.core.activity_classifier import ActivityKind, classify_activity, detect_meal_type
from planora.core.schemas import MEAL_ORDER, Activity, Day
from planora.core.travel_time_utils import minutes_to_time, time_to_minutes

logger = logging.getLogger(__name__)

KIND_RANK = {
    ActivityKind.ARRIVAL: 0,
    ActivityKind.CHECK_IN: 1,
    ActivityKind.CHECK_OUT: 3,
    ActivityKind.DEPARTURE: 4,
}
DEFAULT_RANK = 2

MEAL_RANK = {meal_type: rank for rank, meal_type in enumerate(MEAL_ORDER)}

DAY_START = 8 * 60
DEPARTURE_TIME = 18 * 60
CHECK_OUT_LEAD = 3 * 60

# Minutes a pushed activity is placed after the one before it
PUSH_GAP = {
    ActivityKind.CHECK_IN: 90,
    ActivityKind.MEAL: 60,
    ActivityKind.MOSQUE: 30,
}
DEFAULT_PUSH_GAP = 90


def _blocks(activities: list[Activity]) -> list[list[Activity]]:
    """Group each activity with the mosque activities that directly follow it."""
    blocks: list[list[Activity]] = []
    for activity in activities:
        if blocks and classify_activity(activity) == ActivityKind.MOSQUE:
            blocks[-1].append(activity)
        else:
            blocks.append([activity])
    return blocks


def _block_rank(block: list[Activity]) -> int:
    return KIND_RANK.get(classify_activity(block[0]), DEFAULT_RANK)


def _order_meals(blocks: list[list[Activity]]) -> list[list[Activity]]:
    """Permute typed meal blocks among their own positions into breakfast < lunch < dinner."""
    positions = [
        i
        for i, block in enumerate(blocks)
        if classify_activity(block[0]) == ActivityKind.MEAL and detect_meal_type(block[0]) is not None
    ]
    meals = sorted(
        (blocks[i] for i in positions), key=lambda block: MEAL_RANK[detect_meal_type(block[0])]
    )
    reordered = list(blocks)
    for position, block in zip(positions, meals):
        reordered[position] = block
    return reordered


def enforce_activity_order(activities: list[Activity]) -> list[Activity]:
    blocks = sorted(_blocks(activities), key=_block_rank)
    blocks = _order_meals(blocks)
    return [activity for block in blocks for activity in block]


def _set_time(block: list[Activity], minutes: int) -> list[Activity]:
    """A block shares one displayed time: the mosque visit belongs to its meal."""
    new_time = minutes_to_time(minutes)
    return [a if a.time == new_time else a.model_copy(update={"time": new_time}) for a in block]


def retime_activities(activities: list[Activity], pin_departure: bool = False) -> list[Activity]:
    """
    Rewrite displayed times so they never run backwards.

    Each block keeps its own time when that is later than the block before
    it; otherwise it is pushed to the previous start plus a per-kind gap.
    With ``pin_departure`` the departure is set to 18:00 and the check-out
    three hours before it, and anything the generator placed after
    check-out is pulled in ahead of it.

    Assumes the activities are already in enforced order.
    """
    blocks = _blocks(activities)
    kinds = [classify_activity(block[0]) for block in blocks]
    pin_departure = pin_departure and ActivityKind.DEPARTURE in kinds
    check_out_time = DEPARTURE_TIME - CHECK_OUT_LEAD
    latest = check_out_time if ActivityKind.CHECK_OUT in kinds else DEPARTURE_TIME

    retimed: list[Activity] = []
    previous: int | None = None
    checked_out: int | None = None
    for block, kind in zip(blocks, kinds):
        target = time_to_minutes(block[0].time)
        if pin_departure:
            if kind == ActivityKind.CHECK_OUT:
                target = check_out_time
            elif kind == ActivityKind.DEPARTURE:
                target = DEPARTURE_TIME
                if checked_out is not None:
                    target = max(target, checked_out + CHECK_OUT_LEAD)
            elif target is not None and target >= latest:
                target = None

        if previous is None:
            if target is None and not pin_departure:
                # Nothing to anchor on yet
                retimed.extend(block)
                continue
            start = target if target is not None else DAY_START
        elif target is not None and target > previous:
            start = target
        else:
            start = previous + PUSH_GAP.get(kind, DEFAULT_PUSH_GAP)

        if start != time_to_minutes(block[0].time):
            logger.info(f"Retimed '{block[0].title}' from {block[0].time} to {minutes_to_time(start)}")
        retimed.extend(_set_time(block, start))
        previous = start
        if kind == ActivityKind.CHECK_OUT:
            checked_out = start

    return retimed


def enforce_order(days: list[Day]) -> list[Day]:
    ordered = []
    last = len(days) - 1
    for index, day in enumerate(days):
        activities = enforce_activity_order(day.activities)
        kinds = {classify_activity(a) for a in activities}
        is_arrival_day = index == 0 and ActivityKind.ARRIVAL in kinds
        is_departure_day = index == last and ActivityKind.DEPARTURE in kinds
        if is_arrival_day or is_departure_day:
            activities = retime_activities(activities, pin_departure=is_departure_day)
        ordered.append(day.model_copy(update={"activities": activities}))
    return ordered
