"""
Timeslot conflict detection for schedule templates.

Two rules apply to a week of timeslots:
- a location hosts one class at a time
- a coach runs one class at a time

Every pair of slots is compared against both rules. Templates hold tens
of slots, so the quadratic scan is fine.
"""

import logging
from datetime import datetime, time
from typing import Optional, Protocol, Sequence


logger = logging.getLogger(__name__)


class SlotLike(Protocol):
    """The fields the validator reads from a timeslot."""
    day_of_week: int
    start_time: str
    end_time: str
    location_id: Optional[str]
    coach_id: Optional[str]


def _parse_time(value: str) -> Optional[time]:
    try:
        return datetime.strptime(value, "%H:%M").time()
    except (TypeError, ValueError):
        return None


def _overlaps(first: SlotLike, second: SlotLike) -> bool:
    """Half-open interval test: a slot ending at 10:00 and one starting at 10:00 do not overlap."""
    start1, end1 = _parse_time(first.start_time), _parse_time(first.end_time)
    start2, end2 = _parse_time(second.start_time), _parse_time(second.end_time)

    if None in (start1, end1, start2, end2):
        return False

    return start1 < end2 and start2 < end1


def _shares(first: SlotLike, second: SlotLike, attribute: str) -> bool:
    a = getattr(first, attribute, None)
    b = getattr(second, attribute, None)
    if a is None or b is None:
        return False
    return str(a) == str(b)


def validate_timeslot_conflicts(timeslots: Sequence[SlotLike]) -> list[str]:
    """
    Return a description of every conflicting pair of timeslots.

    An empty list means the schedule is clean. A single pair can produce
    both a location conflict and a coach conflict. Input is assumed to be
    validated already; slots with unparseable times never conflict.
    """
    conflicts: list[str] = []

    for i in range(len(timeslots)):
        for j in range(i + 1, len(timeslots)):
            slot1 = timeslots[i]
            slot2 = timeslots[j]

            if slot1.day_of_week != slot2.day_of_week:
                continue

            if _shares(slot1, slot2, "location_id") and _overlaps(slot1, slot2):
                conflicts.append(
                    f"Timeslot conflict: {slot1.start_time}-{slot1.end_time} "
                    f"overlaps with {slot2.start_time}-{slot2.end_time} "
                    f"on day {slot1.day_of_week} at location {slot1.location_id}"
                )

            if _shares(slot1, slot2, "coach_id") and _overlaps(slot1, slot2):
                conflicts.append(
                    f"Coach conflict: Coach {slot1.coach_id} is double-booked "
                    f"on day {slot1.day_of_week} from {slot1.start_time}-{slot1.end_time} "
                    f"and {slot2.start_time}-{slot2.end_time}"
                )

    if conflicts:
        logger.debug(
            "Timeslot conflicts found",
            extra={"slot_count": len(timeslots), "conflict_count": len(conflicts)}
        )

    return conflicts
