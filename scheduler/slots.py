"""
Slot Generation.

Turns resolved working hours into the ordered list of bookable slots.
Every availability call path (single location, all locations, alternatives)
goes through generate_slots, so the edge-case policy lives in one place:

- Walk from the start of the day in full slot-duration steps.
- No partial trailing slot: a candidate ending after the working end stops the walk.
- A candidate overlapping lunch, a break, or an occupying booking is skipped
  whole (never truncated); the walk still advances a full step.
- Overlap is half-open: back-to-back intervals do not collide.
"""

from typing import Iterable, List, Optional, Sequence

from models import BookedInterval, Slot, TimeInterval

from .resolver import Resolution, Working

DEFAULT_SLOT_MINUTES = 30


def merge_blockers(blockers: Iterable[TimeInterval]) -> List[TimeInterval]:
    """Sort and coalesce blocked intervals into a disjoint, ascending list."""
    ordered = sorted(
        (b for b in blockers if b.duration_minutes > 0),
        key=lambda b: (b.start_minute, b.end_minute)
    )
    merged: List[List[int]] = []
    for block in ordered:
        if merged and block.start_minute <= merged[-1][1]:
            merged[-1][1] = max(merged[-1][1], block.end_minute)
        else:
            merged.append([block.start_minute, block.end_minute])
    return [TimeInterval.from_minutes(start, end) for start, end in merged]


def generate_slots(
    hours: TimeInterval,
    slot_duration: int = DEFAULT_SLOT_MINUTES,
    lunch: Optional[TimeInterval] = None,
    breaks: Sequence[TimeInterval] = (),
    bookings: Sequence[BookedInterval] = ()
) -> List[Slot]:
    """
    Sweep the working day and emit the free slots, earliest first.

    Blockers (lunch, breaks, occupying bookings) are merged once and then
    consumed with a single forward pointer, so the sweep is
    O(slots + blockers log blockers).
    """
    if slot_duration <= 0:
        raise ValueError("slot_duration must be a positive number of minutes")

    blockers: List[TimeInterval] = list(breaks)
    if lunch is not None:
        blockers.append(lunch)
    blockers.extend(b.interval for b in bookings if b.occupies_schedule)
    blocked = merge_blockers(blockers)

    slots: List[Slot] = []
    cursor = 0
    day_end = hours.end_minute
    start = hours.start_minute

    while start + slot_duration <= day_end:
        end = start + slot_duration

        # Drop blockers that finished at or before this candidate starts
        while cursor < len(blocked) and blocked[cursor].end_minute <= start:
            cursor += 1

        is_blocked = cursor < len(blocked) and blocked[cursor].start_minute < end
        if not is_blocked:
            slots.append(Slot.from_interval(TimeInterval.from_minutes(start, end)))

        start = end

    return slots


def generate_for_resolution(
    resolution: Resolution,
    bookings: Sequence[BookedInterval] = (),
    slot_duration: Optional[int] = None
) -> List[Slot]:
    """
    Slots for any resolver outcome; closed or unscheduled days yield nothing.

    `bookings` are the physician's bookings that day at every location.
    """
    if not isinstance(resolution, Working):
        return []
    return generate_slots(
        resolution.hours,
        slot_duration=slot_duration or resolution.slot_duration_minutes,
        lunch=resolution.lunch,
        breaks=resolution.breaks,
        bookings=bookings,
    )
