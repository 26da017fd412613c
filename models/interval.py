"""
Time-of-day interval model for the Clinic Slot Scheduler.

Everything in the scheduler is measured in whole minutes from midnight.
Intervals are half-open: [start, end).
"""

import re
from datetime import time
from typing import Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

MINUTES_PER_DAY = 24 * 60

_TIME_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?$")


class InvalidTimeFormat(ValueError):
    """Raised when a value cannot be read as a time of day (00:00-23:59)."""

    def __init__(self, value):
        self.value = value
        super().__init__(f"Invalid time of day: {value!r} (expected HH:MM between 00:00 and 23:59)")


def parse_time_of_day(value: Union[time, str]) -> time:
    """
    Normalize a time-of-day input to a minute-precision ``datetime.time``.

    Accepts ``time`` objects and "HH:MM" / "HH:MM:SS" strings.
    Seconds are dropped, since the scheduler works at minute granularity.
    """
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0, tzinfo=None)

    if not isinstance(value, str):
        raise InvalidTimeFormat(value)

    match = _TIME_PATTERN.match(value.strip())
    if not match:
        raise InvalidTimeFormat(value)

    hour, minute = int(match.group(1)), int(match.group(2))
    second = int(match.group(3) or 0)
    if hour > 23 or minute > 59 or second > 59:
        raise InvalidTimeFormat(value)
    return time(hour, minute)


def time_to_minutes(value: time) -> int:
    return value.hour * 60 + value.minute


def minutes_to_time(minutes: int) -> time:
    if not 0 <= minutes < MINUTES_PER_DAY:
        raise InvalidTimeFormat(f"{minutes} minutes")
    return time(minutes // 60, minutes % 60)


class TimeInterval(BaseModel):
    """A half-open [start, end) window within a single day."""

    start: time = Field(description="Inclusive start")
    end: time = Field(description="Exclusive end")

    model_config = ConfigDict(frozen=True)

    @field_validator("start", "end", mode="before")
    @classmethod
    def normalize_times(cls, v):
        return parse_time_of_day(v)

    @model_validator(mode="after")
    def validate_order(self):
        if self.end < self.start:
            raise ValueError("Interval end cannot be before its start")
        return self

    @classmethod
    def from_minutes(cls, start_minute: int, end_minute: int) -> "TimeInterval":
        return cls(start=minutes_to_time(start_minute), end=minutes_to_time(end_minute))

    @property
    def start_minute(self) -> int:
        return time_to_minutes(self.start)

    @property
    def end_minute(self) -> int:
        return time_to_minutes(self.end)

    @property
    def duration_minutes(self) -> int:
        return self.end_minute - self.start_minute

    def overlaps(self, other: "TimeInterval") -> bool:
        """Standard overlap logic: StartA < EndB and StartB < EndA."""
        return self.start_minute < other.end_minute and other.start_minute < self.end_minute

    def contains(self, point: Union[time, str]) -> bool:
        minute = time_to_minutes(parse_time_of_day(point))
        return self.start_minute <= minute < self.end_minute

    def within(self, outer: "TimeInterval") -> bool:
        """True if this interval lies entirely inside ``outer``."""
        return outer.start_minute <= self.start_minute and self.end_minute <= outer.end_minute

    def __str__(self) -> str:
        return f"{self.start.strftime('%H:%M')}-{self.end.strftime('%H:%M')}"


def overlaps(a: TimeInterval, b: TimeInterval) -> bool:
    return a.overlaps(b)


def contains(a: TimeInterval, point: Union[time, str]) -> bool:
    return a.contains(point)
