"""
Schedule data models for the Clinic Slot Scheduler.

This module defines the 'Output' of the scheduling engine:
bookable slots and the availability reports built from them.
These are computed per request and never persisted.
"""

from typing import List, Optional
from pydantic import BaseModel, Field, ConfigDict
from datetime import date as date_type, time as time_type

from .interval import TimeInterval


class Slot(BaseModel):
    """A fixed-duration, bookable time window. Immutable value type."""
    start: time_type
    end: time_type
    available: bool = Field(default=True)

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_interval(cls, interval: TimeInterval, available: bool = True) -> "Slot":
        return cls(start=interval.start, end=interval.end, available=available)

    @property
    def interval(self) -> TimeInterval:
        return TimeInterval(start=self.start, end=self.end)

    @property
    def duration_minutes(self) -> int:
        return self.interval.duration_minutes

    def __str__(self) -> str:
        return f"{self.start.strftime('%H:%M')}-{self.end.strftime('%H:%M')}"


class LocationAvailabilityReport(BaseModel):
    """Free slots for one physician at one location on one date."""
    location_id: str
    location_name: Optional[str] = Field(default=None)
    available: bool = Field(description="True if at least one slot is free")
    slots: List[Slot] = Field(default_factory=list)
    reason: Optional[str] = Field(default=None, description="Why the location is closed (from an exception)")
    relocated_to: Optional[str] = Field(default=None, description="Where the physician works instead today")


class PhysicianAvailabilityResult(BaseModel):
    """Per-location availability for a physician on a date."""
    physician_id: str
    date: date_type
    available: bool = Field(description="True if any location has a free slot")
    locations: List[LocationAvailabilityReport] = Field(default_factory=list)

    def slots_at(self, location_id: str) -> List[Slot]:
        for report in self.locations:
            if report.location_id == location_id:
                return list(report.slots)
        return []

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "physician_id": "phy_smith",
            "date": "2025-01-13",
            "available": True,
            "locations": [
                {
                    "location_id": "loc_main",
                    "location_name": "Metro General Hospital",
                    "available": True,
                    "slots": [{"start": "08:00:00", "end": "08:30:00", "available": True}]
                }
            ]
        }
    })


class AlternativeOption(BaseModel):
    """A suggested booking when the requested slot is not available."""
    physician_id: str
    physician_name: str
    specialty: str
    location_id: str
    location_name: Optional[str] = Field(default=None)
    date: date_type
    available_slots: List[Slot] = Field(default_factory=list, description="First few free slots that day")
