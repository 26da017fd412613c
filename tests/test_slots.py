from datetime import date, time

import pytest

from models import AppointmentStatus, BookedInterval, TimeInterval
from scheduler.resolver import NoSchedule, Unavailable, Working
from scheduler.slots import generate_for_resolution, generate_slots, merge_blockers

DAY = date(2025, 1, 13)


def iv(start, end) -> TimeInterval:
    return TimeInterval(start=start, end=end)


def booking(start, end, status=AppointmentStatus.SCHEDULED, location_id="loc_main") -> BookedInterval:
    return BookedInterval(
        physician_id="phy_smith", location_id=location_id, date=DAY,
        start_time=start, end_time=end, status=status
    )


def starts(slots):
    return [s.start.strftime("%H:%M") for s in slots]


@pytest.mark.unit
class TestGenerateSlots:

    def test_full_day_with_lunch(self):
        slots = generate_slots(iv("08:00", "17:00"), 30, lunch=iv("12:00", "13:00"))

        assert starts(slots) == [
            "08:00", "08:30", "09:00", "09:30", "10:00", "10:30", "11:00", "11:30",
            "13:00", "13:30", "14:00", "14:30", "15:00", "15:30", "16:00", "16:30",
        ]
        assert "12:00" not in starts(slots)
        assert "12:30" not in starts(slots)
        assert slots[-1].end == time(17, 0)

    def test_booking_removes_its_slot(self):
        slots = generate_slots(iv("09:00", "10:00"), 30, bookings=[booking("09:30", "10:00")])
        assert [str(s) for s in slots] == ["09:00-09:30"]

    def test_no_partial_trailing_slot(self):
        slots = generate_slots(iv("09:00", "10:45"), 30)
        assert starts(slots) == ["09:00", "09:30", "10:00"]

    def test_blocked_candidate_is_skipped_whole(self):
        slots = generate_slots(iv("09:00", "11:00"), 30, breaks=[iv("10:15", "10:30")])
        assert starts(slots) == ["09:00", "09:30", "10:30"]

    def test_off_grid_booking_blocks_only_its_slot(self):
        slots = generate_slots(iv("09:00", "10:30"), 30, bookings=[booking("09:10", "09:20")])
        assert starts(slots) == ["09:30", "10:00"]

    def test_booking_spanning_several_slots(self):
        slots = generate_slots(iv("09:00", "11:00"), 30, bookings=[booking("09:15", "10:15")])
        assert starts(slots) == ["10:30"]

    @pytest.mark.parametrize("status", [AppointmentStatus.CANCELLED, AppointmentStatus.NO_SHOW])
    def test_freed_bookings_do_not_block(self, status):
        slots = generate_slots(iv("09:00", "10:00"), 30, bookings=[booking("09:00", "09:30", status=status)])
        assert starts(slots) == ["09:00", "09:30"]

    def test_slot_longer_than_day_yields_nothing(self):
        assert generate_slots(iv("09:00", "09:45"), 60) == []

    def test_rejects_non_positive_duration(self):
        with pytest.raises(ValueError):
            generate_slots(iv("09:00", "10:00"), 0)

    def test_slots_are_ordered_disjoint_and_exact(self):
        hours = iv("07:00", "15:00")
        lunch = iv("12:00", "13:00")
        busy = [booking("08:00", "08:20"), booking("10:45", "11:15"), booking("13:00", "13:30")]
        slots = generate_slots(hours, 20, lunch=lunch, breaks=[iv("09:40", "10:00")], bookings=busy)

        assert slots
        for slot in slots:
            assert slot.duration_minutes == 20
            assert slot.interval.within(hours)
            assert not slot.interval.overlaps(lunch)
            assert all(not slot.interval.overlaps(b.interval) for b in busy)
        for first, second in zip(slots, slots[1:]):
            assert first.end <= second.start

    def test_adjacent_blockers_merge(self):
        merged = merge_blockers([iv("12:30", "13:00"), iv("12:00", "12:30"), iv("14:00", "14:10")])
        assert [str(m) for m in merged] == ["12:00-13:00", "14:00-14:10"]


@pytest.mark.unit
class TestGenerateForResolution:

    def test_closed_or_unscheduled_days_yield_nothing(self):
        assert generate_for_resolution(NoSchedule("loc_main")) == []
        assert generate_for_resolution(Unavailable("loc_main", reason="Vacation")) == []

    def test_bookings_at_other_locations_block_too(self):
        working = Working(location_id="loc_main", hours=iv("09:00", "10:00"), slot_duration_minutes=30)
        slots = generate_for_resolution(working, [booking("09:00", "09:30", location_id="loc_north")])
        assert starts(slots) == ["09:30"]

    def test_explicit_duration_overrides_period(self):
        working = Working(location_id="loc_main", hours=iv("09:00", "10:00"), slot_duration_minutes=30)
        assert len(generate_for_resolution(working, slot_duration=15)) == 4
