from datetime import time

import pytest

from models import Appointment, AvailabilityException, BookingRequest, ExceptionType
from scheduler.availability import AvailabilityAggregator
from scheduler.booking import ConflictGuard
from tests.helpers import MONDAY, SUNDAY, TUESDAY, WEDNESDAY, working_period


@pytest.fixture
def aggregator(repo) -> AvailabilityAggregator:
    return AvailabilityAggregator(repo)


def starts(slots):
    return [s.start.strftime("%H:%M") for s in slots]


@pytest.mark.unit
class TestGetAvailability:

    def test_single_location_day(self, aggregator):
        result = aggregator.get_availability("phy_smith", MONDAY)

        assert result.available is True
        assert result.physician_id == "phy_smith"
        assert result.date == MONDAY
        assert [r.location_id for r in result.locations] == ["loc_main"]

        report = result.locations[0]
        assert report.location_name == "Metro General Hospital"
        assert len(report.slots) == 16
        assert starts(report.slots)[7:9] == ["11:30", "13:00"]

    def test_unavailable_exception_closes_the_location(self, repo, aggregator):
        repo.add_exception(AvailabilityException(
            id="exc_vacation", physician_id="phy_smith", location_id="loc_main",
            exception_date=MONDAY, exception_type=ExceptionType.UNAVAILABLE, reason="Vacation"
        ))

        result = aggregator.get_availability("phy_smith", MONDAY, "loc_main")

        assert result.available is False
        assert len(result.locations) == 1
        assert result.locations[0].slots == []
        assert result.locations[0].reason == "Vacation"

    def test_no_schedule_anywhere_is_not_an_error(self, aggregator):
        result = aggregator.get_availability("phy_smith", SUNDAY)
        assert result.available is False
        assert result.locations == []

    def test_location_filter_without_schedule(self, aggregator):
        result = aggregator.get_availability("phy_smith", MONDAY, "loc_north")
        assert result.available is False
        assert result.locations == []

    def test_reports_every_location_worked_that_day(self, aggregator):
        result = aggregator.get_availability("phy_smith", WEDNESDAY)

        assert result.available is True
        by_location = {r.location_id: r for r in result.locations}
        assert set(by_location) == {"loc_main", "loc_north"}
        assert starts(by_location["loc_main"].slots)[0] == "08:00"
        assert by_location["loc_main"].slots[-1].end == time(12, 0)
        assert starts(by_location["loc_north"].slots)[0] == "13:00"
        assert by_location["loc_north"].location_name == "North Side Clinic"

    def test_location_filter_limits_the_report(self, aggregator):
        result = aggregator.get_availability("phy_smith", WEDNESDAY, "loc_north")
        assert [r.location_id for r in result.locations] == ["loc_north"]

    def test_modified_hours_carry_their_reason(self, repo, aggregator):
        repo.add_exception(AvailabilityException(
            id="exc_short", physician_id="phy_adams", location_id="loc_main",
            exception_date=MONDAY, exception_type=ExceptionType.MODIFIED_HOURS,
            start_time="10:00", end_time="11:00", reason="Training"
        ))

        report = aggregator.get_availability("phy_adams", MONDAY).locations[0]
        assert starts(report.slots) == ["10:00", "10:30"]
        assert report.reason == "Training"

    def test_relocation_reports_both_sides(self, repo, aggregator):
        repo.add_exception(AvailabilityException(
            id="exc_move", physician_id="phy_wilson", location_id="loc_main",
            exception_date=TUESDAY, exception_type=ExceptionType.LOCATION_CHANGE,
            alternate_location_id="loc_west", reason="Covering West End"
        ))

        result = aggregator.get_availability("phy_wilson", TUESDAY)
        by_location = {r.location_id: r for r in result.locations}

        assert by_location["loc_main"].available is False
        assert by_location["loc_main"].relocated_to == "loc_west"
        assert by_location["loc_west"].available is True
        assert starts(by_location["loc_west"].slots)[0] == "10:00"
        assert result.available is True

    def test_fully_booked_day(self, repo, aggregator):
        for start, end in [("09:00", "10:00"), ("10:00", "11:00"), ("11:00", "12:00")]:
            with repo.transaction() as tx:
                tx.insert_appointment(_appointment("phy_adams", "loc_main", start, end))

        result = aggregator.get_availability("phy_adams", MONDAY)
        assert result.available is False
        assert result.locations[0].slots == []
        assert result.locations[0].reason is None

    def test_bookings_elsewhere_do_not_leak_across_locations(self, repo, aggregator):
        with repo.transaction() as tx:
            tx.insert_appointment(_appointment("phy_smith", "loc_main", "08:00", "08:30", day=WEDNESDAY))

        result = aggregator.get_availability("phy_smith", WEDNESDAY)
        by_location = {r.location_id: r for r in result.locations}
        assert "08:00" not in starts(by_location["loc_main"].slots)
        assert len(by_location["loc_north"].slots) == 8

    def test_booking_at_one_location_blocks_overlapping_hours_at_another(self, repo, aggregator):
        repo.add_working_period(working_period("wp_smith_north_mon", "phy_smith", "loc_north", 1, "08:00", "10:00"))
        with repo.transaction() as tx:
            tx.insert_appointment(_appointment("phy_smith", "loc_main", "09:00", "09:30"))

        north = aggregator.get_availability("phy_smith", MONDAY, "loc_north").locations[0]
        assert starts(north.slots) == ["08:00", "08:30", "09:30"]

    def test_every_offered_slot_can_be_reserved(self, repo, aggregator):
        repo.add_working_period(working_period("wp_smith_north_mon", "phy_smith", "loc_north", 1, "08:00", "10:00"))
        guard = ConflictGuard(repo)
        guard.reserve(_request("loc_main", "09:00", "09:30"))

        for report in aggregator.get_availability("phy_smith", MONDAY).locations:
            for slot in report.slots:
                with repo.transaction() as tx:
                    assert tx.find_conflicts("phy_smith", report.location_id, MONDAY, slot.start, slot.end) == []

        offered = aggregator.get_availability("phy_smith", MONDAY, "loc_north").locations[0].slots
        for slot in offered:
            guard.reserve(_request("loc_north", slot.start, slot.end))


def _appointment(physician_id, location_id, start, end, day=MONDAY):
    return Appointment(
        patient_id="pat_test", physician_id=physician_id, location_id=location_id,
        appointment_date=day, start_time=start, end_time=end
    )


def _request(location_id, start, end):
    return BookingRequest(
        patient_id="pat_test", physician_id="phy_smith", location_id=location_id,
        appointment_date=MONDAY, start_time=start, end_time=end
    )
