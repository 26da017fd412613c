import logging
from decimal import Decimal

import pytest
from pydantic import ValidationError

from generators.data_factory import SAMPLE_COPAY_SCHEDULE, SampleNetworkFactory, next_weekday
from models import AppointmentStatus, InvalidTimeFormat
from scheduler.config import SchedulerSettings
from scheduler.engine import AppointmentScheduler
from scheduler.errors import PhysicianNotAtLocation, SlotConflict
from scheduler.repository import CopaySchedule
from storage.memory import InMemoryRepository
from tests.helpers import MONDAY, WEDNESDAY


@pytest.mark.unit
class TestAppointmentScheduler:

    def test_accepts_iso_dates_and_clock_strings(self, scheduler):
        appointment = scheduler.reserve_slot("phy_adams", "loc_main", "2025-01-13", "09:00", "09:30",
                                             patient_id="pat_emily")
        assert appointment.appointment_date == MONDAY

        result = scheduler.get_availability("phy_adams", "2025-01-13")
        assert "09:00" not in [s.start.strftime("%H:%M") for s in result.slots_at("loc_main")]

    def test_malformed_time_is_rejected_before_booking(self, scheduler, repo):
        with pytest.raises(InvalidTimeFormat):
            scheduler.reserve_slot("phy_adams", "loc_main", MONDAY, "9am", "09:30", patient_id="pat_emily")
        assert repo.fetch_booked_intervals("phy_adams", MONDAY) == []

    def test_conflicts_are_logged_and_raised(self, scheduler, caplog):
        scheduler.reserve_slot("phy_adams", "loc_main", MONDAY, "09:00", "09:30", patient_id="pat_emily")

        with caplog.at_level(logging.WARNING, logger="scheduler.engine"):
            with pytest.raises(SlotConflict):
                scheduler.reserve_slot("phy_adams", "loc_main", MONDAY, "09:00", "09:30", patient_id="pat_robert")
        assert "Booking rejected" in caplog.text

    def test_not_at_location_propagates(self, scheduler):
        with pytest.raises(PhysicianNotAtLocation):
            scheduler.reserve_slot("phy_adams", "loc_west", MONDAY, "09:00", "09:30", patient_id="pat_emily")

    def test_reschedule_keeps_unspecified_fields(self, scheduler):
        original = scheduler.reserve_slot("phy_smith", "loc_main", WEDNESDAY, "08:00", "08:30",
                                          patient_id="pat_emily", notes="Annual check")
        moved = scheduler.reschedule(original.id, location_id="loc_north", start_time="13:00", end_time="13:30")

        assert moved.id == original.id
        assert moved.location_id == "loc_north"
        assert moved.appointment_date == WEDNESDAY
        assert moved.patient_id == "pat_emily"
        assert moved.notes == "Annual check"

        north = scheduler.get_availability("phy_smith", WEDNESDAY, "loc_north").slots_at("loc_north")
        main = scheduler.get_availability("phy_smith", WEDNESDAY, "loc_main").slots_at("loc_main")
        assert "13:00" not in [s.start.strftime("%H:%M") for s in north]
        assert "08:00" in [s.start.strftime("%H:%M") for s in main]

    def test_cancel(self, scheduler):
        appointment = scheduler.reserve_slot("phy_adams", "loc_main", MONDAY, "10:00", "10:30",
                                             patient_id="pat_emily")
        cancelled = scheduler.cancel(appointment.id, reason="Feeling better")
        assert cancelled.status == AppointmentStatus.CANCELLED

        slots = scheduler.get_availability("phy_adams", MONDAY).slots_at("loc_main")
        assert "10:00" in [s.start.strftime("%H:%M") for s in slots]

    def test_copay_schedule_from_settings(self, repo):
        settings = SchedulerSettings(_env_file=None, COPAY_SCHEDULE='{"consultation": 45, "default": 20}')
        scheduler = AppointmentScheduler(repo, settings=settings)

        appointment = scheduler.reserve_slot("phy_adams", "loc_main", MONDAY, "09:00", "09:30",
                                             patient_id="pat_emily")
        assert appointment.estimated_copay == Decimal("45")

    def test_requires_a_directory(self, settings):
        class NotADirectory:
            pass

        with pytest.raises(TypeError):
            AppointmentScheduler(NotADirectory(), settings=settings)


@pytest.mark.unit
class TestSettings:

    def test_defaults(self, settings):
        assert settings.ALTERNATIVES_LIMIT == 10
        assert settings.ALTERNATIVES_WINDOW_DAYS == 14
        assert settings.ALTERNATIVE_SLOTS_PER_OPTION == 3
        assert settings.COPAY_SCHEDULE == {}

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("SCHEDULER_ALTERNATIVES_LIMIT", "5")
        monkeypatch.setenv("SCHEDULER_LOG_LEVEL", "debug")
        settings = SchedulerSettings(_env_file=None)
        assert settings.ALTERNATIVES_LIMIT == 5
        assert settings.LOG_LEVEL == "DEBUG"

    def test_rejects_unknown_log_level(self):
        with pytest.raises(ValidationError):
            SchedulerSettings(_env_file=None, LOG_LEVEL="chatty")


@pytest.mark.unit
class TestSampleNetwork:

    @pytest.fixture
    def demo(self, settings):
        repo = InMemoryRepository()
        SampleNetworkFactory(MONDAY).load_into(repo)
        return AppointmentScheduler(repo, copay_estimator=None, settings=settings), repo

    def test_next_weekday(self):
        assert next_weekday(MONDAY, 1) == MONDAY
        assert next_weekday(MONDAY, 0).isoformat() == "2025-01-19"
        assert next_weekday(MONDAY, 5).isoformat() == "2025-01-17"

    def test_weekly_schedules_load(self, demo):
        scheduler, repo = demo
        assert len(repo.locations) == 4
        assert len(repo.physicians) == 3

        friday = next_weekday(MONDAY, 5)
        result = scheduler.get_availability("phy_jones", friday)
        assert [r.location_name for r in result.locations] == ["Metro General Hospital"]
        assert len(result.locations[0].slots) == 14

    def test_sample_exceptions(self, demo):
        scheduler, _ = demo

        smith = scheduler.get_availability("phy_smith", MONDAY)
        assert smith.available is False
        assert smith.locations[0].reason == "Medical conference"

        tuesday = next_weekday(MONDAY, 2)
        wilson = {r.location_id: r for r in scheduler.get_availability("phy_wilson", tuesday).locations}
        assert wilson["loc_main"].relocated_to == "loc_downtown"
        assert wilson["loc_downtown"].available is True

        wednesday = next_weekday(MONDAY, 3)
        jones = scheduler.get_availability("phy_jones", wednesday, "loc_downtown").locations[0]
        assert jones.reason == "Half day"
        assert jones.slots[-1].end.strftime("%H:%M") == "12:00"

    def test_sample_copay_schedule(self, demo, settings):
        _, repo = demo
        scheduler = AppointmentScheduler(repo, copay_estimator=CopaySchedule(SAMPLE_COPAY_SCHEDULE), settings=settings)
        appointment = scheduler.reserve_slot("phy_jones", "loc_west", MONDAY, "07:00", "07:30",
                                             patient_id="pat_emily", appointment_type="follow_up")
        assert appointment.estimated_copay == Decimal("25.00")
