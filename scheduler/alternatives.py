"""
Alternative-Slot Search.

When a requested slot is gone, offer other bookable options: same specialty,
any physician (optionally only at a preferred location), over a rolling
window of days starting today.

The enumeration is greedy on purpose. Candidates are walked in alphabetical
order by physician name and days in calendar order; the search stops as soon
as the cap is reached. It returns *something* quickly rather than the
globally soonest slot.
"""

import logging
import threading
import time
from datetime import date as date_type, timedelta
from typing import List, Optional

from models import AlternativeOption

from .availability import AvailabilityAggregator
from .config import SchedulerSettings, get_settings
from .errors import AppointmentNotFound, PhysicianNotFound
from .repository import PhysicianDirectory, SchedulingRepository

logger = logging.getLogger(__name__)


class AlternativeSlotSearch:
    """
    Read-only search; cancelling it at any point is safe.
    """

    def __init__(
        self,
        repository: SchedulingRepository,
        directory: PhysicianDirectory,
        aggregator: Optional[AvailabilityAggregator] = None,
        settings: Optional[SchedulerSettings] = None
    ):
        self.repository = repository
        self.directory = directory
        self.aggregator = aggregator or AvailabilityAggregator(repository)
        self.settings = settings or get_settings()

    def find_alternatives(
        self,
        reference_appointment_id: str,
        preferred_location_id: Optional[str] = None,
        window_days: Optional[int] = None,
        today: Optional[date_type] = None,
        cancel_event: Optional[threading.Event] = None,
        timeout_seconds: Optional[float] = None
    ) -> List[AlternativeOption]:
        appointment = self.repository.get_appointment(reference_appointment_id)
        if appointment is None:
            raise AppointmentNotFound(reference_appointment_id)

        physician = self.repository.get_physician(appointment.physician_id)
        if physician is None:
            raise PhysicianNotFound(appointment.physician_id)

        window = window_days if window_days is not None else self.settings.ALTERNATIVES_WINDOW_DAYS
        limit = self.settings.ALTERNATIVES_LIMIT
        per_option = self.settings.ALTERNATIVE_SLOTS_PER_OPTION
        start_date = today or date_type.today()

        timeout = timeout_seconds if timeout_seconds is not None else self.settings.ALTERNATIVES_TIMEOUT_SECONDS
        deadline = time.monotonic() + timeout if timeout is not None else None

        candidates = self.directory.list_physicians_by_specialty(physician.specialty, preferred_location_id)
        logger.info(
            f"Searching alternatives for {reference_appointment_id}: specialty={physician.specialty}, "
            f"{len(candidates)} candidate pairings, {window} days"
        )

        alternatives: List[AlternativeOption] = []
        for candidate, location in candidates:
            for offset in range(window):
                if self._should_stop(cancel_event, deadline):
                    logger.warning(
                        f"Alternative search for {reference_appointment_id} stopped early "
                        f"with {len(alternatives)} results"
                    )
                    return alternatives

                check_date = start_date + timedelta(days=offset)
                if not self.directory.has_location_assignment(candidate.id, location.id, check_date):
                    continue
                result = self.aggregator.get_availability(candidate.id, check_date, location.id)
                slots = result.slots_at(location.id)
                if not slots:
                    continue

                alternatives.append(AlternativeOption(
                    physician_id=candidate.id,
                    physician_name=candidate.full_name,
                    specialty=candidate.specialty,
                    location_id=location.id,
                    location_name=location.name,
                    date=check_date,
                    available_slots=slots[:per_option]
                ))
                if len(alternatives) >= limit:
                    break
            if len(alternatives) >= limit:
                break

        logger.info(f"Found {len(alternatives)} alternatives for {reference_appointment_id}")
        return alternatives

    @staticmethod
    def _should_stop(cancel_event: Optional[threading.Event], deadline: Optional[float]) -> bool:
        if cancel_event is not None and cancel_event.is_set():
            return True
        return deadline is not None and time.monotonic() >= deadline
