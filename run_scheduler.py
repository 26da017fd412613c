"""
Main Execution Script for the Clinic Slot Scheduler.
Loads the sample network, prints a week of availability, books a slot,
shows a rejected double-booking and the alternatives offered instead.
"""

import os
import sys
import json
import logging
from datetime import date, timedelta

# Add current directory to path so imports work
sys.path.append(os.path.dirname(os.path.abspath(__file__)))

from generators.data_factory import SAMPLE_COPAY_SCHEDULE, SampleNetworkFactory, next_weekday
from scheduler.config import get_settings
from scheduler.engine import AppointmentScheduler
from scheduler.errors import SchedulingError, SlotConflict
from scheduler.repository import CopaySchedule
from storage.database import create_engine_from_settings, create_session_factory, init_db
from storage.memory import InMemoryRepository
from storage.sql import SqlRepository

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=settings.LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[logging.StreamHandler()]
)
logger = logging.getLogger("Main")

# --- CONFIGURATION ---
USE_DATABASE = False  # True: persist through SQLAlchemy at SCHEDULER_DATABASE_URL
REPORT_DAYS = 7
EXPORT_FILENAME = "availability_report.json"
# ---------------------


def build_repository():
    if not USE_DATABASE:
        return InMemoryRepository()
    engine = create_engine_from_settings(settings)
    init_db(engine)
    return SqlRepository(create_session_factory(engine))


def export_availability(results, filename: str):
    """Dump availability results so a front end can render them."""
    data = [r.model_dump(mode='json') for r in results]
    with open(filename, 'w') as f:
        json.dump(data, f, indent=2)
    logger.info(f"Exported {len(data)} availability results to {filename}")


def main():
    logger.info("Starting Clinic Slot Scheduler demo...")
    start_date = date.today()

    repository = build_repository()
    factory = SampleNetworkFactory(start_date)
    factory.load_into(repository)

    scheduler = AppointmentScheduler(
        repository,
        copay_estimator=CopaySchedule(settings.COPAY_SCHEDULE or SAMPLE_COPAY_SCHEDULE),
        settings=settings
    )

    # --- PHASE 1: WEEKLY AVAILABILITY ---
    print("\n" + "=" * 50)
    print("WEEKLY AVAILABILITY")
    print("=" * 50)

    results = []
    for physician in factory.generate_physicians():
        print(f"\nDr. {physician.full_name} ({physician.specialty})")
        for offset in range(REPORT_DAYS):
            day = start_date + timedelta(days=offset)
            result = scheduler.get_availability(physician.id, day)
            results.append(result)
            for loc in result.locations:
                if loc.available:
                    first, last = loc.slots[0], loc.slots[-1]
                    summary = f"{len(loc.slots)} slots ({first} .. {last})"
                else:
                    summary = f"closed: {loc.reason}" if loc.reason else "fully booked"
                note = f" [{loc.reason}]" if loc.available and loc.reason else ""
                print(f"  {day.strftime('%a %d %b')}  {(loc.location_name or loc.location_id):<28} {summary}{note}")

    # --- PHASE 2: BOOKING & CONFLICT ---
    friday = next_weekday(start_date, 5)
    print("\n" + "=" * 50)
    print(f"BOOKING Dr. Jones, Metro General, {friday.isoformat()} 09:00")
    print("=" * 50)

    booked = scheduler.reserve_slot("phy_jones", "loc_main", friday, "09:00", "09:30", patient_id="pat_emily")
    print(f"Booked {booked.appointment_number} (copay ${booked.estimated_copay})")

    try:
        scheduler.reserve_slot("phy_jones", "loc_main", friday, "09:00", "09:30", patient_id="pat_robert")
    except SlotConflict as e:
        print(f"Second booking rejected: {e}")

    # --- PHASE 3: ALTERNATIVES ---
    print("\nAlternatives for the rejected patient:")
    try:
        options = scheduler.find_alternatives(booked.id, today=start_date)
    except SchedulingError as e:
        logger.error(f"Alternative search failed: {e}")
        options = []
    for option in options:
        slots = ", ".join(str(s) for s in option.available_slots)
        print(f"  {option.date.isoformat()}  Dr. {option.physician_name} @ {option.location_name}: {slots}")

    export_availability(results, EXPORT_FILENAME)
    print("\nDemo complete.")


if __name__ == "__main__":
    main()
