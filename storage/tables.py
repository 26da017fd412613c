"""
SQLAlchemy table definitions for the Clinic Slot Scheduler.

Mirrors the clinic schema: locations, physicians, their assignments,
recurring weekly schedules, date-specific exceptions and appointments.
"""

from datetime import date, datetime, time
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    SmallInteger,
    String,
    Text,
    Time,
    UniqueConstraint,
    func,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from models import AppointmentStatus, AppointmentType, ExceptionType, LocationType, VisitType

# Cancelled and no-show rows never block a slot
OCCUPYING_ROW_CLAUSE = text("status NOT IN ('cancelled', 'no_show')")


def _enum(enum_cls):
    """Store the enum's value (not its name) in a plain VARCHAR column."""
    return Enum(
        enum_cls,
        native_enum=False,
        length=32,
        values_callable=lambda members: [m.value for m in members],
        validate_strings=True,
    )


class Base(DeclarativeBase):
    pass


class LocationRow(Base):
    __tablename__ = "locations"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    location_type: Mapped[LocationType] = mapped_column(
        _enum(LocationType), nullable=False, default=LocationType.OUTPATIENT_CLINIC
    )
    city: Mapped[Optional[str]] = mapped_column(String(100))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


class PhysicianRow(Base):
    __tablename__ = "physicians"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    specialty: Mapped[str] = mapped_column(String(100), nullable=False)
    subspecialty: Mapped[Optional[str]] = mapped_column(String(100))
    primary_location_id: Mapped[Optional[str]] = mapped_column(ForeignKey("locations.id"))
    consultation_duration: Mapped[int] = mapped_column(Integer, default=30, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    __table_args__ = (
        Index("idx_physicians_specialty", "specialty", "is_active"),
    )


class PhysicianLocationRow(Base):
    __tablename__ = "physician_locations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    physician_id: Mapped[str] = mapped_column(ForeignKey("physicians.id"), nullable=False)
    location_id: Mapped[str] = mapped_column(ForeignKey("locations.id"), nullable=False)
    is_primary_location: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[Optional[date]] = mapped_column(Date, comment="Inclusive")
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    __table_args__ = (
        UniqueConstraint("physician_id", "location_id", "start_date", name="uq_physician_location_start"),
        Index("idx_physician_locations_location", "location_id", "is_active"),
    )


class WorkingPeriodRow(Base):
    __tablename__ = "physician_location_schedules"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    physician_id: Mapped[str] = mapped_column(ForeignKey("physicians.id"), nullable=False)
    location_id: Mapped[str] = mapped_column(ForeignKey("locations.id"), nullable=False)

    day_of_week: Mapped[int] = mapped_column(
        SmallInteger, nullable=False, comment="0=Sunday, 1=Monday, ... 6=Saturday"
    )
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)
    lunch_start: Mapped[Optional[time]] = mapped_column(Time)
    lunch_end: Mapped[Optional[time]] = mapped_column(Time)
    breaks: Mapped[List[dict]] = mapped_column(JSON, default=list, nullable=False)
    slot_duration_minutes: Mapped[int] = mapped_column(Integer, default=30, nullable=False)

    effective_date: Mapped[date] = mapped_column(Date, nullable=False)
    expiry_date: Mapped[Optional[date]] = mapped_column(Date, comment="Exclusive")
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    __table_args__ = (
        Index("idx_schedules_physician_day", "physician_id", "day_of_week"),
    )


class AvailabilityExceptionRow(Base):
    __tablename__ = "physician_availability_exceptions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    physician_id: Mapped[str] = mapped_column(ForeignKey("physicians.id"), nullable=False)
    location_id: Mapped[Optional[str]] = mapped_column(ForeignKey("locations.id"), comment="NULL = every location")
    exception_date: Mapped[date] = mapped_column(Date, nullable=False)
    exception_type: Mapped[ExceptionType] = mapped_column(_enum(ExceptionType), nullable=False)
    start_time: Mapped[Optional[time]] = mapped_column(Time)
    end_time: Mapped[Optional[time]] = mapped_column(Time)
    reason: Mapped[Optional[str]] = mapped_column(Text)
    alternate_location_id: Mapped[Optional[str]] = mapped_column(ForeignKey("locations.id"))

    __table_args__ = (
        Index("idx_exceptions_physician_date", "physician_id", "exception_date"),
    )


class AppointmentRow(Base):
    __tablename__ = "appointments"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    appointment_number: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)

    patient_id: Mapped[str] = mapped_column(String(64), nullable=False)
    physician_id: Mapped[str] = mapped_column(ForeignKey("physicians.id"), nullable=False)
    location_id: Mapped[str] = mapped_column(ForeignKey("locations.id"), nullable=False)
    appointment_date: Mapped[date] = mapped_column(Date, nullable=False)
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)

    appointment_type: Mapped[AppointmentType] = mapped_column(_enum(AppointmentType), nullable=False)
    visit_type: Mapped[VisitType] = mapped_column(_enum(VisitType), nullable=False)
    status: Mapped[AppointmentStatus] = mapped_column(
        _enum(AppointmentStatus), nullable=False, default=AppointmentStatus.SCHEDULED
    )
    notes: Mapped[Optional[str]] = mapped_column(Text)
    cancellation_reason: Mapped[Optional[str]] = mapped_column(Text)
    estimated_copay: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2))

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now(), nullable=False
    )

    __table_args__ = (
        Index("idx_appointments_physician_date", "physician_id", "appointment_date"),
        Index(
            "uq_appointments_active_slot",
            "physician_id", "appointment_date", "start_time",
            unique=True,
            postgresql_where=OCCUPYING_ROW_CLAUSE,
            sqlite_where=OCCUPYING_ROW_CLAUSE,
        ),
    )
