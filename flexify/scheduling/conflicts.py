"""Consistency checks shared by the availability and booking ledgers."""

from datetime import date, datetime, time, timedelta

from sqlalchemy.orm import Session

from flexify.errors import InvalidInputError, TooLateError
from flexify.models.booking import Booking, BookingStatus
from flexify.scheduling.slots import TimeSlot


def day_start(slot_date: date) -> datetime:
    return datetime.combine(slot_date, time.min)


def is_past_date(slot_date: date, now: datetime) -> bool:
    # Dates are compared at midnight, so "today" already counts as past.
    return day_start(slot_date) < now


def ensure_future_date(slot_date: date, now: datetime, detail: str) -> None:
    if is_past_date(slot_date, now):
        raise InvalidInputError(detail)


def find_overlapping_pair(slots: list[TimeSlot]) -> tuple[TimeSlot, TimeSlot] | None:
    for index, first in enumerate(slots):
        for second in slots[index + 1:]:
            if first.overlaps(second):
                return first, second
    return None


def describe_slot_list_problem(slots: list[TimeSlot]) -> str | None:
    if not slots:
        return 'At least one time slot is required.'

    overlapping = find_overlapping_pair(slots)
    if overlapping:
        first, second = overlapping
        return (
            f'Time slots {first.start}-{first.end} and '
            f'{second.start}-{second.end} overlap.'
        )

    return None


def validate_slot_list(slots: list[TimeSlot]) -> list[TimeSlot]:
    problem = describe_slot_list_problem(slots)
    if problem:
        raise InvalidInputError(problem)
    return slots


def active_bookings_for_day(db: Session, trainer_id: int, slot_date: date) -> list[Booking]:
    return db.query(Booking).filter(
        Booking.trainer_id == trainer_id,
        Booking.date == slot_date,
        Booking.status == BookingStatus.BOOKED.value,
    ).all()


def booked_slots(bookings: list[Booking]) -> set[TimeSlot]:
    return {
        TimeSlot(start=booking.slot_start, end=booking.slot_end)
        for booking in bookings
        if booking.status == BookingStatus.BOOKED.value
    }


def removed_booked_slots(booked: set[TimeSlot], new_slots: list[TimeSlot]) -> list[TimeSlot]:
    """Booked slots that would disappear if the day's slots became ``new_slots``."""
    kept = set(new_slots)
    return sorted((slot for slot in booked if slot not in kept), key=lambda slot: (slot.start, slot.end))


def ensure_cancellation_lead_time(booking: Booking, now: datetime, lead_hours: int) -> None:
    # Lead time is measured to midnight of the booking date, not the slot start.
    if day_start(booking.date) - now < timedelta(hours=lead_hours):
        raise TooLateError(f'Bookings can only be cancelled at least {lead_hours} hours in advance.')
