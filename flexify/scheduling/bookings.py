"""Booking ledger: members reserve trainer slots and cancel them."""

import logging
from datetime import date, datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from flexify.core import config
from flexify.errors import ConflictError, InvalidInputError, InvalidStateError, NotFoundError
from flexify.models.availability import TrainerAvailability
from flexify.models.booking import Booking, BookingStatus
from flexify.models.user import Role, User
from flexify.scheduling.conflicts import ensure_cancellation_lead_time, ensure_future_date
from flexify.scheduling.slots import TimeSlot, load_slots

logger = logging.getLogger(__name__)

SLOT_TAKEN_MESSAGE = 'This time slot is already booked.'

ALLOWED_TRANSITIONS = {
    BookingStatus.BOOKED: {BookingStatus.CANCELLED, BookingStatus.COMPLETED},
    BookingStatus.CANCELLED: set(),
    BookingStatus.COMPLETED: set(),
}


def transition_status(booking: Booking, new_status: BookingStatus) -> Booking:
    current = BookingStatus(booking.status)
    if new_status not in ALLOWED_TRANSITIONS[current]:
        raise InvalidStateError(f'Cannot move a booking from {current.value} to {new_status.value}.')

    booking.status = new_status.value
    return booking


def book_session(
    db: Session,
    member_id: int,
    trainer_id: int,
    slot_date: date,
    slot: TimeSlot,
    now: datetime | None = None,
) -> Booking:
    now = now or datetime.now()

    trainer = db.query(User).filter(
        User.id == trainer_id,
        User.role == Role.TRAINER.value,
    ).first()
    if trainer is None:
        raise NotFoundError('Trainer not found.')

    ensure_future_date(slot_date, now, 'Cannot book sessions for past dates.')

    availability = db.query(TrainerAvailability).filter(
        TrainerAvailability.trainer_id == trainer_id,
        TrainerAvailability.date == slot_date,
    ).with_for_update(of=TrainerAvailability).first()
    if availability is None:
        raise NotFoundError('No availability found for this trainer on the selected date.')

    if slot not in load_slots(availability.slots):
        raise InvalidInputError('Selected time slot is not available.')

    existing = db.query(Booking).filter(
        Booking.trainer_id == trainer_id,
        Booking.date == slot_date,
        Booking.slot_start == slot.start,
        Booking.slot_end == slot.end,
        Booking.status == BookingStatus.BOOKED.value,
    ).first()
    if existing is not None:
        if existing.member_id == member_id:
            raise ConflictError('You have already booked this slot.')
        raise ConflictError(SLOT_TAKEN_MESSAGE)

    booking = Booking(
        member_id=member_id,
        trainer_id=trainer_id,
        date=slot_date,
        slot_start=slot.start,
        slot_end=slot.end,
        status=BookingStatus.BOOKED.value,
    )
    db.add(booking)

    try:
        db.commit()
    except IntegrityError as exc:
        # The partial unique index caught a concurrent booking of the same slot.
        db.rollback()
        raise ConflictError(SLOT_TAKEN_MESSAGE) from exc

    db.refresh(booking)
    logger.info(
        'Member %s booked trainer %s on %s %s-%s (booking %s)',
        member_id, trainer_id, slot_date, slot.start, slot.end, booking.id,
    )
    return booking


def cancel_booking(
    db: Session,
    booking_id: int,
    member_id: int,
    now: datetime | None = None,
    lead_hours: int | None = None,
) -> Booking:
    now = now or datetime.now()
    lead_hours = config.CANCELLATION_LEAD_HOURS if lead_hours is None else lead_hours

    booking = db.query(Booking).filter(
        Booking.id == booking_id,
        Booking.member_id == member_id,
    ).first()
    if booking is None:
        raise NotFoundError('Booking not found.')

    if booking.status != BookingStatus.BOOKED.value:
        raise InvalidStateError('Only active bookings can be cancelled.')

    ensure_cancellation_lead_time(booking, now, lead_hours)

    transition_status(booking, BookingStatus.CANCELLED)
    db.commit()
    db.refresh(booking)

    logger.info('Member %s cancelled booking %s', member_id, booking.id)
    return booking


def list_member_bookings(db: Session, member_id: int) -> list[Booking]:
    return db.query(Booking).filter(
        Booking.member_id == member_id,
    ).order_by(Booking.date.asc(), Booking.slot_start.asc()).all()


def list_trainer_bookings(db: Session, trainer_id: int) -> list[Booking]:
    return db.query(Booking).filter(
        Booking.trainer_id == trainer_id,
    ).order_by(Booking.date.asc(), Booking.slot_start.asc()).all()
