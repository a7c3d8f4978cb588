"""Trainer availability ledger: one record per trainer per calendar day."""

import logging
from datetime import date, datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from flexify.errors import ConflictError, NotFoundError
from flexify.models.availability import TrainerAvailability
from flexify.scheduling.conflicts import (
    active_bookings_for_day,
    booked_slots,
    ensure_future_date,
    removed_booked_slots,
    validate_slot_list,
)
from flexify.scheduling.slots import TimeSlot, dump_slots

logger = logging.getLogger(__name__)

DUPLICATE_DAY_MESSAGE = 'Availability already exists for this date.'


def list_trainer_availability(db: Session, trainer_id: int) -> list[TrainerAvailability]:
    return db.query(TrainerAvailability).filter(
        TrainerAvailability.trainer_id == trainer_id,
    ).order_by(TrainerAvailability.date.asc()).all()


def get_owned_availability(
    db: Session,
    availability_id: int,
    trainer_id: int,
    *,
    lock: bool = False,
) -> TrainerAvailability:
    # Scoping the lookup to the caller makes someone else's record look missing.
    query = db.query(TrainerAvailability).filter(
        TrainerAvailability.id == availability_id,
        TrainerAvailability.trainer_id == trainer_id,
    )
    if lock:
        query = query.with_for_update(of=TrainerAvailability)

    availability = query.first()
    if availability is None:
        raise NotFoundError('Availability not found.')
    return availability


def create_availability(
    db: Session,
    trainer_id: int,
    slot_date: date,
    slots: list[TimeSlot],
    now: datetime | None = None,
) -> TrainerAvailability:
    now = now or datetime.now()

    ensure_future_date(slot_date, now, 'Cannot create availability for past dates.')
    validate_slot_list(slots)

    existing = db.query(TrainerAvailability.id).filter(
        TrainerAvailability.trainer_id == trainer_id,
        TrainerAvailability.date == slot_date,
    ).first()
    if existing:
        raise ConflictError(DUPLICATE_DAY_MESSAGE)

    availability = TrainerAvailability(
        trainer_id=trainer_id,
        date=slot_date,
        slots=dump_slots(slots),
    )
    db.add(availability)

    try:
        db.commit()
    except IntegrityError as exc:
        # Another request created the same day first.
        db.rollback()
        raise ConflictError(DUPLICATE_DAY_MESSAGE) from exc

    db.refresh(availability)
    logger.info(
        'Trainer %s opened %d slot(s) on %s (availability %s)',
        trainer_id, len(slots), slot_date, availability.id,
    )
    return availability


def update_availability(
    db: Session,
    availability_id: int,
    trainer_id: int,
    slots: list[TimeSlot],
) -> TrainerAvailability:
    validate_slot_list(slots)

    availability = get_owned_availability(db, availability_id, trainer_id, lock=True)

    booked = booked_slots(active_bookings_for_day(db, trainer_id, availability.date))
    if removed_booked_slots(booked, slots):
        raise ConflictError('Cannot remove slots that have existing bookings.')

    availability.slots = dump_slots(slots)
    db.commit()
    db.refresh(availability)

    logger.info('Trainer %s updated availability %s', trainer_id, availability.id)
    return availability


def delete_availability(db: Session, availability_id: int, trainer_id: int) -> None:
    availability = get_owned_availability(db, availability_id, trainer_id, lock=True)

    # Any active booking on the day blocks the delete, not only bookings on removed slots.
    if active_bookings_for_day(db, trainer_id, availability.date):
        raise ConflictError('Cannot delete availability with existing bookings.')

    db.delete(availability)
    db.commit()

    logger.info('Trainer %s deleted availability %s', trainer_id, availability_id)
