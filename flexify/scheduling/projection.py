"""Read-side views: open slots per trainer day and booking summaries."""

from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

from sqlalchemy.orm import Session

from flexify.core import config
from flexify.models.availability import TrainerAvailability
from flexify.models.booking import Booking, BookingStatus
from flexify.models.user import Role, User
from flexify.scheduling.slots import TimeSlot, load_slots


@dataclass(frozen=True)
class TrainerDayAvailability:
    availability: TrainerAvailability
    available_slots: list[TimeSlot]


@dataclass(frozen=True)
class TrainerBrowseResult:
    trainers: list[User]
    availability: list[TrainerDayAvailability]


def available_slots(declared: list[TimeSlot], booked: set[TimeSlot]) -> list[TimeSlot]:
    """Declared slots minus booked ones, keeping the declared order."""
    return [slot for slot in declared if slot not in booked]


def browse_window(now: datetime, window_days: int) -> tuple[date, date]:
    """Calendar days whose midnight falls inside ``[now, now + window_days]``."""
    first_day = now.date() if now.time() == time.min else now.date() + timedelta(days=1)
    last_day = (now + timedelta(days=window_days)).date()
    return first_day, last_day


def _booked_slots_by_day(bookings: list[Booking]) -> dict[tuple[int, date], set[TimeSlot]]:
    grouped: dict[tuple[int, date], set[TimeSlot]] = defaultdict(set)
    for booking in bookings:
        grouped[(booking.trainer_id, booking.date)].add(
            TimeSlot(start=booking.slot_start, end=booking.slot_end)
        )
    return grouped


def browse_trainers(
    db: Session,
    slot_date: date | None = None,
    now: datetime | None = None,
    window_days: int | None = None,
) -> TrainerBrowseResult:
    trainers = db.query(User).filter(
        User.role == Role.TRAINER.value,
    ).order_by(User.name.asc()).all()

    availability_query = db.query(TrainerAvailability)
    booking_query = db.query(Booking).filter(Booking.status == BookingStatus.BOOKED.value)

    if slot_date is not None:
        availability_query = availability_query.filter(TrainerAvailability.date == slot_date)
        booking_query = booking_query.filter(Booking.date == slot_date)
    else:
        first_day, last_day = browse_window(
            now or datetime.now(),
            config.BROWSE_WINDOW_DAYS if window_days is None else window_days,
        )
        availability_query = availability_query.filter(
            TrainerAvailability.date >= first_day,
            TrainerAvailability.date <= last_day,
        )
        booking_query = booking_query.filter(
            Booking.date >= first_day,
            Booking.date <= last_day,
        )

    records = availability_query.order_by(
        TrainerAvailability.date.asc(),
        TrainerAvailability.trainer_id.asc(),
    ).all()
    booked_by_day = _booked_slots_by_day(booking_query.all())

    return TrainerBrowseResult(
        trainers=trainers,
        availability=[
            TrainerDayAvailability(
                availability=record,
                available_slots=available_slots(
                    load_slots(record.slots),
                    booked_by_day.get((record.trainer_id, record.date), set()),
                ),
            )
            for record in records
        ],
    )


def summarize_bookings(bookings: list[Booking]) -> dict[str, int]:
    counts = {status.value: 0 for status in BookingStatus}
    for booking in bookings:
        counts[booking.status] = counts.get(booking.status, 0) + 1
    return counts
