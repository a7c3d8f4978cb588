from datetime import date, datetime

from fastapi import APIRouter, Depends, Path, Query, status
from pydantic import BaseModel, ConfigDict, Field, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from flexify.auth.dependencies import get_current_principal, require_roles
from flexify.auth.principal import AuthenticatedPrincipal
from flexify.database import get_db
from flexify.errors import InvalidInputError, database_unavailable
from flexify.models.availability import TrainerAvailability
from flexify.models.booking import Booking
from flexify.models.user import Role
from flexify.scheduling import availability as availability_ledger
from flexify.scheduling import bookings as booking_ledger
from flexify.scheduling.conflicts import describe_slot_list_problem
from flexify.scheduling.projection import TrainerDayAvailability, browse_trainers, summarize_bookings
from flexify.scheduling.slots import TimeSlot
from flexify.schemas import MAX_DATABASE_ID, ApiResponse, UserProfileResponse

router = APIRouter(tags=['schedule'])

require_trainer = require_roles(Role.TRAINER)
require_member = require_roles(Role.MEMBER)


def _validate_slots(value: list[TimeSlot]) -> list[TimeSlot]:
    problem = describe_slot_list_problem(value)
    if problem:
        raise ValueError(problem)
    return value


class CreateAvailabilityRequest(BaseModel):
    date: date
    slots: list[TimeSlot]

    @field_validator('slots')
    @classmethod
    def validate_slots(cls, value: list[TimeSlot]) -> list[TimeSlot]:
        return _validate_slots(value)


class UpdateAvailabilityRequest(BaseModel):
    slots: list[TimeSlot]

    @field_validator('slots')
    @classmethod
    def validate_slots(cls, value: list[TimeSlot]) -> list[TimeSlot]:
        return _validate_slots(value)


class BookSessionRequest(BaseModel):
    trainer_id: int = Field(ge=1, le=MAX_DATABASE_ID)
    date: date
    slot: TimeSlot


class AvailabilityResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    trainer: UserProfileResponse
    date: date
    slots: list[TimeSlot]
    created_at: datetime | None = None
    updated_at: datetime | None = None


class TrainerAvailabilityResponse(AvailabilityResponse):
    available_slots: list[TimeSlot]


class BookingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    member: UserProfileResponse
    trainer: UserProfileResponse
    date: date
    slot: TimeSlot
    status: str
    created_at: datetime | None = None
    updated_at: datetime | None = None


class AvailabilityData(BaseModel):
    availability: AvailabilityResponse


class AvailabilityListData(BaseModel):
    availability: list[AvailabilityResponse]


class TrainersData(BaseModel):
    trainers: list[UserProfileResponse]
    availability: list[TrainerAvailabilityResponse]


class BookingData(BaseModel):
    booking: BookingResponse


class BookingListData(BaseModel):
    bookings: list[BookingResponse]
    summary: dict[str, int]


def to_availability_response(record: TrainerAvailability) -> AvailabilityResponse:
    return AvailabilityResponse.model_validate(record)


def to_trainer_availability_response(view: TrainerDayAvailability) -> TrainerAvailabilityResponse:
    base = to_availability_response(view.availability)
    return TrainerAvailabilityResponse(**base.model_dump(), available_slots=view.available_slots)


def to_booking_response(booking: Booking) -> BookingResponse:
    return BookingResponse.model_validate(booking)


def to_booking_list(bookings: list[Booking]) -> BookingListData:
    return BookingListData(
        bookings=[to_booking_response(booking) for booking in bookings],
        summary=summarize_bookings(bookings),
    )


@router.get('/my-availability', response_model=ApiResponse[AvailabilityListData])
def get_my_availability(
    principal: AuthenticatedPrincipal = Depends(require_trainer),
    db: Session = Depends(get_db),
):
    try:
        records = availability_ledger.list_trainer_availability(db, principal.user_id)
        return ApiResponse(
            data=AvailabilityListData(availability=[to_availability_response(record) for record in records]),
        )
    except SQLAlchemyError as exc:
        raise database_unavailable('fetching availability') from exc


@router.post(
    '/availability',
    response_model=ApiResponse[AvailabilityData],
    status_code=status.HTTP_201_CREATED,
)
def create_availability(
    data: CreateAvailabilityRequest,
    principal: AuthenticatedPrincipal = Depends(require_trainer),
    db: Session = Depends(get_db),
):
    try:
        record = availability_ledger.create_availability(db, principal.user_id, data.date, data.slots)
        return ApiResponse(
            message='Availability created successfully',
            data=AvailabilityData(availability=to_availability_response(record)),
        )
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable('creating availability') from exc


@router.patch('/availability/{availability_id}', response_model=ApiResponse[AvailabilityData])
def update_availability(
    data: UpdateAvailabilityRequest,
    availability_id: int = Path(ge=1, le=MAX_DATABASE_ID),
    principal: AuthenticatedPrincipal = Depends(require_trainer),
    db: Session = Depends(get_db),
):
    try:
        record = availability_ledger.update_availability(db, availability_id, principal.user_id, data.slots)
        return ApiResponse(
            message='Availability updated successfully',
            data=AvailabilityData(availability=to_availability_response(record)),
        )
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable('updating availability') from exc


@router.delete('/availability/{availability_id}', response_model=ApiResponse[None])
def delete_availability(
    availability_id: int = Path(ge=1, le=MAX_DATABASE_ID),
    principal: AuthenticatedPrincipal = Depends(require_trainer),
    db: Session = Depends(get_db),
):
    try:
        availability_ledger.delete_availability(db, availability_id, principal.user_id)
        return ApiResponse(message='Availability deleted successfully')
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable('deleting availability') from exc


def parse_browse_date(value: str | None) -> date | None:
    """An absent or blank ``date`` query means "browse the upcoming window"."""
    if value is None or not value.strip():
        return None
    try:
        return date.fromisoformat(value.strip())
    except ValueError as exc:
        raise InvalidInputError('date: Input should be a valid date in YYYY-MM-DD format.') from exc


@router.get(
    '/trainers',
    response_model=ApiResponse[TrainersData],
    dependencies=[Depends(get_current_principal)],
)
def get_trainers(
    slot_date: str | None = Query(default=None, alias='date'),
    db: Session = Depends(get_db),
):
    parsed_date = parse_browse_date(slot_date)
    try:
        result = browse_trainers(db, slot_date=parsed_date)
        return ApiResponse(
            data=TrainersData(
                trainers=[UserProfileResponse.model_validate(trainer) for trainer in result.trainers],
                availability=[to_trainer_availability_response(view) for view in result.availability],
            ),
        )
    except SQLAlchemyError as exc:
        raise database_unavailable('fetching trainers') from exc


@router.post('/book', response_model=ApiResponse[BookingData], status_code=status.HTTP_201_CREATED)
def book_session(
    data: BookSessionRequest,
    principal: AuthenticatedPrincipal = Depends(require_member),
    db: Session = Depends(get_db),
):
    try:
        booking = booking_ledger.book_session(db, principal.user_id, data.trainer_id, data.date, data.slot)
        return ApiResponse(
            message='Session booked successfully',
            data=BookingData(booking=to_booking_response(booking)),
        )
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable('booking session') from exc


@router.get('/my-bookings', response_model=ApiResponse[BookingListData])
def get_my_bookings(
    principal: AuthenticatedPrincipal = Depends(require_member),
    db: Session = Depends(get_db),
):
    try:
        return ApiResponse(data=to_booking_list(booking_ledger.list_member_bookings(db, principal.user_id)))
    except SQLAlchemyError as exc:
        raise database_unavailable('fetching bookings') from exc


@router.patch('/bookings/{booking_id}/cancel', response_model=ApiResponse[BookingData])
def cancel_booking(
    booking_id: int = Path(ge=1, le=MAX_DATABASE_ID),
    principal: AuthenticatedPrincipal = Depends(require_member),
    db: Session = Depends(get_db),
):
    try:
        booking = booking_ledger.cancel_booking(db, booking_id, principal.user_id)
        return ApiResponse(
            message='Booking cancelled successfully',
            data=BookingData(booking=to_booking_response(booking)),
        )
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable('cancelling booking') from exc


@router.get('/trainer-bookings', response_model=ApiResponse[BookingListData])
def get_trainer_bookings(
    principal: AuthenticatedPrincipal = Depends(require_trainer),
    db: Session = Depends(get_db),
):
    try:
        return ApiResponse(data=to_booking_list(booking_ledger.list_trainer_bookings(db, principal.user_id)))
    except SQLAlchemyError as exc:
        raise database_unavailable('fetching trainer bookings') from exc
