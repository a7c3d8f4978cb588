import logging
from datetime import date, datetime

from fastapi import APIRouter, Depends, Path, Query, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from flexify.auth.dependencies import require_roles
from flexify.database import get_db
from flexify.errors import ConflictError, InvalidInputError, database_unavailable
from flexify.models.attendance import Attendance
from flexify.models.user import Role
from flexify.routes.user_routes import get_user_or_404
from flexify.schemas import MAX_DATABASE_ID, ApiResponse, UserProfileResponse

router = APIRouter(tags=['attendance'])

logger = logging.getLogger(__name__)

require_staff = require_roles(Role.ADMIN, Role.TRAINER)

ALREADY_CHECKED_IN_MESSAGE = 'User has already checked in today.'


class CheckInRequest(BaseModel):
    user_id: int = Field(ge=1, le=MAX_DATABASE_ID)


class AttendanceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user: UserProfileResponse
    check_in_time: datetime
    date: date


class AttendanceData(BaseModel):
    attendance: AttendanceResponse


class TodayStatus(BaseModel):
    check_in_time: datetime


class AttendanceStatusData(BaseModel):
    user: UserProfileResponse
    today_status: TodayStatus | None = None
    has_checked_in: bool


class AttendanceLogData(BaseModel):
    logs: list[AttendanceResponse]
    total: int


def check_in_user(db: Session, user_id: int, now: datetime | None = None) -> Attendance:
    now = now or datetime.now()
    user = get_user_or_404(db, user_id)

    existing = db.query(Attendance.id).filter(
        Attendance.user_id == user.id,
        Attendance.date == now.date(),
    ).first()
    if existing:
        raise ConflictError(ALREADY_CHECKED_IN_MESSAGE)

    attendance = Attendance(user_id=user.id, check_in_time=now, date=now.date())
    db.add(attendance)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError(ALREADY_CHECKED_IN_MESSAGE) from exc
    db.refresh(attendance)

    logger.info('User %s checked in (attendance %s)', user.id, attendance.id)
    return attendance


@router.post('/checkin', response_model=ApiResponse[AttendanceData], status_code=status.HTTP_201_CREATED)
def check_in(data: CheckInRequest, db: Session = Depends(get_db)):
    try:
        attendance = check_in_user(db, data.user_id)
        return ApiResponse(
            message=f'{attendance.user.name} checked in successfully',
            data=AttendanceData(attendance=AttendanceResponse.model_validate(attendance)),
        )
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable('checking in') from exc


@router.get('/status/{user_id}', response_model=ApiResponse[AttendanceStatusData])
def get_attendance_status(
    user_id: int = Path(ge=1, le=MAX_DATABASE_ID),
    db: Session = Depends(get_db),
):
    try:
        user = get_user_or_404(db, user_id)
        today = db.query(Attendance).filter(
            Attendance.user_id == user.id,
            Attendance.date == date.today(),
        ).first()

        return ApiResponse(
            data=AttendanceStatusData(
                user=UserProfileResponse.model_validate(user),
                today_status=TodayStatus(check_in_time=today.check_in_time) if today else None,
                has_checked_in=today is not None,
            ),
        )
    except SQLAlchemyError as exc:
        raise database_unavailable('fetching attendance status') from exc


@router.get(
    '/logs',
    response_model=ApiResponse[AttendanceLogData],
    dependencies=[Depends(require_staff)],
)
def get_attendance_logs(
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    user_id: int | None = Query(default=None, ge=1, le=MAX_DATABASE_ID),
    db: Session = Depends(get_db),
):
    if start_date and end_date and start_date > end_date:
        raise InvalidInputError('start_date must not be after end_date.')

    try:
        query = db.query(Attendance)
        if start_date:
            query = query.filter(Attendance.date >= start_date)
        if end_date:
            query = query.filter(Attendance.date <= end_date)
        if user_id is not None:
            query = query.filter(Attendance.user_id == user_id)

        logs = query.order_by(Attendance.date.desc(), Attendance.check_in_time.desc()).all()
        return ApiResponse(
            data=AttendanceLogData(
                logs=[AttendanceResponse.model_validate(log) for log in logs],
                total=len(logs),
            ),
        )
    except SQLAlchemyError as exc:
        raise database_unavailable('fetching attendance logs') from exc
