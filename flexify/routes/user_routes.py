import logging

from fastapi import APIRouter, Depends, Path
from pydantic import BaseModel
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from flexify.auth.dependencies import require_roles
from flexify.auth.principal import AuthenticatedPrincipal
from flexify.database import get_db
from flexify.errors import ConflictError, InvalidInputError, NotFoundError, database_unavailable
from flexify.models.attendance import Attendance
from flexify.models.availability import TrainerAvailability
from flexify.models.booking import Booking
from flexify.models.user import Role, User
from flexify.schemas import MAX_DATABASE_ID, ApiResponse, UserAccountResponse

router = APIRouter(tags=['users'])

logger = logging.getLogger(__name__)

require_admin = require_roles(Role.ADMIN)


class UpdateRoleRequest(BaseModel):
    role: Role


class UserData(BaseModel):
    user: UserAccountResponse


class UserListData(BaseModel):
    users: list[UserAccountResponse]


def get_user_or_404(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise NotFoundError('User not found.')
    return user


def has_schedule_history(db: Session, user_id: int) -> bool:
    """Bookings and availability reference users, so those users must stay."""
    booking = db.query(Booking.id).filter(
        or_(Booking.member_id == user_id, Booking.trainer_id == user_id),
    ).first()
    if booking is not None:
        return True
    return db.query(TrainerAvailability.id).filter(TrainerAvailability.trainer_id == user_id).first() is not None


@router.get('', response_model=ApiResponse[UserListData])
def list_users(
    principal: AuthenticatedPrincipal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    try:
        users = db.query(User).order_by(User.name.asc(), User.id.asc()).all()
        return ApiResponse(data=UserListData(users=[UserAccountResponse.model_validate(user) for user in users]))
    except SQLAlchemyError as exc:
        raise database_unavailable('fetching users') from exc


@router.patch('/{user_id}/role', response_model=ApiResponse[UserData])
def update_user_role(
    data: UpdateRoleRequest,
    user_id: int = Path(ge=1, le=MAX_DATABASE_ID),
    principal: AuthenticatedPrincipal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    try:
        user = get_user_or_404(db, user_id)
        previous_role = user.role
        user.role = data.role.value
        db.commit()
        db.refresh(user)

        logger.info(
            'Admin %s changed role of user %s from %s to %s',
            principal.user_id,
            user.id,
            previous_role,
            user.role,
        )
        return ApiResponse(
            message='User role updated successfully',
            data=UserData(user=UserAccountResponse.model_validate(user)),
        )
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable('updating user role') from exc


@router.delete('/{user_id}', response_model=ApiResponse[None])
def delete_user(
    user_id: int = Path(ge=1, le=MAX_DATABASE_ID),
    principal: AuthenticatedPrincipal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    if user_id == principal.user_id:
        raise InvalidInputError('You cannot delete your own account.')

    try:
        user = get_user_or_404(db, user_id)
        if has_schedule_history(db, user.id):
            raise ConflictError('Cannot delete a user with bookings or availability.')

        db.query(Attendance).filter(Attendance.user_id == user.id).delete(synchronize_session=False)
        db.delete(user)
        db.commit()

        logger.info('Admin %s deleted user %s', principal.user_id, user_id)
        return ApiResponse(message='User deleted successfully')
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable('deleting user') from exc
