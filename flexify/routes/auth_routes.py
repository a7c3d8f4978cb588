import logging
import re

from fastapi import APIRouter, Depends
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from flexify.auth.dependencies import get_current_principal
from flexify.auth.principal import AuthenticatedPrincipal
from flexify.database import get_db
from flexify.errors import ConflictError, InvalidInputError, NotFoundError, database_unavailable
from flexify.models.user import User
from flexify.schemas import ApiResponse, UserProfileResponse

router = APIRouter(tags=['auth'])

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r'^[\w.+-]+@[\w-]+(\.[\w-]+)*\.[A-Za-z]{2,}$')
EMAIL_TAKEN_MESSAGE = 'Email is already in use.'


class MeData(BaseModel):
    user: UserProfileResponse
    role: str


class UpdateProfileRequest(BaseModel):
    name: str | None = None
    email: str | None = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = ' '.join(value.split())
        if len(normalized) < 2:
            raise ValueError('Name must be at least 2 characters.')
        if len(normalized) > 50:
            raise ValueError('Name must not exceed 50 characters.')
        return normalized

    @field_validator('email')
    @classmethod
    def validate_email(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = value.strip().lower()
        if not EMAIL_PATTERN.match(normalized):
            raise ValueError('Please provide a valid email.')
        return normalized


def _email_taken(db: Session, email: str, exclude_id: int) -> bool:
    return db.query(User.id).filter(User.email == email, User.id != exclude_id).first() is not None


def _me_data(user: User) -> MeData:
    return MeData(user=UserProfileResponse.model_validate(user), role=user.role)


@router.get("/me", response_model=ApiResponse[MeData])
def me(
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    try:
        user = db.query(User).filter(User.id == principal.user_id).first()
    except SQLAlchemyError as exc:
        raise database_unavailable("fetching profile") from exc
    if user is None:
        raise NotFoundError("User not found.")
    return ApiResponse(data=_me_data(user))


@router.patch("/me", response_model=ApiResponse[MeData])
def update_me(
    data: UpdateProfileRequest,
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    changes = data.model_dump(exclude_none=True)
    if not changes:
        raise InvalidInputError("No valid fields provided for update.")

    try:
        user = db.query(User).filter(User.id == principal.user_id).first()
        if user is None:
            raise NotFoundError("User not found.")

        if "email" in changes and _email_taken(db, changes["email"], exclude_id=user.id):
            raise ConflictError(EMAIL_TAKEN_MESSAGE)

        for field, value in changes.items():
            setattr(user, field, value)
        try:
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            raise ConflictError(EMAIL_TAKEN_MESSAGE) from exc
        db.refresh(user)

        logger.info("User %s updated profile fields %s", user.id, sorted(changes))
        return ApiResponse(message="Profile updated successfully", data=_me_data(user))
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable("updating profile") from exc
