import logging
from datetime import datetime

from fastapi import APIRouter, Depends, Path, status
from pydantic import BaseModel, ConfigDict, Field, field_validator
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from flexify.auth.dependencies import require_roles
from flexify.auth.principal import AuthenticatedPrincipal
from flexify.database import get_db
from flexify.errors import ConflictError, InvalidInputError, NotFoundError, database_unavailable
from flexify.models.membership_plan import MembershipPlan
from flexify.models.user import Role
from flexify.schemas import MAX_DATABASE_ID, ApiResponse

router = APIRouter(tags=['memberships'])

logger = logging.getLogger(__name__)

require_admin = require_roles(Role.ADMIN)

DUPLICATE_PLAN_MESSAGE = 'Membership plan with this name already exists.'


def _normalize_name(value: str | None) -> str | None:
    if value is None:
        return None
    normalized = ' '.join(value.split())
    if len(normalized) < 2:
        raise ValueError('Plan name must be at least 2 characters.')
    if len(normalized) > 50:
        raise ValueError('Plan name must not exceed 50 characters.')
    return normalized


def _normalize_description(value: str | None) -> str | None:
    if value is None:
        return None
    normalized = value.strip()
    if len(normalized) > 500:
        raise ValueError('Description must not exceed 500 characters.')
    return normalized


class CreateMembershipPlanRequest(BaseModel):
    name: str
    duration_in_months: int = Field(ge=1, le=60)
    price: float = Field(ge=0)
    description: str | None = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, value: str) -> str:
        return _normalize_name(value)

    @field_validator('description')
    @classmethod
    def validate_description(cls, value: str | None) -> str | None:
        return _normalize_description(value)


class UpdateMembershipPlanRequest(BaseModel):
    name: str | None = None
    duration_in_months: int | None = Field(default=None, ge=1, le=60)
    price: float | None = Field(default=None, ge=0)
    description: str | None = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, value: str | None) -> str | None:
        return _normalize_name(value)

    @field_validator('description')
    @classmethod
    def validate_description(cls, value: str | None) -> str | None:
        return _normalize_description(value)


class MembershipPlanResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    duration_in_months: int
    price: float
    description: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class MembershipPlanData(BaseModel):
    plan: MembershipPlanResponse


class MembershipPlanListData(BaseModel):
    plans: list[MembershipPlanResponse]


def _name_taken(db: Session, name: str, exclude_id: int | None = None) -> bool:
    query = db.query(MembershipPlan.id).filter(MembershipPlan.name == name)
    if exclude_id is not None:
        query = query.filter(MembershipPlan.id != exclude_id)
    return query.first() is not None


@router.get('', response_model=ApiResponse[MembershipPlanListData])
def list_membership_plans(db: Session = Depends(get_db)):
    try:
        plans = db.query(MembershipPlan).order_by(MembershipPlan.price.asc()).all()
        return ApiResponse(
            data=MembershipPlanListData(plans=[MembershipPlanResponse.model_validate(plan) for plan in plans]),
        )
    except SQLAlchemyError as exc:
        raise database_unavailable('fetching membership plans') from exc


@router.post('', response_model=ApiResponse[MembershipPlanData], status_code=status.HTTP_201_CREATED)
def create_membership_plan(
    data: CreateMembershipPlanRequest,
    principal: AuthenticatedPrincipal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    try:
        if _name_taken(db, data.name):
            raise ConflictError(DUPLICATE_PLAN_MESSAGE)

        plan = MembershipPlan(**data.model_dump())
        db.add(plan)
        try:
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            raise ConflictError(DUPLICATE_PLAN_MESSAGE) from exc
        db.refresh(plan)

        logger.info('Admin %s created membership plan %s', principal.user_id, plan.id)
        return ApiResponse(
            message='Membership plan created successfully',
            data=MembershipPlanData(plan=MembershipPlanResponse.model_validate(plan)),
        )
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable('creating membership plan') from exc


@router.patch('/{plan_id}', response_model=ApiResponse[MembershipPlanData])
def update_membership_plan(
    data: UpdateMembershipPlanRequest,
    plan_id: int = Path(ge=1, le=MAX_DATABASE_ID),
    principal: AuthenticatedPrincipal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    changes = data.model_dump(exclude_unset=True, exclude_none=True)
    if 'description' in data.model_fields_set:
        changes['description'] = data.description
    if not changes:
        raise InvalidInputError('No valid fields provided for update.')

    try:
        plan = db.query(MembershipPlan).filter(MembershipPlan.id == plan_id).first()
        if plan is None:
            raise NotFoundError('Membership plan not found.')

        if 'name' in changes and _name_taken(db, changes['name'], exclude_id=plan_id):
            raise ConflictError(DUPLICATE_PLAN_MESSAGE)

        for field, value in changes.items():
            setattr(plan, field, value)
        try:
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            raise ConflictError(DUPLICATE_PLAN_MESSAGE) from exc
        db.refresh(plan)

        logger.info('Admin %s updated membership plan %s', principal.user_id, plan.id)
        return ApiResponse(
            message='Membership plan updated successfully',
            data=MembershipPlanData(plan=MembershipPlanResponse.model_validate(plan)),
        )
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable('updating membership plan') from exc


@router.delete('/{plan_id}', response_model=ApiResponse[None])
def delete_membership_plan(
    plan_id: int = Path(ge=1, le=MAX_DATABASE_ID),
    principal: AuthenticatedPrincipal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    try:
        plan = db.query(MembershipPlan).filter(MembershipPlan.id == plan_id).first()
        if plan is None:
            raise NotFoundError('Membership plan not found.')

        db.delete(plan)
        db.commit()

        logger.info('Admin %s deleted membership plan %s', principal.user_id, plan_id)
        return ApiResponse(message='Membership plan deleted successfully')
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable('deleting membership plan') from exc
