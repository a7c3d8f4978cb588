"""Response envelope and the public user profile embedded in records."""

from datetime import datetime
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict

DataT = TypeVar('DataT')

# Primary keys are 64-bit signed integers on every supported backend.
MAX_DATABASE_ID = 2**63 - 1


class ApiResponse(BaseModel, Generic[DataT]):
    success: bool = True
    message: str | None = None
    data: DataT | None = None


class UserProfileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    profile_pic: str | None = None


class UserAccountResponse(UserProfileResponse):
    role: str
    created_at: datetime | None = None
    updated_at: datetime | None = None
