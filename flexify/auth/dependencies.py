import logging
from typing import Callable

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from flexify.auth import jwt_handler
from flexify.auth.principal import AuthenticatedPrincipal
from flexify.database import get_db
from flexify.errors import database_unavailable
from flexify.models.user import Role, User
from flexify.schemas import MAX_DATABASE_ID

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_principal(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: Session = Depends(get_db),
) -> AuthenticatedPrincipal:
    if credentials is None:
        raise _unauthorized("Access denied. No token provided or invalid format.")

    try:
        payload = jwt_handler.decode_access_token(credentials.credentials)
    except jwt.ExpiredSignatureError as exc:
        raise _unauthorized("Token expired") from exc
    except jwt.PyJWTError as exc:
        raise _unauthorized("Invalid token") from exc

    subject = payload.get("sub")
    try:
        user_id = int(subject)
    except (TypeError, ValueError) as exc:
        raise _unauthorized("Invalid token subject") from exc
    if not 1 <= user_id <= MAX_DATABASE_ID:
        raise _unauthorized("Invalid token subject")

    try:
        user = db.query(User).filter(User.id == user_id).first()
    except SQLAlchemyError as exc:
        raise database_unavailable("authenticating request") from exc
    if user is None:
        raise _unauthorized("Invalid token. User not found.")

    try:
        return AuthenticatedPrincipal.from_user(user)
    except ValueError as exc:
        logger.warning("User %s has unknown role %r", user.id, user.role)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied. Insufficient permissions.",
        ) from exc


def require_roles(*roles: Role) -> Callable[..., AuthenticatedPrincipal]:
    """Build a dependency that admits only principals holding one of ``roles``."""

    def dependency(
        principal: AuthenticatedPrincipal = Depends(get_current_principal),
    ) -> AuthenticatedPrincipal:
        if not principal.has_role(*roles):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Access denied. Insufficient permissions.",
            )
        return principal

    return dependency
