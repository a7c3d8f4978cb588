"""Authenticated caller identity handed to the scheduling operations."""

from dataclasses import dataclass

from flexify.models.user import Role, User


@dataclass(frozen=True)
class AuthenticatedPrincipal:
    user_id: int
    role: Role
    email: str
    name: str

    def has_role(self, *roles: Role) -> bool:
        return self.role in roles

    @classmethod
    def from_user(cls, user: User) -> "AuthenticatedPrincipal":
        return cls(
            user_id=user.id,
            role=Role(user.role),
            email=user.email,
            name=user.name,
        )
