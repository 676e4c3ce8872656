from dataclasses import dataclass

from facilityops.models import Role, User


@dataclass(frozen=True)
class Identity:
    """Who is performing an operation, resolved once per request."""
    actor_id: int
    organization_id: int
    role: Role
    display_name: str

    @property
    def is_gm(self) -> bool:
        return self.role == Role.GM

    @property
    def is_contractor(self) -> bool:
        return self.role == Role.CONTRACTOR

    @classmethod
    def from_user(cls, user: User) -> "Identity":
        return cls(
            actor_id=user.id,
            organization_id=user.organization_id,
            role=user.role,
            display_name=user.full_name,
        )
