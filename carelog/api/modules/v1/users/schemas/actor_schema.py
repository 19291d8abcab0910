from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from carelog.api.modules.v1.users.models.users_model import Profile


class Actor(BaseModel):
    """
    The caller of a ticket operation.

    Passed explicitly into every lifecycle operation instead of being read
    from request state.
    """

    model_config = ConfigDict(frozen=True)

    id: UUID
    display_name: str
    email: Optional[str] = None
    is_platform_staff: bool = False

    @classmethod
    def from_profile(cls, profile: Profile) -> "Actor":
        return cls(
            id=profile.id,
            display_name=profile.full_name,
            email=profile.email,
            is_platform_staff=bool(profile.is_platform_admin),
        )
