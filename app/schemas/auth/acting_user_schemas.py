from pydantic import BaseModel, ConfigDict

from app.models.enums.user_role import Role

GUEST_USER_ID = "GUEST"


class ActingUser(BaseModel):
    """Who is performing an operation, as resolved by the identity provider."""

    model_config = ConfigDict(frozen=True)

    id: str
    role: Role
