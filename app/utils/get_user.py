from fastapi import Header, HTTPException, Request, status

from app.core.security import decode_access_token
from app.models.enums.user_role import Role
from app.schemas.auth.acting_user_schemas import ActingUser
from app.utils.logger import get_logger

logger = get_logger("auth.guard")


def _bearer_token(authorization: str | None) -> str:
    if not authorization or not authorization.startswith("Bearer "):
        logger.warning("Missing bearer token")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authorization header",
        )
    return authorization.split("Bearer ")[1].strip()


async def get_acting_user(
    request: Request,
    authorization: str | None = Header(None),
) -> ActingUser:
    payload = decode_access_token(_bearer_token(authorization))

    actor = ActingUser(
        id=str(payload["sub"]),
        role=Role.from_claim(payload.get("role")),
    )

    request.state.user = actor
    return actor
