from fastapi import Depends

from app.core.exceptions import Unauthorized
from app.models.enums.user_role import Role
from app.schemas.auth.acting_user_schemas import ActingUser
from app.utils.get_user import get_acting_user

# Capability sets per operation
FULFILLMENT_ROLES = frozenset({Role.ADMIN, Role.MANAGER})
STATUS_ADVANCE_ROLES = frozenset({Role.ADMIN, Role.MANAGER, Role.COURIER})
READ_ROLES = frozenset({Role.ADMIN, Role.MANAGER, Role.COURIER, Role.STAFF})


def ensure_capability(actor: ActingUser, roles: frozenset[Role]) -> None:
    if actor.role not in roles:
        raise Unauthorized()


def require_role(roles: frozenset[Role]):
    async def role_checker(actor: ActingUser = Depends(get_acting_user)):
        ensure_capability(actor, roles)
        return actor
    return role_checker
