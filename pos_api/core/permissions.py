import logging
from typing import Iterable, Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from ..models.user import Principal, UserRole
from ..database import get_supabase, get_supabase_admin
from .errors import AuthenticationError, ForbiddenError

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

PAYMENT_CORRECTION_ROLES = (UserRole.ADMIN, UserRole.CASHIER)


async def get_current_principal(
    token: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Principal:
    if token is None:
        raise AuthenticationError("Missing auth token")

    try:
        user = get_supabase().auth.get_user(token.credentials)
    except Exception as e:
        logger.info("Token rejected: %s", e)
        raise AuthenticationError("Invalid or expired token") from e
    if not user or not user.user:
        raise AuthenticationError("Invalid or expired token")

    profile = (
        get_supabase_admin()
        .table("profiles")
        .select("id, role, branch_id")
        .eq("id", user.user.id)
        .limit(1)
        .execute()
    )
    if not profile.data:
        raise AuthenticationError("User profile not found")

    return Principal.model_validate(profile.data[0])


def resolve_effective_branch(principal: Principal, requested_branch: Optional[str]) -> Optional[str]:
    """Branch an operation is scoped to.

    Admins get whatever they asked for (possibly no branch). Everyone else is
    pinned to their own branch; the requested one is only used when the
    principal has no branch assigned.
    """
    if principal.is_admin:
        return requested_branch
    return principal.branch_id or requested_branch


def can_access_branch(principal: Principal, branch_id: Optional[str]) -> bool:
    if principal.is_admin or not principal.branch_id:
        return True
    return branch_id == principal.branch_id


def require_role(principal: Principal, allowed_roles: Iterable[UserRole]):
    if principal.role not in allowed_roles:
        raise ForbiddenError()
