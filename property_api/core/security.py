"""Request identity supplied by the upstream authentication gateway.

Token verification happens before requests reach this service. The gateway
forwards the verified identity in trusted headers; this module only turns
those headers into an ``AuthenticatedUser`` and enforces the admin guard.
"""

from typing import Optional

from fastapi import Depends, Header, HTTPException, status

ADMIN_ROLE = "admin"


class AuthenticatedUser:
    """Represents the caller identity forwarded by the gateway."""

    def __init__(self, user_id: str, is_admin: bool = False):
        self.user_id = user_id
        self.is_admin = is_admin


async def get_current_user(
    x_user_id: Optional[str] = Header(None),
    x_user_role: Optional[str] = Header(None),
) -> AuthenticatedUser:
    """Build the caller identity from gateway headers."""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    is_admin = (x_user_role or "").strip().lower() == ADMIN_ROLE
    return AuthenticatedUser(user_id=x_user_id.strip(), is_admin=is_admin)


def require_admin(
    current_user: AuthenticatedUser = Depends(get_current_user),
) -> AuthenticatedUser:
    """Require the caller to hold the admin role."""
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin privileges required",
        )
    return current_user
