"""
Pharma Field Sales - Role checks
Two roles (MR, Admin) + FastAPI dependencies.
A principal still holding a temporary password may only reach the auth
routes until the password is changed.
"""

import logging
from fastapi import Depends, HTTPException

from models.auth import Role

logger = logging.getLogger("permissions")


# ════════════════════════════════════════════════════════════════════════
# ROLE HELPERS
# ════════════════════════════════════════════════════════════════════════

def is_admin(user: dict) -> bool:
    return user.get("role") == Role.ADMIN.value


def is_mr(user: dict) -> bool:
    return user.get("role") == Role.MR.value


# ════════════════════════════════════════════════════════════════════════
# FASTAPI DEPENDENCIES
# ════════════════════════════════════════════════════════════════════════

def require_role(*roles: str):
    """
    FastAPI dependency factory.
    Usage: user: dict = Depends(require_role("Admin"))
    """
    from routes.auth import get_current_user

    async def _check(user: dict = Depends(get_current_user)):
        if user.get("first_login"):
            raise HTTPException(
                status_code=403,
                detail="Password change required before using the portal"
            )
        if user.get("role") not in roles:
            logger.warning(
                f"[PERMISSION_DENIED] user={user.get('email')} "
                f"role={user.get('role')} required={list(roles)}"
            )
            raise HTTPException(
                status_code=403,
                detail=f"Role required: {' or '.join(roles)}"
            )
        return user

    return _check


require_admin = require_role(Role.ADMIN.value)
require_mr = require_role(Role.MR.value)
require_any_role = require_role(Role.ADMIN.value, Role.MR.value)
