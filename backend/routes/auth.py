"""
Pharma Field Sales - Routes Auth
Login / Logout / Session / Password change.

A user created from an approved MR request logs in with a temporary
password (first_login=True). Until /auth/change-password succeeds, only
/auth/me, /auth/logout and /auth/change-password accept that session.
"""

from fastapi import APIRouter, HTTPException, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from datetime import datetime, timezone, timedelta
import logging

from models.auth import UserLogin, PasswordChange
from config import db, hash_password, generate_token, now_iso, SESSION_TTL_DAYS
from services.api_response import ok
from services.errors import AuthError

logger = logging.getLogger("auth")

router = APIRouter(prefix="/auth", tags=["Auth"])
security = HTTPBearer(auto_error=False)


# ==================== HELPERS ====================

async def get_current_user(credentials: HTTPAuthorizationCredentials = Depends(security)):
    """Resolves the bearer token to the logged-in user (without password)."""
    if not credentials:
        raise AuthError("Not authenticated")

    token = credentials.credentials
    session = await db.sessions.find_one({
        "token": token,
        "expires_at": {"$gt": now_iso()}
    })

    if not session:
        raise AuthError("Session expired")

    user = await db.users.find_one(
        {"id": session["user_id"]},
        {"_id": 0, "password": 0}
    )

    if not user:
        raise AuthError("User not found")

    if not user.get("is_active", True):
        raise HTTPException(status_code=403, detail="Account deactivated")

    return user


def _public_user(user: dict) -> dict:
    return {
        "id": user["id"],
        "email": user["email"],
        "name": user.get("name", ""),
        "role": user.get("role"),
        "employee_id": user.get("employee_id"),
        "territory": user.get("territory", ""),
        "first_login": bool(user.get("first_login")),
    }


# ==================== LOGIN / LOGOUT ====================

@router.post("/login")
async def login(data: UserLogin):
    user = await db.users.find_one(
        {"email": data.email.lower().strip()},
        {"_id": 0}
    )

    if not user or user.get("password") != hash_password(data.password):
        logger.warning(f"[LOGIN_FAILED] email={data.email.lower().strip()}")
        raise AuthError("Invalid email or password")

    if not user.get("is_active", True):
        raise HTTPException(status_code=403, detail="Account deactivated")

    token = generate_token()
    expires_at = (datetime.now(timezone.utc) + timedelta(days=SESSION_TTL_DAYS)).isoformat()

    await db.sessions.insert_one({
        "token": token,
        "user_id": user["id"],
        "created_at": now_iso(),
        "expires_at": expires_at
    })
    await db.users.update_one({"id": user["id"]}, {"$set": {"last_login_at": now_iso()}})

    return ok({
        "token": token,
        "expires_at": expires_at,
        "user": _public_user(user),
        "must_change_password": bool(user.get("first_login")),
    }, message="Logged in")


@router.post("/logout")
async def logout(
    user: dict = Depends(get_current_user),
    credentials: HTTPAuthorizationCredentials = Depends(security)
):
    if credentials:
        await db.sessions.delete_one({"token": credentials.credentials})
    return ok(message="Logged out")


@router.get("/me")
async def get_me(user: dict = Depends(get_current_user)):
    return ok({**user, "must_change_password": bool(user.get("first_login"))})


# ==================== PASSWORD ====================

@router.post("/change-password")
async def change_password(data: PasswordChange, user: dict = Depends(get_current_user)):
    stored = await db.users.find_one({"id": user["id"]}, {"_id": 0, "password": 1})

    if not stored or stored.get("password") != hash_password(data.current_password):
        raise HTTPException(status_code=400, detail="Current password is incorrect")

    if data.new_password == data.current_password:
        raise HTTPException(status_code=400, detail="New password must differ from the current one")

    await db.users.update_one(
        {"id": user["id"]},
        {"$set": {
            "password": hash_password(data.new_password),
            "first_login": False,
            "password_changed_at": now_iso(),
            "updated_at": now_iso(),
        }}
    )
    logger.info(f"[PASSWORD] changed for {user.get('email')}")
    return ok(message="Password changed")
