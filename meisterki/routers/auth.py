"""
Auth endpoints — register, login, refresh, me, profile.

Accounts are stored as JSON records (storage.UserStore). The profile holds
the company block a craft business puts on its offers.
"""

from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from ..auth import (
    create_access_token,
    create_refresh_token,
    decode_token,
    get_current_user,
    get_token_store,
    get_user_store,
    hash_password,
    hash_token,
    store_refresh_token,
    verify_password,
)
from ..storage import RecordExistsError, TokenStore, UserStore

router = APIRouter(prefix="/auth", tags=["auth"])


# --- Request schemas ---

class RegisterRequest(BaseModel):
    email: str
    password: str


class LoginRequest(BaseModel):
    email: str
    password: str


class RefreshRequest(BaseModel):
    refresh_token: str


class ProfileUpdate(BaseModel):
    company_name: Optional[str] = None
    company_address: Optional[str] = None
    company_email: Optional[str] = None
    company_phone: Optional[str] = None


def _user_to_response(user: dict) -> dict:
    """User record to response dict — never expose password_hash."""
    return {
        "id": user["id"],
        "email": user["email"],
        "company_name": user.get("company_name"),
        "company_address": user.get("company_address"),
        "company_email": user.get("company_email"),
        "company_phone": user.get("company_phone"),
        "created_at": user.get("created_at"),
    }


def _issue_tokens(user: dict, tokens: TokenStore) -> dict:
    """Create access + refresh tokens for a user. Stores the refresh token hash."""
    access_token = create_access_token(user["id"])
    refresh_token = create_refresh_token(user["id"])
    store_refresh_token(tokens, user["id"], refresh_token)
    return {
        "access_token": access_token,
        "refresh_token": refresh_token,
        "token_type": "bearer",
        "user_id": user["id"],
    }


# --- Endpoints ---

@router.post("/register")
def register(
    request: RegisterRequest,
    users: UserStore = Depends(get_user_store),
    tokens: TokenStore = Depends(get_token_store),
):
    """Create a new account and return tokens."""
    email = request.email.strip()
    if not email or "@" not in email:
        raise HTTPException(status_code=400, detail="A valid email is required")
    if len(request.password) < 8:
        raise HTTPException(status_code=400, detail="Password must be at least 8 characters")

    if users.get_by_email(email):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Account with this email already exists",
        )

    try:
        user = users.create(email=email, password_hash=hash_password(request.password))
    except RecordExistsError:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Account with this email already exists",
        )
    return {**_issue_tokens(user, tokens), "user": _user_to_response(user)}


@router.post("/login")
def login(
    request: LoginRequest,
    users: UserStore = Depends(get_user_store),
    tokens: TokenStore = Depends(get_token_store),
):
    """Authenticate with email + password. Returns access + refresh tokens."""
    user = users.get_by_email(request.email)

    if not user or not user.get("password_hash"):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )

    if not verify_password(request.password, user["password_hash"]):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )

    return {**_issue_tokens(user, tokens), "user": _user_to_response(user)}


@router.post("/refresh")
def refresh(
    request: RefreshRequest,
    users: UserStore = Depends(get_user_store),
    tokens: TokenStore = Depends(get_token_store),
):
    """Exchange a valid refresh token for a new access token."""
    payload = decode_token(request.refresh_token)

    if payload.get("type") != "refresh":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token type — expected refresh token",
        )

    stored = tokens.get(hash_token(request.refresh_token))
    if not stored or stored.get("token_type") != "refresh":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Refresh token not found — it may have been revoked",
        )

    if datetime.fromisoformat(stored["expires_at"]) < datetime.now(timezone.utc):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Refresh token expired",
        )

    user = users.get(int(payload["sub"]))
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )

    # Issue new access token only (reuse existing refresh token)
    return {
        "access_token": create_access_token(user["id"]),
        "token_type": "bearer",
        "user_id": user["id"],
    }


@router.get("/me")
def me(current_user: dict = Depends(get_current_user)):
    """Return the current authenticated user's profile."""
    return _user_to_response(current_user)


@router.put("/profile")
def update_profile(
    update: ProfileUpdate,
    current_user: dict = Depends(get_current_user),
    users: UserStore = Depends(get_user_store),
):
    """Update the current user's company profile."""
    user = users.update(current_user["id"], **update.model_dump(exclude_unset=True))
    return _user_to_response(user)
