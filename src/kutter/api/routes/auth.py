"""Registration and login forms that issue the ``token`` cookie."""

from __future__ import annotations

import logging
from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.exc import IntegrityError

from kutter.api.auth import (
    TOKEN_COOKIE,
    Identity,
    create_token,
    hash_password,
    require_identity,
    verify_password,
)
from kutter.db import Repository, get_session

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def _normalize_email(value: str) -> str:
    value = value.strip().lower()
    local, sep, domain = value.partition("@")
    if not sep or not local or "." not in domain:
        raise ValueError("invalid email address")
    return value


class RegisterForm(BaseModel):
    email: str = Field(max_length=255)
    username: str = Field(min_length=3, max_length=32, pattern=r"^[A-Za-z0-9_.-]+$")
    password: str = Field(min_length=8, max_length=128)

    @field_validator("email")
    @classmethod
    def _check_email(cls, v: str) -> str:
        return _normalize_email(v)


class LoginForm(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def _lower_email(cls, v: str) -> str:
        return v.strip().lower()


@router.post("/register", status_code=201)
async def register(form: RegisterForm) -> dict:
    """Create an account. 409 if the email or username is taken."""
    try:
        async with get_session() as s:
            repo = Repository(s)
            if await repo.get_user_by_email(form.email) is not None:
                raise HTTPException(status_code=409, detail="Email already registered")
            if await repo.get_user_by_username(form.username) is not None:
                raise HTTPException(status_code=409, detail="Username already taken")
            user = await repo.create_user(
                form.email, form.username, hash_password(form.password)
            )
    except IntegrityError:
        # Lost a race with a concurrent registration
        raise HTTPException(status_code=409, detail="Email or username already taken")
    logger.info("Registered user %s", user.email)
    return {"email": user.email, "username": user.username}


@router.post("/login")
async def login(form: LoginForm, request: Request) -> JSONResponse:
    """Check credentials and set an HttpOnly ``token`` cookie."""
    async with get_session() as s:
        user = await Repository(s).get_user_by_email(form.email)
    if user is None or not verify_password(form.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid email or password")

    config = request.app.state.config
    ttl = timedelta(minutes=config.token_ttl_minutes)
    token = create_token(user.email, user.username, config.jwt_secret, ttl)
    response = JSONResponse({"email": user.email, "username": user.username})
    response.set_cookie(
        TOKEN_COOKIE,
        token,
        max_age=int(ttl.total_seconds()),
        httponly=True,
        samesite="lax",
        secure=config.cookie_secure,
    )
    return response


@router.post("/logout")
async def logout() -> JSONResponse:
    response = JSONResponse({"ok": True})
    response.delete_cookie(TOKEN_COOKIE)
    return response


@router.get("/me")
async def me(identity: Identity = Depends(require_identity)) -> dict:
    """Who the current cookie belongs to."""
    return {
        "email": identity.author_id,
        "username": identity.author_name,
        "expires_at": identity.expires_at.isoformat() if identity.expires_at else None,
    }
