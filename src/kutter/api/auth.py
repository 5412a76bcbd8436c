"""Cookie-borne JWT authentication for the chat stream and auth forms."""

from __future__ import annotations

import hashlib
import hmac
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt
from fastapi import HTTPException, Request

ALGORITHM = "HS256"
TOKEN_COOKIE = "token"

_PBKDF2_ITERATIONS = 100_000


class AuthError(Exception):
    """Credential could not be turned into an Identity."""

    reason = "unauthorized"


class MissingToken(AuthError):
    reason = "missing"


class MalformedToken(AuthError):
    reason = "malformed"


class TokenExpired(AuthError):
    reason = "expired"


class SignatureInvalid(AuthError):
    reason = "signature_invalid"


@dataclass(frozen=True)
class Identity:
    """Authenticated caller, fixed for the lifetime of a session."""

    author_id: str  # email
    author_name: str  # display handle
    expires_at: datetime | None = None

    def seconds_left(self, now: datetime | None = None) -> float | None:
        """Seconds until the credential expires, or None if it never does."""
        if self.expires_at is None:
            return None
        now = now or datetime.now(timezone.utc)
        return (self.expires_at - now).total_seconds()


def create_token(
    email: str,
    username: str,
    secret: str,
    ttl: timedelta = timedelta(days=1),
) -> str:
    """Issue a signed access token for a registered user."""
    expire = datetime.now(timezone.utc) + ttl
    to_encode = {
        "sub": email,
        "username": username,
        "exp": expire,
        "iat": datetime.now(timezone.utc),
    }
    return jwt.encode(to_encode, secret, algorithm=ALGORITHM)


def verify_token(credential: str | None, secret: str) -> Identity:
    """Validate a bearer credential and return the caller's Identity.

    Pure function of the credential and the server secret; no I/O.

    Raises:
        MissingToken: no credential supplied.
        MalformedToken: not a decodable JWT, or required claims missing.
        TokenExpired: ``exp`` is in the past.
        SignatureInvalid: signed with a different key or algorithm.
    """
    if not credential:
        raise MissingToken("no token supplied")
    try:
        payload = jwt.decode(
            credential,
            secret,
            algorithms=[ALGORITHM],
            options={"require": ["exp", "sub"]},
        )
    except jwt.ExpiredSignatureError as exc:
        raise TokenExpired("token has expired") from exc
    except jwt.InvalidSignatureError as exc:
        raise SignatureInvalid("token signature mismatch") from exc
    except jwt.InvalidTokenError as exc:
        raise MalformedToken(str(exc)) from exc

    email = payload.get("sub")
    username = payload.get("username")
    if not isinstance(email, str) or not email:
        raise MalformedToken("token subject is empty")
    if not isinstance(username, str) or not username:
        raise MalformedToken("token carries no username")
    return Identity(
        author_id=email,
        author_name=username,
        expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
    )


def hash_password(password: str) -> str:
    """Salted PBKDF2-SHA256, stored as ``<salt>$<hex digest>``."""
    salt = secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac(
        "sha256", password.encode("utf-8"), salt.encode("utf-8"), _PBKDF2_ITERATIONS
    )
    return f"{salt}${digest.hex()}"


def verify_password(password: str, stored: str) -> bool:
    """Constant-time check of a password against ``hash_password`` output."""
    salt, sep, expected = stored.partition("$")
    if not sep:
        return False
    digest = hashlib.pbkdf2_hmac(
        "sha256", password.encode("utf-8"), salt.encode("utf-8"), _PBKDF2_ITERATIONS
    )
    return hmac.compare_digest(digest.hex(), expected)


async def require_identity(request: Request) -> Identity:
    """FastAPI dependency: resolve the ``token`` cookie or answer 401."""
    secret = request.app.state.config.jwt_secret
    try:
        return verify_token(request.cookies.get(TOKEN_COOKIE), secret)
    except AuthError as exc:
        raise HTTPException(status_code=401, detail="Invalid token") from exc
