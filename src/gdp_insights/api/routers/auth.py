from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Request, status

from ...security import auth
from ...security.auth import OTPRequest, OTPVerifyRequest, TokenResponse, User, get_current_user
from ...security.rate_limit import enforce

router = APIRouter(prefix="/auth", tags=["auth"])

# action -> (429 message, env prefix, default limit, default window seconds)
_THROTTLES = {
    "otp_request": ("Too many OTP requests. Please try again later.", "OTP_REQUEST", 5, 900),
    "otp_verify": ("Too many OTP verification attempts. Please try again later.", "OTP_VERIFY", 10, 900),
}


def _throttle(action: str, request: Request, email: str) -> None:
    message, env_prefix, limit, window = _THROTTLES[action]
    host = request.client.host if request.client else "unknown"
    enforce(
        action,
        f"{host}:{email.lower()}",
        message,
        limit_env=f"{env_prefix}_LIMIT",
        window_env=f"{env_prefix}_WINDOW_SEC",
        default_limit=limit,
        default_window_seconds=window,
    )


@router.post("/request-otp")
def request_otp(req: OTPRequest, request: Request) -> Dict[str, Any]:
    _throttle("otp_request", request, req.email)
    code = auth.issue_otp(req.email)
    body: Dict[str, Any] = {"status": "sent", "expires_in": auth.OTP_EXP_MINUTES * 60}
    if auth.should_include_otp_in_response():
        body["code"] = code
    return body


@router.post("/verify-otp", response_model=TokenResponse)
def verify_otp(req: OTPVerifyRequest, request: Request) -> TokenResponse:
    _throttle("otp_verify", request, req.email)
    try:
        user = auth.verify_otp(req.email, req.code, name=req.name)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    cfg = auth.JwtConfig.from_env()
    return TokenResponse(
        access_token=auth.create_access_token(user, cfg),
        expires_in=cfg.expires_min * 60,
        user=user,
    )


@router.get("/me", response_model=User)
def me(user: User = Depends(get_current_user)) -> User:
    return user
