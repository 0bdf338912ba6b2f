"""Authentication routes - register, login, logout, password reset."""
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..config import SESSION_COOKIE, SESSION_MAX_AGE, SESSION_SECURE
from ..database import create_connection
from ..dependencies import get_csrf_token, require_user
from ..infrastructure.services.rate_limiter import RateLimitProfiles, rate_limit
from .deps import get_auth_service, get_email_verification_service, get_password_reset_service

router = APIRouter(prefix="/api/auth")


class RegisterInput(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None
    name: Optional[str] = None


class LoginInput(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class ForgotPasswordInput(BaseModel):
    email: Optional[str] = None


class ResetPasswordInput(BaseModel):
    token: Optional[str] = None
    password: Optional[str] = None


class ResendVerificationInput(BaseModel):
    email: Optional[str] = None


def user_summary(user: dict) -> dict:
    return {
        "id": user["id"],
        "email": user["email"],
        "name": user["name"],
        "role": user["role"],
        "emailVerified": bool(user.get("email_verified")),
    }


def _session_response(user: dict, session_id: str, status_code: int = 200) -> JSONResponse:
    response = JSONResponse(
        status_code=status_code,
        content={"success": True, "user": user_summary(user)}
    )
    response.set_cookie(
        key=SESSION_COOKIE,
        value=session_id,
        httponly=True,
        samesite="lax",
        secure=SESSION_SECURE,
        max_age=SESSION_MAX_AGE
    )
    return response


@router.post("/register")
def register(data: RegisterInput):
    """Create an account and log it in."""
    db = create_connection()
    try:
        user, session_id = get_auth_service(db).register(data.email, data.password, data.name)
        get_email_verification_service(db).send_verification(user)
        return _session_response(user, session_id, status_code=201)
    finally:
        db.close()


@router.post("/login", dependencies=[Depends(rate_limit(RateLimitProfiles.AUTH))])
def login(data: LoginInput):
    db = create_connection()
    try:
        user, session_id = get_auth_service(db).login(data.email, data.password)
        return _session_response(user, session_id)
    finally:
        db.close()


@router.post("/logout")
def logout(request: Request):
    session_id = request.cookies.get(SESSION_COOKIE)
    db = create_connection()
    try:
        get_auth_service(db).logout(session_id)
    finally:
        db.close()

    response = JSONResponse(content={"success": True})
    response.delete_cookie(SESSION_COOKIE)
    return response


@router.get("/me")
def me(request: Request):
    user = require_user(request)
    return {"success": True, "user": user_summary(user)}


@router.get("/csrf-token")
def csrf_token(request: Request):
    """Token to echo back in the X-CSRF-Token header."""
    return {"csrfToken": get_csrf_token(request)}


@router.post(
    "/forgot-password",
    dependencies=[Depends(rate_limit(RateLimitProfiles.PASSWORD_RESET))]
)
def forgot_password(data: ForgotPasswordInput):
    """Email a reset link; the answer never reveals whether the account exists."""
    db = create_connection()
    try:
        message = get_password_reset_service(db).request_reset(data.email)
        return {"success": True, "message": message}
    finally:
        db.close()


@router.post("/reset-password", dependencies=[Depends(rate_limit(RateLimitProfiles.AUTH))])
def reset_password(data: ResetPasswordInput):
    db = create_connection()
    try:
        message = get_password_reset_service(db).reset_password(data.token, data.password)
        return {"success": True, "message": message}
    finally:
        db.close()


@router.get("/reset-password/verify")
def verify_reset_token(token: Optional[str] = None):
    db = create_connection()
    try:
        return {"valid": get_password_reset_service(db).verify_token(token)}
    finally:
        db.close()


@router.post(
    "/resend-verification",
    dependencies=[Depends(rate_limit(RateLimitProfiles.EMAIL_VERIFY))]
)
def resend_verification(data: ResendVerificationInput):
    db = create_connection()
    try:
        message = get_email_verification_service(db).resend(data.email)
        return {"success": True, "message": message}
    finally:
        db.close()


@router.get("/verify-email")
def verify_email(token: Optional[str] = None):
    """Target of the link in the verification email."""
    db = create_connection()
    try:
        message = get_email_verification_service(db).verify(token)
        return {"success": True, "message": message}
    finally:
        db.close()
