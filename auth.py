"""
Shared-secret login for the admin panel.

A successful login sets the admin-session flag cookie; admin_guard rejects
any /admin request that does not carry it. The read API is not gated.
"""
import logging
import secrets
from typing import Mapping

from fastapi import APIRouter, Request, Response
from fastapi.responses import RedirectResponse

from config import Settings
from errors import ConfigurationError, UnauthorizedError
from schemas import LoginBody

logger = logging.getLogger(__name__)

SESSION_COOKIE = "admin-session"
SESSION_VALUE = "authenticated"
SESSION_MAX_AGE = 60 * 60 * 24  # 24 hours
ADMIN_PREFIX = "/admin"

router = APIRouter(prefix="/auth", tags=["auth"])


def is_authenticated(cookies: Mapping[str, str]) -> bool:
    return cookies.get(SESSION_COOKIE) == SESSION_VALUE


def check_credentials(settings: Settings, username: str, password: str) -> None:
    if not settings.admin_username or not settings.admin_password:
        logger.error("Admin credentials are not configured")
        raise ConfigurationError()
    user_ok = secrets.compare_digest(username.encode(), settings.admin_username.encode())
    pass_ok = secrets.compare_digest(password.encode(), settings.admin_password.encode())
    if not (user_ok and pass_ok):
        logger.info(f"Invalid credentials for username {username!r}")
        raise UnauthorizedError()


@router.post("/login")
def login(body: LoginBody, request: Request, response: Response):
    settings: Settings = request.app.state.settings
    logger.info(f"Login attempt for username: {body.username}")
    check_credentials(settings, body.username, body.password)

    response.set_cookie(
        SESSION_COOKIE,
        SESSION_VALUE,
        max_age=SESSION_MAX_AGE,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
        path="/",
    )
    return {
        "success": True,
        "message": "Login successful",
        "user": {"username": body.username, "role": "admin"},
    }


@router.post("/logout")
def logout(response: Response):
    response.delete_cookie(SESSION_COOKIE, path="/")
    return {"success": True}


async def admin_guard(request: Request, call_next):
    """HTTP middleware: redirect unauthenticated /admin requests to the home page"""
    if request.url.path.startswith(ADMIN_PREFIX) and not is_authenticated(request.cookies):
        logger.info(f"No valid session for {request.url.path}, redirecting")
        return RedirectResponse(url="/", status_code=307)
    return await call_next(request)
