import logging
import secrets
import time
from typing import Any, Dict

import bcrypt
from fastapi import APIRouter, HTTPException, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse

from bbe_admin.core.config import settings
from bbe_admin.core.logging import log_session, safe_map
from bbe_admin.core.templating import templates

router = APIRouter(tags=["auth"])

logger = logging.getLogger(__name__)

SESSION_COOKIE_NAME = "session_token"
SESSION_STORE: dict[str, Dict[str, Any]] = {}


def _is_expired(session: Dict[str, Any], now: float) -> bool:
    return now - session.get("issued_at", 0) > settings.SESSION_MAX_AGE


def prune_sessions(now: float | None = None) -> int:
    """Drop every stored session older than SESSION_MAX_AGE."""
    now = time.time() if now is None else now
    stale = [token for token, session in SESSION_STORE.items() if _is_expired(session, now)]
    for token in stale:
        SESSION_STORE.pop(token, None)
    if stale:
        log_session(logger, f"pruned {len(stale)} expired")
    return len(stale)


def get_session(request: Request) -> Dict[str, Any] | None:
    token = request.cookies.get(SESSION_COOKIE_NAME)
    session = SESSION_STORE.get(token) if token else None
    if session is None:
        return None
    if _is_expired(session, time.time()):
        SESSION_STORE.pop(token, None)
        log_session(logger, "expired")
        return None
    return session


async def require_session(request: Request) -> Dict[str, Any]:
    session = get_session(request)
    if not session:
        raise HTTPException(
            status_code=status.HTTP_303_SEE_OTHER,
            detail="Not authenticated",
            headers={"Location": "/login"},
        )
    return session


async def require_api_session(request: Request) -> Dict[str, Any]:
    session = get_session(request)
    if not session:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return session


def flash(session: Dict[str, Any], category: str, message: str) -> None:
    session.setdefault("flashes", []).append({"category": category, "message": message})


def pop_flashes(session: Dict[str, Any]) -> list[Dict[str, str]]:
    return session.pop("flashes", [])


def verify_credentials(email: str, password: str) -> bool:
    if not settings.ADMIN_EMAIL or not settings.ADMIN_PASSWORD_HASH:
        logger.warning("Login attempted but ADMIN_EMAIL / ADMIN_PASSWORD_HASH are not configured")
        return False
    if email.lower() != settings.ADMIN_EMAIL.strip().lower():
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), settings.ADMIN_PASSWORD_HASH.encode("utf-8"))
    except ValueError:
        logger.error("ADMIN_PASSWORD_HASH is not a valid bcrypt hash")
        return False


def _issue_session_response(email: str, redirect_url: str = "/dashboard") -> RedirectResponse:
    prune_sessions()
    token = secrets.token_urlsafe(32)
    SESSION_STORE[token] = {"email": email, "issued_at": time.time(), "editors": {}, "flashes": []}
    response = RedirectResponse(url=redirect_url, status_code=status.HTTP_303_SEE_OTHER)
    response.set_cookie(
        SESSION_COOKIE_NAME,
        token,
        max_age=settings.SESSION_MAX_AGE,
        httponly=True,
        samesite="lax",
    )
    log_session(logger, f"issued for {email}")
    return response


def _login_page(request: Request, error: str | None, email: str, status_code: int = 200):
    return templates.TemplateResponse(
        request,
        "login.html",
        {"error": error, "email": email},
        status_code=status_code,
    )


@router.get("/login", response_class=HTMLResponse)
async def login_form(request: Request):
    if get_session(request):
        return RedirectResponse(url="/dashboard", status_code=status.HTTP_303_SEE_OTHER)
    return _login_page(request, None, "")


@router.post("/login", response_class=HTMLResponse)
async def login(request: Request):
    form = await request.form()
    logger.debug(f"Login form: {safe_map(dict(form))}")
    email_raw = str(form.get("email") or "").strip()
    password = str(form.get("password") or "")

    if not email_raw or not password:
        return _login_page(
            request, "Email and password are required.", email_raw, status.HTTP_400_BAD_REQUEST
        )

    if not verify_credentials(email_raw, password):
        logger.warning(f"Failed login for {email_raw}")
        return _login_page(
            request, "Invalid email or password.", email_raw, status.HTTP_401_UNAUTHORIZED
        )

    return _issue_session_response(email_raw.lower())


@router.get("/logout")
async def logout(request: Request):
    token = request.cookies.get(SESSION_COOKIE_NAME)
    if token:
        SESSION_STORE.pop(token, None)
        log_session(logger, "dropped on logout")
    response = RedirectResponse(url="/login", status_code=status.HTTP_303_SEE_OTHER)
    response.delete_cookie(SESSION_COOKIE_NAME)
    return response
