"""
Authentication Module
Admin sign-in sessions, password hashing and the guards the admin routes use.
"""

import html
import logging
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional
from urllib.parse import quote

import bcrypt
from fastapi import HTTPException, Request
from fastapi.responses import HTMLResponse, RedirectResponse

import config
from database import get_user_by_username
from errors import AuthError, DatabaseError

logger = logging.getLogger(__name__)


@dataclass
class Session:
    token: str
    username: str
    created_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


SessionListener = Callable[[Optional[Session]], None]


# =============================================================================
# PASSWORD HELPERS
# =============================================================================

def hash_password(password: str) -> str:
    """Hash password using bcrypt"""
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()


def check_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode(), password_hash.encode())
    except ValueError:
        return False


# =============================================================================
# AUTH SERVICE
# =============================================================================

class AuthService:
    """Issues sessions for admin users and notifies listeners of every change."""

    def __init__(self) -> None:
        self._sessions: Dict[str, Session] = {}
        self._listeners: List[SessionListener] = []

    def login(self, identifier: str, secret: str) -> Session:
        try:
            user = get_user_by_username(identifier)
        except DatabaseError as e:
            raise AuthError("Sign-in is unavailable right now.") from e
        if not user or not check_password(secret, user["password_hash"]):
            logger.warning("Failed login for %s", identifier)
            raise AuthError("Invalid credentials")
        if not user.get("is_active", 0):
            logger.warning("Login attempt on disabled account %s", identifier)
            raise AuthError("Account disabled")

        session = Session(token=secrets.token_urlsafe(32), username=identifier)
        self._sessions[session.token] = session
        logger.info("Admin %s logged in", identifier)
        self._emit(session)
        return session

    def logout(self, token: Optional[str]) -> None:
        session = self._sessions.pop(token, None) if token else None
        if session:
            logger.info("Admin %s logged out", session.username)
            self._emit(None)

    def get_session(self, token: Optional[str]) -> Optional[Session]:
        if not token:
            return None
        return self._sessions.get(token)

    def subscribe(self, callback: SessionListener) -> Callable[[], None]:
        """Call ``callback`` with the new session (or None) on every change."""
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _emit(self, session: Optional[Session]) -> None:
        for listener in list(self._listeners):
            listener(session)


auth_service = AuthService()


# =============================================================================
# AUTH GUARDS
# =============================================================================

def get_request_session(request: Request) -> Optional[Session]:
    """Get the admin session from the session cookie"""
    return auth_service.get_session(request.cookies.get(config.SESSION_COOKIE_NAME))


def require_admin(request: Request):
    """Require a signed-in admin, return the session or a redirect"""
    session = get_request_session(request)
    if not session:
        return RedirectResponse("/admin/login", status_code=303)
    return session


def require_admin_api(request: Request) -> Session:
    """Same as require_admin for JSON routes: 401 instead of a redirect"""
    session = get_request_session(request)
    if not session:
        raise HTTPException(status_code=401, detail="Admin sign-in required")
    return session


# =============================================================================
# PAGE RENDERERS
# =============================================================================

def get_login_page(request: Request):
    """Render login page"""
    error = request.query_params.get("error", "")
    error_html = f'<div class="error">{html.escape(error)}</div>' if error else ""

    return HTMLResponse(f"""
    <!DOCTYPE html>
    <html>
    <head>
        <title>Admin Login - Carbon Neutral Home</title>
        <meta name="viewport" content="width=device-width, initial-scale=1.0">
    </head>
    <body>
        <div class="login-box">
            <h1>Admin Login</h1>
            {error_html}
            <form method="POST" action="/admin/login">
                <label>Email</label>
                <input type="email" name="username" required>
                <label>Password</label>
                <input type="password" name="password" required>
                <button type="submit">Login</button>
            </form>
        </div>
    </body>
    </html>
    """)


# =============================================================================
# FORM HANDLERS
# =============================================================================

async def post_login(request: Request):
    """Handle login form submission"""
    form = await request.form()
    username = form.get("username") or ""
    password = form.get("password") or ""

    try:
        session = auth_service.login(username, password)
    except AuthError as e:
        return RedirectResponse(f"/admin/login?error={quote(str(e))}", status_code=303)

    response = RedirectResponse("/admin", status_code=303)
    response.set_cookie(key=config.SESSION_COOKIE_NAME, value=session.token, httponly=True, samesite="lax")
    return response


def post_logout(request: Request):
    """Handle logout"""
    auth_service.logout(request.cookies.get(config.SESSION_COOKIE_NAME))
    response = RedirectResponse("/admin/login", status_code=303)
    response.delete_cookie(config.SESSION_COOKIE_NAME)
    return response
