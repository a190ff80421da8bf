"""Authentication dependencies for FastAPI routes."""

import secrets

from fastapi import Depends, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from jobportal.models.base import get_db
from jobportal.models.user import User
from jobportal.services.errors import Forbidden
from jobportal.services.policy import RequestContext


class NotAuthenticatedException(Exception):
    """Raised when a route requires login but user is not authenticated."""
    pass


def login_session(request: Request, user: User) -> None:
    """Store the authenticated identity in the session."""
    request.session["user_id"] = user.id
    request.session["username"] = user.username
    request.session["role"] = user.role
    request.session["is_logged_in"] = True


def logout_session(request: Request) -> None:
    request.session.clear()
    request.state.current_user = None


async def get_current_user(request: Request, db: AsyncSession = Depends(get_db)) -> User | None:
    """Return the logged-in user or None."""
    user_id = request.session.get("user_id")
    if not user_id or not request.session.get("is_logged_in"):
        return None
    result = await db.execute(
        select(User).where(User.id == user_id, User.is_active == True)
    )
    user = result.scalar_one_or_none()
    if user is None:
        # Account was deleted or deactivated since login
        logout_session(request)
        return None
    # Role may have been changed by an admin since login
    request.session["role"] = user.role
    request.state.current_user = user
    return user


async def require_user(request: Request, db: AsyncSession = Depends(get_db)) -> User:
    """Return the logged-in user or redirect to login."""
    user = await get_current_user(request, db)
    if not user:
        raise NotAuthenticatedException()
    return user


def context_for(user: User) -> RequestContext:
    return RequestContext(user_id=user.id, username=user.username, role=user.role)


async def require_context(user: User = Depends(require_user)) -> RequestContext:
    """Request-scoped identity handed to the service layer."""
    return context_for(user)


def ensure_csrf_token(request: Request) -> str:
    """Get or create a CSRF token in the session."""
    token = request.session.get("csrf_token")
    if not token:
        token = secrets.token_urlsafe(32)
        request.session["csrf_token"] = token
    return token


def validate_csrf_token(request: Request, token: str) -> bool:
    """Validate a submitted CSRF token against the session token."""
    session_token = request.session.get("csrf_token")
    if not session_token or not token:
        return False
    return secrets.compare_digest(session_token, token)


def check_csrf(request: Request, form) -> None:
    """Reject a form submission whose CSRF token does not match the session."""
    token = form.get("csrf_token", "")
    if not isinstance(token, str) or not validate_csrf_token(request, token):
        raise Forbidden("Invalid request. Please try again.")
