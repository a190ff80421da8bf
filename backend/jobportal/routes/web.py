"""Web routes for HTML pages, plus the shared template context and flash helpers."""

from pathlib import Path

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import AsyncSession

from jobportal.dependencies.auth import ensure_csrf_token, get_current_user
from jobportal.models.base import get_db
from jobportal.services import position_service
from jobportal.services.errors import PortalError, ValidationError

router = APIRouter()
templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent.parent / "templates"))

RECENT_POSITIONS = 5


def flash(request: Request, success: str | None = None, error: str | None = None) -> None:
    """Queue a one-shot message for the next rendered page."""
    if success:
        request.session["flash_success"] = success
    if error:
        request.session["flash_error"] = error


def redirect(request: Request, url: str, success: str | None = None, error: str | None = None):
    """303 redirect, optionally queueing a flash message."""
    flash(request, success=success, error=error)
    return RedirectResponse(url, status_code=303)


def error_messages(exc: PortalError) -> list[str]:
    if isinstance(exc, ValidationError):
        return exc.errors
    return [exc.message]


async def _viewer(request: Request, db: AsyncSession):
    """The user already loaded for this request, or a fresh lookup."""
    user = getattr(request.state, "current_user", None)
    if user is not None:
        state = inspect(user)
        # A rollback expires the row and it cannot be lazily reloaded here
        if not (state.expired_attributes or state.was_deleted or state.detached):
            return user
    return await get_current_user(request, db)


async def _ctx(request: Request, db: AsyncSession, **extra) -> dict:
    """Build common template context with current_user, position_count, csrf_token and flash messages."""
    user = await _viewer(request, db)
    csrf_token = ensure_csrf_token(request)

    # Navbar badge for logged-in users
    position_count = await position_service.count(db) if user else None

    return {
        "request": request,
        "current_user": user,
        "position_count": position_count,
        "csrf_token": csrf_token,
        "flash_success": request.session.pop("flash_success", None),
        "flash_error": request.session.pop("flash_error", None),
        "errors": [],
        **extra,
    }


async def render(request: Request, db: AsyncSession, name: str, status_code: int = 200, **extra):
    ctx = await _ctx(request, db, **extra)
    return templates.TemplateResponse(request, name, ctx, status_code=status_code)


@router.get("/", response_class=HTMLResponse)
async def home(request: Request, db: AsyncSession = Depends(get_db)):
    """Landing page with the most recent openings."""
    positions = await position_service.list_all(db)
    return await render(
        request, db, "index.html",
        recent_positions=positions[:RECENT_POSITIONS],
        total_positions=len(positions),
    )
