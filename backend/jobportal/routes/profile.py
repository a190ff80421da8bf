"""Profile ("min side") routes — overview, profile edits, self-deletion."""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse
from sqlalchemy.ext.asyncio import AsyncSession

from jobportal.dependencies.auth import check_csrf, logout_session, require_context, require_user
from jobportal.models.base import get_db
from jobportal.models.user import ROLES, User
from jobportal.routes.web import error_messages, redirect, render
from jobportal.schemas import ProfileUpdateForm, parse_form
from jobportal.services import dashboard_service, user_service
from jobportal.services.errors import PortalError
from jobportal.services.policy import RequestContext

router = APIRouter(prefix="/min-side")


@router.get("", response_class=HTMLResponse)
async def profile_page(
    request: Request,
    ctx: RequestContext = Depends(require_context),
    db: AsyncSession = Depends(get_db),
):
    view = await dashboard_service.build_profile_view(db, ctx)
    return await render(
        request, db, "profile.html",
        view=view,
        viewer=ctx,
        roles=ROLES,
    )


@router.post("/update")
async def update_profile(
    request: Request,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    form = await request.form()
    try:
        check_csrf(request, form)
        data = parse_form(ProfileUpdateForm, form)
        await user_service.update_profile(db, user, data)
    except PortalError as exc:
        await db.rollback()
        return redirect(request, "/min-side", error=" ".join(error_messages(exc)))

    return redirect(request, "/min-side", success="Your profile has been updated.")


@router.post("/delete")
async def delete_account(
    request: Request,
    ctx: RequestContext = Depends(require_context),
    db: AsyncSession = Depends(get_db),
):
    form = await request.form()
    try:
        check_csrf(request, form)
        await user_service.delete_own_account(db, ctx)
    except PortalError as exc:
        await db.rollback()
        return redirect(request, "/min-side", error=exc.message)

    logout_session(request)
    return redirect(request, "/", success="Your account has been deleted.")
