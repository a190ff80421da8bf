"""Admin routes — role changes and account removal."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from jobportal.dependencies.auth import check_csrf, require_context
from jobportal.models.base import get_db
from jobportal.routes.web import error_messages, redirect
from jobportal.schemas import RoleUpdateForm, parse_form
from jobportal.services import user_service
from jobportal.services.errors import PortalError
from jobportal.services.policy import RequestContext

router = APIRouter(prefix="/admin")


@router.post("/users/{user_id}/role")
async def update_role(
    user_id: int,
    request: Request,
    ctx: RequestContext = Depends(require_context),
    db: AsyncSession = Depends(get_db),
):
    form = await request.form()
    try:
        check_csrf(request, form)
        data = parse_form(RoleUpdateForm, form)
        target = await user_service.update_role(db, ctx, user_id, data.role)
    except PortalError as exc:
        await db.rollback()
        return redirect(request, "/min-side", error=" ".join(error_messages(exc)))

    return redirect(request, "/min-side", success=f"{target.username} is now {target.role}.")


@router.post("/users/{user_id}/delete")
async def delete_user(
    user_id: int,
    request: Request,
    ctx: RequestContext = Depends(require_context),
    db: AsyncSession = Depends(get_db),
):
    form = await request.form()
    try:
        check_csrf(request, form)
        await user_service.delete_user(db, ctx, user_id)
    except PortalError as exc:
        await db.rollback()
        return redirect(request, "/min-side", error=exc.message)

    return redirect(request, "/min-side", success="The user has been deleted.")
