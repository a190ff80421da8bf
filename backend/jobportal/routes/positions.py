"""Position routes — listing, create/edit/delete, applicant review."""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse
from sqlalchemy.ext.asyncio import AsyncSession

from jobportal.dependencies.auth import check_csrf, context_for, get_current_user, require_context
from jobportal.models.application import APPLICATION_STATUSES
from jobportal.models.base import get_db
from jobportal.routes.web import error_messages, redirect, render
from jobportal.schemas import ApplicationStatusForm, PositionForm, parse_form
from jobportal.services import application_service, position_service
from jobportal.services.errors import Forbidden, NotFound, PortalError
from jobportal.services.policy import RequestContext, can_apply, can_manage_positions, can_modify_position
from jobportal.services.position_service import EDITABLE_FIELDS, UpdateOutcome

router = APIRouter(prefix="/positions")


def _form_values(form) -> dict:
    return {field: str(form.get(field, "")) for field in EDITABLE_FIELDS}


@router.get("", response_class=HTMLResponse)
async def list_positions(request: Request, db: AsyncSession = Depends(get_db)):
    positions = await position_service.list_all(db)
    user = await get_current_user(request, db)

    ctx = context_for(user) if user else None

    applied_ids: set[int] = set()
    if ctx:
        applied_ids = {a.position_id for a in await application_service.list_by_user(db, ctx.user_id)}

    return await render(
        request, db, "positions/list.html",
        positions=positions,
        applied_ids=applied_ids,
        can_apply=bool(ctx) and can_apply(ctx),
        can_manage=bool(ctx) and can_manage_positions(ctx),
        can_modify=lambda position: bool(ctx) and can_modify_position(ctx, position.creator_id),
    )


@router.get("/new", response_class=HTMLResponse)
async def new_position_page(
    request: Request,
    ctx: RequestContext = Depends(require_context),
    db: AsyncSession = Depends(get_db),
):
    if not can_manage_positions(ctx):
        return redirect(request, "/positions", error="Only employees and admins can create positions.")
    return await render(request, db, "positions/form.html", values={}, position_id=None)


@router.post("/new", response_class=HTMLResponse)
async def create_position(
    request: Request,
    ctx: RequestContext = Depends(require_context),
    db: AsyncSession = Depends(get_db),
):
    form = await request.form()
    try:
        check_csrf(request, form)
        data = parse_form(PositionForm, form)
        await position_service.create_position(db, ctx, data)
    except Forbidden as exc:
        return redirect(request, "/positions", error=exc.message)
    except PortalError as exc:
        await db.rollback()
        return await render(
            request, db, "positions/form.html",
            values=_form_values(form), position_id=None, errors=error_messages(exc),
        )

    return redirect(request, "/positions", success="The position has been created.")


@router.get("/{position_id}/edit", response_class=HTMLResponse)
async def edit_position_page(
    position_id: int,
    request: Request,
    ctx: RequestContext = Depends(require_context),
    db: AsyncSession = Depends(get_db),
):
    try:
        position = await position_service.get_for_update(db, ctx, position_id)
    except PortalError as exc:
        return redirect(request, "/positions", error=exc.message)

    values = {field: getattr(position, field) or "" for field in EDITABLE_FIELDS}
    return await render(request, db, "positions/form.html", values=values, position_id=position_id)


@router.post("/{position_id}/edit", response_class=HTMLResponse)
async def update_position(
    position_id: int,
    request: Request,
    ctx: RequestContext = Depends(require_context),
    db: AsyncSession = Depends(get_db),
):
    form = await request.form()
    try:
        check_csrf(request, form)
        # Ownership first, so strangers never see validation feedback
        await position_service.get_for_update(db, ctx, position_id)
        data = parse_form(PositionForm, form)
        outcome = await position_service.update_position(db, ctx, position_id, data)
    except (Forbidden, NotFound) as exc:
        return redirect(request, "/positions", error=exc.message)
    except PortalError as exc:
        await db.rollback()
        return await render(
            request, db, "positions/form.html",
            values=_form_values(form), position_id=position_id, errors=error_messages(exc),
        )

    if outcome is UpdateOutcome.UNCHANGED:
        return redirect(request, "/positions", success="No changes were made.")
    return redirect(request, "/positions", success="The position has been updated.")


@router.post("/{position_id}/delete")
async def delete_position(
    position_id: int,
    request: Request,
    ctx: RequestContext = Depends(require_context),
    db: AsyncSession = Depends(get_db),
):
    form = await request.form()
    try:
        check_csrf(request, form)
        await position_service.delete_position(db, ctx, position_id)
    except PortalError as exc:
        await db.rollback()
        return redirect(request, "/positions", error=exc.message)

    return redirect(request, "/positions", success="The position has been deleted.")


@router.get("/{position_id}/applicants", response_class=HTMLResponse)
async def list_applicants(
    position_id: int,
    request: Request,
    ctx: RequestContext = Depends(require_context),
    db: AsyncSession = Depends(get_db),
):
    try:
        position, applications = await application_service.list_by_position(db, ctx, position_id)
    except PortalError as exc:
        return redirect(request, "/positions", error=exc.message)

    return await render(
        request, db, "positions/applicants.html",
        position=position,
        applications=applications,
        statuses=APPLICATION_STATUSES,
    )


@router.post("/{position_id}/applications/{application_id}/status")
async def update_application_status(
    position_id: int,
    application_id: int,
    request: Request,
    ctx: RequestContext = Depends(require_context),
    db: AsyncSession = Depends(get_db),
):
    form = await request.form()
    applicants_url = f"/positions/{position_id}/applicants"
    try:
        check_csrf(request, form)
        data = parse_form(ApplicationStatusForm, form)
        await application_service.update_status(db, ctx, position_id, application_id, data)
    except (Forbidden, NotFound) as exc:
        await db.rollback()
        return redirect(request, "/positions", error=exc.message)
    except PortalError as exc:
        await db.rollback()
        return redirect(request, applicants_url, error=" ".join(error_messages(exc)))

    return redirect(request, applicants_url, success="The application status has been updated.")
