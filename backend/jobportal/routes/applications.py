"""Application routes — apply for a position and withdraw."""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse
from sqlalchemy.ext.asyncio import AsyncSession

from jobportal.dependencies.auth import check_csrf, require_context
from jobportal.models.base import get_db
from jobportal.routes.web import error_messages, redirect, render
from jobportal.schemas import ApplyForm, parse_form
from jobportal.services import application_service, document_service, position_service
from jobportal.services.errors import DuplicateApplication, Forbidden, NotFound, PortalError
from jobportal.services.policy import RequestContext, can_apply

router = APIRouter()


async def _apply_page(request: Request, db: AsyncSession, ctx: RequestContext, position_id: int, errors=None):
    position = await position_service.get_summary(db, position_id)
    if position is None:
        return redirect(request, "/positions", error="The position was not found.")
    return await render(
        request, db, "applications/apply.html",
        position=position,
        cv_documents=await document_service.find_by_user(db, ctx.user_id, "cv"),
        cover_letter_documents=await document_service.find_by_user(db, ctx.user_id, "cover_letter"),
        errors=errors or [],
    )


@router.get("/positions/{position_id}/apply", response_class=HTMLResponse)
async def apply_page(
    position_id: int,
    request: Request,
    ctx: RequestContext = Depends(require_context),
    db: AsyncSession = Depends(get_db),
):
    if not can_apply(ctx):
        return redirect(request, "/positions", error="Only students can apply for positions.")
    if await application_service.has_applied(db, position_id, ctx.user_id):
        return redirect(request, "/positions", error=DuplicateApplication.default_message)
    return await _apply_page(request, db, ctx, position_id)


@router.post("/positions/{position_id}/apply", response_class=HTMLResponse)
async def apply_submit(
    position_id: int,
    request: Request,
    ctx: RequestContext = Depends(require_context),
    db: AsyncSession = Depends(get_db),
):
    form = await request.form()
    try:
        check_csrf(request, form)
        data = parse_form(ApplyForm, form)
        cv_upload = None
        cover_letter_upload = None
        if data.cv_document_id is None:
            cv_upload = await document_service.read_upload(form.get("cv_file"))
        if data.cover_letter_document_id is None:
            cover_letter_upload = await document_service.read_upload(form.get("cover_letter_file"))
        await application_service.submit_application(
            db, ctx, position_id, data,
            cv_upload=cv_upload,
            cover_letter_upload=cover_letter_upload,
        )
    except (Forbidden, NotFound, DuplicateApplication) as exc:
        await db.rollback()
        return redirect(request, "/positions", error=exc.message)
    except PortalError as exc:
        await db.rollback()
        return await _apply_page(request, db, ctx, position_id, errors=error_messages(exc))

    return redirect(request, "/min-side", success="Your application has been submitted.")


@router.post("/applications/{application_id}/withdraw")
async def withdraw(
    application_id: int,
    request: Request,
    ctx: RequestContext = Depends(require_context),
    db: AsyncSession = Depends(get_db),
):
    form = await request.form()
    try:
        check_csrf(request, form)
        await application_service.withdraw(db, ctx, application_id)
    except PortalError as exc:
        await db.rollback()
        return redirect(request, "/min-side", error=exc.message)

    return redirect(request, "/min-side", success="The application has been withdrawn.")
