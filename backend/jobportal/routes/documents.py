"""Document routes — upload, delete and download CVs and cover letters."""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession

from jobportal.dependencies.auth import check_csrf, require_context
from jobportal.models.base import get_db
from jobportal.routes.web import redirect, render
from jobportal.services import document_service
from jobportal.services.errors import NotFound, PortalError
from jobportal.services.policy import RequestContext, can_manage_document

router = APIRouter(prefix="/documents")

UPLOAD_FIELDS = (
    ("cv_file", "cv", "CV"),
    ("cover_letter_file", "cover_letter", "Cover letter"),
)


@router.post("/upload")
async def upload(
    request: Request,
    ctx: RequestContext = Depends(require_context),
    db: AsyncSession = Depends(get_db),
):
    """Store a CV and/or a cover letter, reporting each file separately."""
    form = await request.form()
    try:
        check_csrf(request, form)
    except PortalError as exc:
        return redirect(request, "/min-side", error=exc.message)

    uploaded, failed = [], []
    for field, doc_type, label in UPLOAD_FIELDS:
        incoming = await document_service.read_upload(form.get(field))
        if incoming is None:
            continue
        try:
            await document_service.upload_document(db, ctx.user_id, doc_type, incoming)
            # Each file is its own unit; a later failure must not discard it
            await db.commit()
        except PortalError as exc:
            failed.append(f"{label}: {exc.message}")
        else:
            uploaded.append(label)

    if not uploaded and not failed:
        return redirect(request, "/min-side", error="No file was selected.")

    success = f"Uploaded: {', '.join(uploaded)}." if uploaded else None
    error = " ".join(failed) if failed else None
    return redirect(request, "/min-side", success=success, error=error)


@router.post("/{document_id}/delete")
async def delete(
    document_id: int,
    request: Request,
    ctx: RequestContext = Depends(require_context),
    db: AsyncSession = Depends(get_db),
):
    form = await request.form()
    try:
        check_csrf(request, form)
        owner_id = ctx.user_id
        if ctx.is_admin:
            document = await document_service.find_by_id(db, document_id)
            if document is not None and can_manage_document(ctx, document.user_id):
                owner_id = document.user_id
        await document_service.delete_by_id(db, document_id, owner_id)
    except PortalError as exc:
        await db.rollback()
        return redirect(request, "/min-side", error=exc.message)

    return redirect(request, "/min-side", success="The document has been deleted.")


@router.get("/{document_id}/download")
async def download(
    document_id: int,
    request: Request,
    ctx: RequestContext = Depends(require_context),
    db: AsyncSession = Depends(get_db),
):
    try:
        document, path = await document_service.download(db, document_id, ctx)
    except NotFound as exc:
        return await render(request, db, "error.html", status_code=404, message=exc.message)

    return FileResponse(
        path,
        media_type=document_service.download_media_type(document),
        filename=document.original_name,
    )
