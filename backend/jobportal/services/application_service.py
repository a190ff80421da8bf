"""Application ledger — apply, review, withdraw.

One application per (position, user). The pre-check catches the normal
case; the unique constraint settles concurrent submissions, and both paths
surface as DuplicateApplication.
"""

import logging
from pathlib import Path

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from jobportal.models.application import Application
from jobportal.models.document import Document
from jobportal.models.position import Position
from jobportal.schemas.application import ApplicationStatusForm, ApplyForm
from jobportal.services import document_service, position_service
from jobportal.services.document_service import IncomingFile
from jobportal.services.errors import (
    DuplicateApplication,
    NotFound,
    PortalError,
    StorageFailure,
    ValidationError,
)
from jobportal.services.policy import (
    RequestContext,
    can_apply,
    can_withdraw,
    ensure,
)

logger = logging.getLogger(__name__)


async def has_applied(db: AsyncSession, position_id: int, user_id: int) -> bool:
    result = await db.execute(
        select(Application.id)
        .where(Application.position_id == position_id, Application.user_id == user_id)
        .limit(1)
    )
    return result.scalar_one_or_none() is not None


async def find_by_id(db: AsyncSession, application_id: int) -> Application | None:
    result = await db.execute(select(Application).where(Application.id == application_id))
    return result.scalar_one_or_none()


async def _owned_document(db: AsyncSession, document_id: int, user_id: int, doc_type: str) -> Document:
    document = await document_service.find_by_id(db, document_id)
    if document is None or document.user_id != user_id or document.type != doc_type:
        label = "CV" if doc_type == "cv" else "cover letter"
        raise ValidationError(f"The selected {label} is not available.")
    return document


async def apply(
    db: AsyncSession,
    ctx: RequestContext,
    position_id: int,
    cv_document_id: int,
    cover_letter_document_id: int,
    notes: str | None = None,
) -> Application:
    """Create an application for the caller with two of their own documents."""
    ensure(can_apply(ctx), "Only students can apply for positions.")

    position = await position_service.find_by_id(db, position_id)
    if position is None:
        raise NotFound("The position was not found.")

    if await has_applied(db, position_id, ctx.user_id):
        raise DuplicateApplication()

    await _owned_document(db, cv_document_id, ctx.user_id, "cv")
    await _owned_document(db, cover_letter_document_id, ctx.user_id, "cover_letter")

    application = Application(
        position_id=position_id,
        user_id=ctx.user_id,
        cv_document_id=cv_document_id,
        cover_letter_document_id=cover_letter_document_id,
        notes=notes,
    )
    db.add(application)
    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        if await has_applied(db, position_id, ctx.user_id):
            logger.info("Concurrent duplicate application by user %s for position %s", ctx.user_id, position_id)
            raise DuplicateApplication() from None
        logger.exception("Failed to store application for position %s", position_id)
        raise StorageFailure("Could not submit the application. Please try again later.") from None

    logger.info("User %s applied for position %s", ctx.user_id, position_id)
    return application


async def submit_application(
    db: AsyncSession,
    ctx: RequestContext,
    position_id: int,
    form: ApplyForm,
    cv_upload: IncomingFile | None = None,
    cover_letter_upload: IncomingFile | None = None,
) -> Application:
    """Apply with selected documents, uploading new ones for empty slots.

    Files written during a failed submission are removed again.
    """
    ensure(can_apply(ctx), "Only students can apply for positions.")
    if await position_service.find_by_id(db, position_id) is None:
        raise NotFound("The position was not found.")
    if await has_applied(db, position_id, ctx.user_id):
        raise DuplicateApplication()

    if form.cv_document_id is None and cv_upload is None:
        raise ValidationError("Select an existing CV or upload a new one.")
    if form.cover_letter_document_id is None and cover_letter_upload is None:
        raise ValidationError("Select an existing cover letter or upload a new one.")

    uploaded: list[Path] = []
    try:
        cv_id = form.cv_document_id
        if cv_id is None:
            document = await document_service.upload_document(db, ctx.user_id, "cv", cv_upload)
            uploaded.append(document_service.stored_path(document))
            cv_id = document.id

        cover_letter_id = form.cover_letter_document_id
        if cover_letter_id is None:
            document = await document_service.upload_document(db, ctx.user_id, "cover_letter", cover_letter_upload)
            uploaded.append(document_service.stored_path(document))
            cover_letter_id = document.id

        return await apply(db, ctx, position_id, cv_id, cover_letter_id)
    except PortalError:
        if uploaded:
            await db.rollback()
            for path in uploaded:
                document_service.remove_file(path)
        raise


async def update_status(
    db: AsyncSession,
    ctx: RequestContext,
    position_id: int,
    application_id: int,
    form: ApplicationStatusForm,
) -> Application:
    """Set status (and notes, when given) on an application to the caller's position."""
    await position_service.get_for_update(db, ctx, position_id)

    application = await find_by_id(db, application_id)
    if application is None or application.position_id != position_id:
        raise NotFound("The application was not found.")

    application.status = form.status
    if form.notes is not None:
        application.notes = form.notes
    await db.flush()
    logger.info("User %s set application %s to %s", ctx.user_id, application_id, form.status)
    return application


async def withdraw(db: AsyncSession, ctx: RequestContext, application_id: int) -> None:
    application = await find_by_id(db, application_id)
    if application is None:
        raise NotFound("The application was not found.")
    ensure(can_withdraw(ctx, application.user_id), "You cannot withdraw this application.")

    await db.delete(application)
    await db.flush()
    logger.info("User %s withdrew application %s", ctx.user_id, application_id)


async def list_by_position(db: AsyncSession, ctx: RequestContext, position_id: int) -> tuple[Position, list[Application]]:
    """Applicants for one position, visible to its creator and admins."""
    position = await position_service.get_for_update(db, ctx, position_id)
    result = await db.execute(
        select(Application)
        .where(Application.position_id == position_id)
        .options(
            selectinload(Application.user),
            selectinload(Application.cv_document),
            selectinload(Application.cover_letter_document),
        )
        .order_by(Application.application_date.desc(), Application.id.desc())
    )
    return position, list(result.scalars().all())


async def list_by_user(db: AsyncSession, user_id: int) -> list[Application]:
    result = await db.execute(
        select(Application)
        .where(Application.user_id == user_id)
        .options(selectinload(Application.position))
        .order_by(Application.application_date.desc(), Application.id.desc())
    )
    return list(result.scalars().all())


async def list_all(db: AsyncSession) -> list[Application]:
    result = await db.execute(
        select(Application)
        .options(selectinload(Application.position), selectinload(Application.user))
        .order_by(Application.application_date.desc(), Application.id.desc())
    )
    return list(result.scalars().all())


async def delete_all_for_user(db: AsyncSession, user_id: int) -> int:
    result = await db.execute(
        delete(Application).where(Application.user_id == user_id).execution_options(synchronize_session=False)
    )
    return result.rowcount or 0
