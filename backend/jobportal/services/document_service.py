"""Document store — validated uploads, per-user storage, guarded downloads.

Files live under ``<uploads_dir>/users/<user_id>/<type>_<timestamp>.<ext>``
and the database keeps only the path relative to the uploads root. The
sniffed content type decides whether a file is accepted; the client's
claimed type is ignored.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

import filetype
from fastapi import UploadFile
from sqlalchemy import or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from jobportal.config import get_settings
from jobportal.models.application import Application
from jobportal.models.document import Document, DOCUMENT_TYPES
from jobportal.models.position import Position
from jobportal.services.errors import NotFound, StorageFailure, ValidationError
from jobportal.services.policy import ADMIN, RequestContext
from jobportal.services.timeutil import utcnow

logger = logging.getLogger(__name__)

DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
ALLOWED_MIME_TYPES = ("application/pdf", "application/msword", DOCX_MIME)
ALLOWED_EXTENSIONS = ("pdf", "doc", "docx")
FALLBACK_MEDIA_TYPE = "application/octet-stream"


@dataclass
class IncomingFile:
    """A file as received from the client, before any validation."""

    filename: str
    content: bytes
    content_type: str | None = None
    error: str | None = None


def uploads_root() -> Path:
    return Path(get_settings().uploads_dir)


async def read_upload(upload: UploadFile | None) -> IncomingFile | None:
    """Read a form upload, stopping one byte past the size limit.

    Returns None when the field was left empty.
    """
    if upload is None or not getattr(upload, "filename", None):
        return None
    limit = get_settings().max_upload_bytes
    try:
        content = await upload.read(limit + 1)
    except OSError:
        logger.exception("Failed to read uploaded file %r", upload.filename)
        return IncomingFile(filename=upload.filename, content=b"", error="read failed")
    finally:
        await upload.close()
    return IncomingFile(filename=upload.filename, content=content, content_type=upload.content_type)


def sniff_mime_type(content: bytes) -> str | None:
    kind = filetype.guess(content)
    return kind.mime if kind else None


def file_extension(filename: str) -> str:
    if "." not in filename:
        return ""
    return filename.rsplit(".", 1)[1].lower()


def validate_upload(incoming: IncomingFile) -> tuple[str, str]:
    """Check transport, size, sniffed type, then extension. Returns (mime_type, extension)."""
    if incoming.error:
        raise ValidationError("Error while uploading the file.")

    if len(incoming.content) > get_settings().max_upload_bytes:
        limit_mb = get_settings().max_upload_bytes // (1024 * 1024)
        raise ValidationError(f"The file is too large (max {limit_mb}MB).")

    mime_type = sniff_mime_type(incoming.content)
    if mime_type not in ALLOWED_MIME_TYPES:
        raise ValidationError("Invalid file type. Only PDF, DOC and DOCX are allowed.")

    extension = file_extension(incoming.filename)
    if extension not in ALLOWED_EXTENSIONS:
        raise ValidationError("Invalid file extension. Only .pdf, .doc and .docx are allowed.")

    return mime_type, extension


def _original_name(filename: str) -> str:
    name = os.path.basename(filename.replace("\\", "/")).strip()
    return (name or "document")[:255]


async def upload_document(
    db: AsyncSession,
    user_id: int,
    doc_type: str,
    incoming: IncomingFile,
) -> Document:
    """Validate and persist one uploaded file for ``user_id``.

    If the row cannot be recorded the session is rolled back and the file
    removed, so callers commit whatever they need to keep beforehand.
    """
    if doc_type not in DOCUMENT_TYPES:
        raise ValidationError("Unknown document type.")

    mime_type, extension = validate_upload(incoming)

    user_dir = uploads_root() / "users" / str(user_id)
    filename = f"{doc_type}_{utcnow():%Y%m%d_%H%M%S_%f}.{extension}"
    target = user_dir / filename

    try:
        user_dir.mkdir(parents=True, exist_ok=True)
        with target.open("xb") as fh:
            fh.write(incoming.content)
    except OSError:
        logger.exception("Failed to store upload for user %s", user_id)
        raise StorageFailure("Could not save the file.") from None

    document = Document(
        user_id=user_id,
        type=doc_type,
        file_path=f"users/{user_id}/{filename}",
        original_name=_original_name(incoming.filename),
        mime_type=mime_type,
    )
    db.add(document)
    try:
        await db.flush()
    except SQLAlchemyError:
        logger.exception("Failed to record document for user %s; removing %s", user_id, target)
        await db.rollback()
        remove_file(target)
        raise StorageFailure("Could not save document information.") from None

    logger.info("Stored %s document %s for user %s", doc_type, document.id, user_id)
    return document


async def find_by_id(db: AsyncSession, document_id: int) -> Document | None:
    result = await db.execute(select(Document).where(Document.id == document_id))
    return result.scalar_one_or_none()


async def find_by_user(db: AsyncSession, user_id: int, doc_type: str | None = None) -> list[Document]:
    query = select(Document).where(Document.user_id == user_id)
    if doc_type:
        query = query.where(Document.type == doc_type)
    query = query.order_by(Document.uploaded_at.desc(), Document.id.desc())
    result = await db.execute(query)
    return list(result.scalars().all())


def remove_file(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError:
        logger.warning("Could not remove file %s", path, exc_info=True)


def stored_path(document: Document) -> Path:
    return uploads_root() / document.file_path


async def delete_by_id(db: AsyncSession, document_id: int, user_id: int) -> None:
    """Delete one of the user's documents: file first (best effort), then the row."""
    document = await find_by_id(db, document_id)
    if document is None or document.user_id != user_id:
        raise NotFound("Could not delete the document. It may not belong to you.")

    remove_file(stored_path(document))
    await db.delete(document)
    await db.flush()
    logger.info("Deleted document %s for user %s", document_id, user_id)


async def delete_all_for_user(db: AsyncSession, user_id: int) -> int:
    """Delete every document a user owns and their upload directory if it is empty."""
    documents = await find_by_user(db, user_id)
    for document in documents:
        remove_file(stored_path(document))
        await db.delete(document)
    await db.flush()

    user_dir = uploads_root() / "users" / str(user_id)
    if user_dir.is_dir():
        try:
            user_dir.rmdir()
        except OSError:
            logger.warning("Upload directory %s not removed", user_dir, exc_info=True)

    if documents:
        logger.info("Deleted %d documents for user %s", len(documents), user_id)
    return len(documents)


async def _can_access_document(db: AsyncSession, document: Document, user_id: int, role: str) -> bool:
    if document.user_id == user_id or role == ADMIN:
        return True

    # Employers see files attached to applications for their own positions
    result = await db.execute(
        select(Application.id)
        .join(Position, Application.position_id == Position.id)
        .where(
            Position.creator_id == user_id,
            or_(
                Application.cv_document_id == document.id,
                Application.cover_letter_document_id == document.id,
            ),
        )
        .limit(1)
    )
    return result.scalar_one_or_none() is not None


async def can_access(db: AsyncSession, document_id: int, user_id: int, role: str) -> bool:
    document = await find_by_id(db, document_id)
    if document is None:
        return False
    return await _can_access_document(db, document, user_id, role)


def resolve_stored_path(file_path: str, root: Path | None = None) -> Path | None:
    """Resolve a stored relative path, refusing anything outside the uploads root."""
    base = (root or uploads_root()).resolve()
    candidate = (base / file_path).resolve()
    if not candidate.is_relative_to(base) or not candidate.is_file():
        return None
    return candidate


async def download(db: AsyncSession, document_id: int, ctx: RequestContext) -> tuple[Document, Path]:
    """Return the document and its on-disk path if the caller may read it.

    Missing rows, denied access and unsafe paths all raise the same NotFound.
    """
    document = await find_by_id(db, document_id)
    if document is None or not await _can_access_document(db, document, ctx.user_id, ctx.role):
        raise NotFound("The file was not found.")

    path = resolve_stored_path(document.file_path)
    if path is None:
        logger.warning("Rejected download of document %s: path outside uploads or missing", document_id)
        raise NotFound("The file was not found.")
    return document, path


def download_media_type(document: Document) -> str:
    if document.mime_type in ALLOWED_MIME_TYPES:
        return document.mime_type
    return FALLBACK_MEDIA_TYPE
