"""Document store: upload validation, storage layout, access and traversal guards."""

import pytest

from conftest import PDF_BYTES, make_position, make_user, pdf_file
from jobportal.dependencies.auth import context_for
from jobportal.models.document import Document
from jobportal.services import application_service, document_service
from jobportal.services.document_service import IncomingFile
from jobportal.services.errors import NotFound, ValidationError

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


async def test_upload_stores_file_under_user_directory(db, student, uploads_dir):
    document = await document_service.upload_document(db, student.id, "cv", pdf_file("My CV.pdf"))
    await db.commit()

    assert document.file_path.startswith(f"users/{student.id}/cv_")
    assert document.file_path.endswith(".pdf")
    assert document.mime_type == "application/pdf"
    assert document.original_name == "My CV.pdf"
    assert (uploads_dir / document.file_path).read_bytes() == PDF_BYTES


async def test_uploads_never_overwrite_each_other(db, student):
    first = await document_service.upload_document(db, student.id, "cv", pdf_file())
    second = await document_service.upload_document(db, student.id, "cv", pdf_file())
    assert first.file_path != second.file_path


def test_text_disguised_as_pdf_is_rejected():
    fake = IncomingFile(filename="cv.pdf", content=b"just some text", content_type="application/pdf")
    with pytest.raises(ValidationError, match="Invalid file type"):
        document_service.validate_upload(fake)


def test_image_disguised_as_pdf_is_rejected():
    fake = IncomingFile(filename="cv.pdf", content=PNG_BYTES, content_type="application/pdf")
    with pytest.raises(ValidationError, match="Invalid file type"):
        document_service.validate_upload(fake)


def test_pdf_with_wrong_extension_is_rejected():
    with pytest.raises(ValidationError, match="Invalid file extension"):
        document_service.validate_upload(pdf_file("cv.exe"))


def test_oversized_file_is_rejected(monkeypatch):
    from jobportal.config import get_settings

    monkeypatch.setattr(get_settings(), "max_upload_bytes", 16)
    with pytest.raises(ValidationError, match="too large"):
        document_service.validate_upload(pdf_file())


def test_transport_error_is_reported_first():
    broken = IncomingFile(filename="cv.pdf", content=b"", error="read failed")
    with pytest.raises(ValidationError, match="Error while uploading"):
        document_service.validate_upload(broken)


async def test_rejected_upload_writes_nothing(db, student, uploads_dir):
    with pytest.raises(ValidationError):
        await document_service.upload_document(db, student.id, "cv", IncomingFile("cv.pdf", b"plain text"))
    assert not (uploads_dir / "users").exists()
    assert await document_service.find_by_user(db, student.id) == []


async def test_find_by_user_filters_by_type(db, student):
    await document_service.upload_document(db, student.id, "cv", pdf_file())
    await document_service.upload_document(db, student.id, "cover_letter", pdf_file("letter.pdf"))

    assert [d.type for d in await document_service.find_by_user(db, student.id, "cv")] == ["cv"]
    assert len(await document_service.find_by_user(db, student.id)) == 2


async def test_delete_requires_ownership_and_removes_file(db, student, uploads_dir):
    other = await make_user(db, "other")
    document = await document_service.upload_document(db, student.id, "cv", pdf_file())
    await db.commit()
    path = uploads_dir / document.file_path

    with pytest.raises(NotFound):
        await document_service.delete_by_id(db, document.id, other.id)

    await document_service.delete_by_id(db, document.id, student.id)
    await db.commit()
    assert not path.exists()
    assert await document_service.find_by_id(db, document.id) is None


async def test_delete_succeeds_when_file_already_gone(db, student, uploads_dir):
    document = await document_service.upload_document(db, student.id, "cv", pdf_file())
    (uploads_dir / document.file_path).unlink()

    await document_service.delete_by_id(db, document.id, student.id)
    assert await document_service.find_by_id(db, document.id) is None


async def test_access_for_owner_admin_and_position_creator_only(db, student, employee, admin):
    outsider = await make_user(db, "outsider", role="employee")
    position = await make_position(db, employee)
    cv = await document_service.upload_document(db, student.id, "cv", pdf_file())
    letter = await document_service.upload_document(db, student.id, "cover_letter", pdf_file("letter.pdf"))
    await application_service.apply(db, context_for(student), position.id, cv.id, letter.id)
    await db.commit()

    assert await document_service.can_access(db, cv.id, student.id, "student")
    assert await document_service.can_access(db, cv.id, admin.id, "admin")
    assert await document_service.can_access(db, cv.id, employee.id, "employee")
    assert not await document_service.can_access(db, cv.id, outsider.id, "employee")
    assert not await document_service.can_access(db, 999, admin.id, "admin")


async def test_download_returns_path_for_allowed_user(db, student):
    document = await document_service.upload_document(db, student.id, "cv", pdf_file())
    await db.commit()

    found, path = await document_service.download(db, document.id, context_for(student))
    assert found.id == document.id
    assert path.read_bytes() == PDF_BYTES


async def test_download_denied_looks_like_missing(db, student):
    stranger = await make_user(db, "stranger")
    document = await document_service.upload_document(db, student.id, "cv", pdf_file())
    await db.commit()

    with pytest.raises(NotFound):
        await document_service.download(db, document.id, context_for(stranger))


async def test_download_rejects_path_traversal(db, student, uploads_dir, tmp_path):
    secret = tmp_path / "secret.txt"
    secret.write_text("top secret")
    document = Document(
        user_id=student.id,
        type="cv",
        file_path="../secret.txt",
        original_name="secret.txt",
        mime_type="application/pdf",
    )
    db.add(document)
    await db.commit()

    with pytest.raises(NotFound):
        await document_service.download(db, document.id, context_for(student))


def test_resolve_stored_path_stays_inside_root(tmp_path):
    root = tmp_path / "uploads"
    (root / "users" / "1").mkdir(parents=True)
    inside = root / "users" / "1" / "cv.pdf"
    inside.write_bytes(PDF_BYTES)
    (tmp_path / "outside.pdf").write_bytes(PDF_BYTES)

    assert document_service.resolve_stored_path("users/1/cv.pdf", root) == inside.resolve()
    assert document_service.resolve_stored_path("../outside.pdf", root) is None
    assert document_service.resolve_stored_path(str(tmp_path / "outside.pdf"), root) is None
    assert document_service.resolve_stored_path("users/1/missing.pdf", root) is None


def test_download_media_type_falls_back_for_unknown_types():
    assert document_service.download_media_type(Document(mime_type="application/pdf")) == "application/pdf"
    assert document_service.download_media_type(Document(mime_type="text/html")) == "application/octet-stream"


async def test_delete_all_for_user_removes_directory(db, student, uploads_dir):
    await document_service.upload_document(db, student.id, "cv", pdf_file())
    await document_service.upload_document(db, student.id, "cover_letter", pdf_file("letter.pdf"))

    removed = await document_service.delete_all_for_user(db, student.id)
    assert removed == 2
    assert not (uploads_dir / "users" / str(student.id)).exists()
