"""Position registry: validation, ownership, no-change updates, cascades."""

import pytest

from conftest import make_position, make_user, pdf_file
from jobportal.dependencies.auth import context_for
from jobportal.schemas import PositionForm, parse_form
from jobportal.services import application_service, document_service, position_service
from jobportal.services.errors import Forbidden, NotFound, ValidationError
from jobportal.services.position_service import UpdateOutcome


def position_data(**overrides):
    data = {
        "title": "Teaching assistant",
        "department": "Informatics",
        "location": "Oslo",
        "amount": "2",
        "description": "",
        "resource_url": "",
    }
    data.update(overrides)
    return data


@pytest.mark.parametrize("overrides", [
    {"title": "  "},
    {"department": ""},
    {"amount": "0"},
    {"amount": "26"},
    {"amount": "many"},
    {"resource_url": "not a url"},
])
def test_invalid_positions_are_rejected(overrides):
    with pytest.raises(ValidationError):
        parse_form(PositionForm, position_data(**overrides))


@pytest.mark.parametrize("field, limit", [
    ("title", 255),
    ("department", 255),
    ("location", 255),
])
def test_position_text_is_bounded_by_its_column(field, limit):
    assert getattr(parse_form(PositionForm, position_data(**{field: "x" * limit})), field) == "x" * limit
    with pytest.raises(ValidationError) as exc_info:
        parse_form(PositionForm, position_data(**{field: "x" * (limit + 1)}))
    assert f"{field.capitalize()} must be at most {limit} characters." in exc_info.value.errors


def test_blank_optional_fields_become_none():
    form = parse_form(PositionForm, position_data(resource_url="https://example.com/job"))
    assert form.description is None
    assert form.resource_url == "https://example.com/job"
    assert form.amount == 2


async def test_student_cannot_create_positions(db, student):
    with pytest.raises(Forbidden):
        await position_service.create_position(db, context_for(student), parse_form(PositionForm, position_data()))


async def test_listing_includes_creator_and_application_count(db, employee, student):
    position = await make_position(db, employee)
    cv = await document_service.upload_document(db, student.id, "cv", pdf_file())
    letter = await document_service.upload_document(db, student.id, "cover_letter", pdf_file("letter.pdf"))
    await application_service.apply(db, context_for(student), position.id, cv.id, letter.id)
    await db.commit()

    [summary] = await position_service.list_all(db)
    assert summary.creator_username == "employee"
    assert summary.application_count == 1
    assert await position_service.count(db) == 1


async def test_identical_update_writes_nothing(db, employee, statements):
    position = await make_position(db, employee)
    form = parse_form(PositionForm, position_data())
    statements.clear()

    outcome = await position_service.update_position(db, context_for(employee), position.id, form)
    await db.commit()

    assert outcome is UpdateOutcome.UNCHANGED
    assert not db.dirty
    writes = [s for s in statements if s.lstrip().upper().startswith(("UPDATE", "INSERT", "DELETE"))]
    assert writes == []
    assert statements


async def test_update_changes_fields(db, employee):
    position = await make_position(db, employee)
    form = parse_form(PositionForm, position_data(title="Senior teaching assistant", amount="5"))

    outcome = await position_service.update_position(db, context_for(employee), position.id, form)
    await db.commit()

    assert outcome is UpdateOutcome.UPDATED
    refreshed = await position_service.find_by_id(db, position.id)
    assert refreshed.title == "Senior teaching assistant"
    assert refreshed.amount == 5


async def test_only_creator_or_admin_may_edit(db, employee, admin):
    other = await make_user(db, "other", role="employee")
    position = await make_position(db, employee)
    form = parse_form(PositionForm, position_data(title="Hijacked"))

    with pytest.raises(Forbidden):
        await position_service.update_position(db, context_for(other), position.id, form)

    outcome = await position_service.update_position(db, context_for(admin), position.id, form)
    assert outcome is UpdateOutcome.UPDATED


async def test_missing_position_is_not_found(db, employee):
    with pytest.raises(NotFound):
        await position_service.delete_position(db, context_for(employee), 999)


async def test_delete_cascades_to_applications(db, employee, student):
    position = await make_position(db, employee)
    cv = await document_service.upload_document(db, student.id, "cv", pdf_file())
    letter = await document_service.upload_document(db, student.id, "cover_letter", pdf_file("letter.pdf"))
    await application_service.apply(db, context_for(student), position.id, cv.id, letter.id)
    await db.commit()

    await position_service.delete_position(db, context_for(employee), position.id)
    await db.commit()

    assert await position_service.find_by_id(db, position.id) is None
    assert await application_service.list_by_user(db, student.id) == []
    # Documents belong to the student, not the position
    assert len(await document_service.find_by_user(db, student.id)) == 2
