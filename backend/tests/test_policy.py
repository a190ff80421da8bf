"""Role and ownership rules, evaluated without a session or database."""

import pytest

from jobportal.services.errors import Forbidden, Unauthenticated
from jobportal.services.policy import (
    RequestContext,
    can_admin_delete_user,
    can_apply,
    can_change_role,
    can_manage_document,
    can_manage_positions,
    can_modify_position,
    can_withdraw,
    ensure,
    require_authenticated,
)

STUDENT = RequestContext(user_id=1, username="student", role="student")
EMPLOYEE = RequestContext(user_id=2, username="employee", role="employee")
OTHER_EMPLOYEE = RequestContext(user_id=3, username="other", role="employee")
ADMIN = RequestContext(user_id=4, username="admin", role="admin")


def test_require_authenticated():
    with pytest.raises(Unauthenticated):
        require_authenticated(None)
    assert require_authenticated(STUDENT) is STUDENT


@pytest.mark.parametrize("ctx, expected", [
    (STUDENT, False),
    (EMPLOYEE, True),
    (ADMIN, True),
])
def test_can_manage_positions(ctx, expected):
    assert can_manage_positions(ctx) is expected


@pytest.mark.parametrize("ctx, expected", [
    (STUDENT, False),
    (EMPLOYEE, True),
    (OTHER_EMPLOYEE, False),
    (ADMIN, True),
])
def test_can_modify_position_created_by_employee(ctx, expected):
    assert can_modify_position(ctx, creator_id=EMPLOYEE.user_id) is expected


def test_student_cannot_modify_even_a_position_they_somehow_own():
    assert not can_modify_position(STUDENT, creator_id=STUDENT.user_id)


@pytest.mark.parametrize("ctx, expected", [
    (STUDENT, True),
    (EMPLOYEE, False),
    (ADMIN, True),
])
def test_can_apply(ctx, expected):
    assert can_apply(ctx) is expected


def test_withdraw_and_documents_are_owner_or_admin():
    assert can_withdraw(STUDENT, STUDENT.user_id)
    assert not can_withdraw(EMPLOYEE, STUDENT.user_id)
    assert can_withdraw(ADMIN, STUDENT.user_id)
    assert can_manage_document(STUDENT, STUDENT.user_id)
    assert not can_manage_document(OTHER_EMPLOYEE, STUDENT.user_id)
    assert can_manage_document(ADMIN, STUDENT.user_id)


def test_admin_rules_exclude_self():
    assert can_change_role(ADMIN, STUDENT.user_id)
    assert not can_change_role(ADMIN, ADMIN.user_id)
    assert not can_change_role(EMPLOYEE, STUDENT.user_id)
    assert can_admin_delete_user(ADMIN, EMPLOYEE.user_id)
    assert not can_admin_delete_user(ADMIN, ADMIN.user_id)
    assert not can_admin_delete_user(STUDENT, EMPLOYEE.user_id)


def test_ensure_raises_forbidden_with_message():
    ensure(True)
    with pytest.raises(Forbidden, match="nope"):
        ensure(False, "nope")
