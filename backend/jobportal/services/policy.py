"""Authorization policy — role and ownership rules for every entity operation.

Every check takes an explicit ``RequestContext`` instead of reading the
session, so routes and tests evaluate the same rules the same way.
"""

from dataclasses import dataclass

from jobportal.services.errors import Forbidden, Unauthenticated

STUDENT = "student"
EMPLOYEE = "employee"
ADMIN = "admin"

POSITION_MANAGERS = (EMPLOYEE, ADMIN)
APPLICANT_ROLES = (STUDENT, ADMIN)


@dataclass(frozen=True)
class RequestContext:
    """Authenticated identity for one request."""

    user_id: int
    username: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN

    def owns(self, owner_id: int | None) -> bool:
        return owner_id is not None and owner_id == self.user_id


def require_authenticated(ctx: RequestContext | None) -> RequestContext:
    if ctx is None:
        raise Unauthenticated()
    return ctx


def can_manage_positions(ctx: RequestContext) -> bool:
    return ctx.role in POSITION_MANAGERS


def can_modify_position(ctx: RequestContext, creator_id: int) -> bool:
    """Edit, delete, and review applicants: the creator or any admin."""
    return ctx.is_admin or (ctx.role == EMPLOYEE and ctx.owns(creator_id))


def can_apply(ctx: RequestContext) -> bool:
    return ctx.role in APPLICANT_ROLES


def can_withdraw(ctx: RequestContext, applicant_id: int) -> bool:
    return ctx.is_admin or ctx.owns(applicant_id)


def can_manage_document(ctx: RequestContext, owner_id: int) -> bool:
    return ctx.is_admin or ctx.owns(owner_id)


def can_change_role(ctx: RequestContext, target_id: int) -> bool:
    """Admins change anyone's role but their own."""
    return ctx.is_admin and not ctx.owns(target_id)


def can_admin_delete_user(ctx: RequestContext, target_id: int) -> bool:
    """Admins delete anyone but themselves; self-deletion has its own path."""
    return ctx.is_admin and not ctx.owns(target_id)


def ensure(allowed: bool, message: str | None = None) -> None:
    if not allowed:
        raise Forbidden(message)
