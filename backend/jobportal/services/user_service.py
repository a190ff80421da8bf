"""Credential lifecycle — registration, login with lockout, password reset, roles.

Lockout state machine:
    Active --(max_failed_logins consecutive failures)--> Locked until now + lockout_minutes
    Locked --(lockout_until passes)--> Active
    any successful login resets the failure counter and clears the lockout
"""

import asyncio
import logging
import secrets
import time
from datetime import timedelta

from fastapi import BackgroundTasks
from pydantic import EmailStr, TypeAdapter, ValidationError as PydanticValidationError
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from jobportal.config import get_settings
from jobportal.models.user import User
from jobportal.schemas.user import NewPasswordForm, ProfileUpdateForm, RegistrationForm
from jobportal.services import application_service, document_service, position_service
from jobportal.services.auth_service import hash_password, verify_password
from jobportal.services.errors import (
    AccountLocked,
    EmailTaken,
    Forbidden,
    InvalidCredentials,
    NotFound,
    UsernameTaken,
    ValidationError,
)
from jobportal.services.mailer import Mailer
from jobportal.services.policy import (
    STUDENT,
    POSITION_MANAGERS,
    RequestContext,
    can_admin_delete_user,
    can_change_role,
    ensure,
)
from jobportal.services.timeutil import as_utc, utcnow

logger = logging.getLogger(__name__)

_email_adapter = TypeAdapter(EmailStr)

INVALID_RESET_LINK = "This password reset link is invalid or has expired."


def looks_like_email(identifier: str) -> bool:
    try:
        _email_adapter.validate_python(identifier)
    except PydanticValidationError:
        return False
    return True


async def find_by_id(db: AsyncSession, user_id: int) -> User | None:
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def find_by_username(db: AsyncSession, username: str) -> User | None:
    result = await db.execute(select(User).where(User.username == username.strip().lower()))
    return result.scalar_one_or_none()


async def find_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == email.strip().lower()))
    return result.scalar_one_or_none()


async def list_users(db: AsyncSession) -> list[User]:
    result = await db.execute(select(User).order_by(User.created_at.desc(), User.id.desc()))
    return list(result.scalars().all())


# --- Registration ---

async def register(db: AsyncSession, form: RegistrationForm, role: str = STUDENT) -> User:
    """Create an account. Username and email collisions raise distinct conflicts."""
    if await find_by_username(db, form.username):
        raise UsernameTaken()
    if await find_by_email(db, form.email):
        raise EmailTaken()

    user = User(
        username=form.username,
        email=form.email,
        password_hash=hash_password(form.password),
        full_name=form.full_name,
        phone=form.phone,
        role=role,
        is_active=True,
        failed_attempts=0,
    )
    db.add(user)
    try:
        await db.flush()
    except IntegrityError:
        # Lost a race with a concurrent registration
        await db.rollback()
        if await find_by_username(db, form.username):
            raise UsernameTaken() from None
        raise EmailTaken() from None

    logger.info("Registered user %s (%s)", user.id, role)
    return user


# --- Login ---

async def authenticate(db: AsyncSession, identifier: str, password: str) -> User:
    """Verify credentials, enforcing the lockout state machine.

    Failure counters are committed before raising so they survive the
    request being rolled back.
    """
    settings = get_settings()
    identifier = identifier.strip().lower()
    if looks_like_email(identifier):
        user = await find_by_email(db, identifier)
    else:
        user = await find_by_username(db, identifier)

    if user is None:
        raise InvalidCredentials()

    now = utcnow()
    locked_until = as_utc(user.lockout_until)
    if locked_until is not None and locked_until > now:
        raise AccountLocked(until=locked_until)

    if not verify_password(password, user.password_hash):
        user.failed_attempts = (user.failed_attempts or 0) + 1
        if user.failed_attempts >= settings.max_failed_logins:
            user.failed_attempts = 0
            user.lockout_until = now + timedelta(minutes=settings.lockout_minutes)
            await db.commit()
            logger.warning("Locked account %s after %d failed logins", user.id, settings.max_failed_logins)
            raise AccountLocked(until=user.lockout_until)
        await db.commit()
        raise InvalidCredentials()

    if not user.is_active:
        raise InvalidCredentials("This account has been deactivated.")

    user.failed_attempts = 0
    user.lockout_until = None
    await db.flush()
    return user


# --- Password reset ---

async def _pad_response(started: float) -> None:
    remaining = get_settings().reset_response_floor_seconds - (time.monotonic() - started)
    if remaining > 0:
        await asyncio.sleep(remaining)


async def request_password_reset(
    db: AsyncSession, email: str, mailer: Mailer, background: BackgroundTasks,
) -> None:
    """Issue a reset token and queue the mail. Behaves identically for unknown emails.

    The mail is sent after the response so SMTP latency never shows in the
    response time.
    """
    started = time.monotonic()
    settings = get_settings()

    user = await find_by_email(db, email or "")
    if user is not None:
        token = secrets.token_hex(32)
        user.reset_token = token
        user.reset_token_expires_at = utcnow() + timedelta(minutes=settings.reset_token_ttl_minutes)
        await db.commit()
        reset_link = f"{settings.public_base_url.rstrip('/')}/reset-password/{token}"
        background.add_task(mailer.send_password_reset, user.email, user.username, reset_link)
        logger.info("Issued password reset token for user %s", user.id)

    await _pad_response(started)


async def find_by_reset_token(db: AsyncSession, token: str) -> User | None:
    """Return the user holding an unexpired token, or None."""
    if not token:
        return None
    result = await db.execute(select(User).where(User.reset_token == token))
    user = result.scalar_one_or_none()
    if user is None:
        return None
    expires_at = as_utc(user.reset_token_expires_at)
    if expires_at is None or expires_at <= utcnow():
        return None
    return user


async def confirm_password_reset(db: AsyncSession, token: str, form: NewPasswordForm) -> User:
    """Set a new password with a valid token, then invalidate the token.

    Lockout state is left as it is.
    """
    user = await find_by_reset_token(db, token)
    if user is None:
        raise ValidationError(INVALID_RESET_LINK)

    user.password_hash = hash_password(form.password)
    user.reset_token = None
    user.reset_token_expires_at = None
    await db.flush()
    logger.info("Password reset completed for user %s", user.id)
    return user


async def change_password(db: AsyncSession, user: User, current_password: str, form: NewPasswordForm) -> None:
    if not verify_password(current_password, user.password_hash):
        raise ValidationError("Current password is incorrect.")
    user.password_hash = hash_password(form.password)
    await db.flush()


# --- Profile ---

async def update_profile(db: AsyncSession, user: User, form: ProfileUpdateForm) -> User:
    user.full_name = form.full_name
    user.phone = form.phone
    await db.flush()
    return user


# --- Roles and deletion ---

async def change_role(db: AsyncSession, target: User, new_role: str) -> User:
    """Move a user to a new role, dropping data the new role cannot own.

    Leaving student removes applications and documents; leaving employee
    or admin removes the positions the user created.
    """
    old_role = target.role
    if old_role == new_role:
        return target

    if old_role == STUDENT:
        removed = await application_service.delete_all_for_user(db, target.id)
        await document_service.delete_all_for_user(db, target.id)
        logger.info("Removed %d applications for user %s leaving student role", removed, target.id)
    elif old_role in POSITION_MANAGERS:
        removed = await position_service.delete_all_for_creator(db, target.id)
        logger.info("Removed %d positions for user %s leaving %s role", removed, target.id, old_role)

    target.role = new_role
    await db.flush()
    logger.info("Changed role of user %s from %s to %s", target.id, old_role, new_role)
    return target


async def update_role(db: AsyncSession, ctx: RequestContext, target_id: int, new_role: str) -> User:
    """Admin role change for another account."""
    ensure(ctx.is_admin, "Only admins can change roles.")
    ensure(can_change_role(ctx, target_id), "You cannot change your own role.")

    target = await find_by_id(db, target_id)
    if target is None:
        raise NotFound("The user was not found.")

    await change_role(db, target, new_role)
    logger.info("Admin %s changed role of user %s to %s", ctx.user_id, target.id, new_role)
    return target


async def _delete_account(db: AsyncSession, user: User) -> None:
    await document_service.delete_all_for_user(db, user.id)
    await db.delete(user)
    await db.flush()


async def delete_user(db: AsyncSession, ctx: RequestContext, target_id: int) -> None:
    """Admin removal of another account."""
    ensure(ctx.is_admin, "Only admins can delete users.")
    if not can_admin_delete_user(ctx, target_id):
        raise Forbidden("Use 'delete my account' to remove your own account.")

    target = await find_by_id(db, target_id)
    if target is None:
        raise NotFound("The user was not found.")

    await _delete_account(db, target)
    logger.info("Admin %s deleted user %s", ctx.user_id, target_id)


async def delete_own_account(db: AsyncSession, ctx: RequestContext) -> None:
    user = await find_by_id(db, ctx.user_id)
    if user is None:
        raise NotFound("The user was not found.")
    await _delete_account(db, user)
    logger.info("User %s deleted their account", ctx.user_id)
