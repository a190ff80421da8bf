"""Authentication web routes — login, register, logout, password reset, change password."""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from fastapi.responses import HTMLResponse
from sqlalchemy.ext.asyncio import AsyncSession

from jobportal.dependencies.auth import (
    check_csrf,
    get_current_user,
    login_session,
    logout_session,
    require_user,
)
from jobportal.models.base import get_db
from jobportal.models.user import User
from jobportal.routes.web import error_messages, redirect, render
from jobportal.schemas import LoginForm, NewPasswordForm, RegistrationForm, parse_form
from jobportal.services import user_service
from jobportal.services.errors import PortalError
from jobportal.services.mailer import Mailer, get_mailer

logger = logging.getLogger(__name__)

router = APIRouter()

RESET_REQUESTED_MESSAGE = (
    "If the email address is registered, you will receive a link to reset your password shortly."
)
REGISTRATION_FIELDS = ("username", "email", "full_name", "phone")


@router.get("/login", response_class=HTMLResponse)
async def login_page(request: Request, db: AsyncSession = Depends(get_db)):
    user = await get_current_user(request, db)
    if user:
        return redirect(request, "/")
    return await render(request, db, "auth/login.html", identifier="")


@router.post("/login", response_class=HTMLResponse)
async def login_submit(request: Request, db: AsyncSession = Depends(get_db)):
    form = await request.form()
    identifier = str(form.get("identifier", "")).strip()

    try:
        check_csrf(request, form)
        data = parse_form(LoginForm, form)
        user = await user_service.authenticate(db, data.identifier, data.password)
    except PortalError as exc:
        return await render(
            request, db, "auth/login.html",
            identifier=identifier,
            errors=error_messages(exc),
        )

    login_session(request, user)
    logger.info("User %s logged in", user.id)
    return redirect(request, "/", success=f"Welcome back, {user.full_name or user.username}!")


@router.get("/register", response_class=HTMLResponse)
async def register_page(request: Request, db: AsyncSession = Depends(get_db)):
    user = await get_current_user(request, db)
    if user:
        return redirect(request, "/")
    return await render(request, db, "auth/register.html", values={})


@router.post("/register", response_class=HTMLResponse)
async def register_submit(request: Request, db: AsyncSession = Depends(get_db)):
    form = await request.form()
    values = {key: str(form.get(key, "")) for key in REGISTRATION_FIELDS}

    try:
        check_csrf(request, form)
        data = parse_form(RegistrationForm, form)
        user = await user_service.register(db, data)
    except PortalError as exc:
        await db.rollback()
        return await render(
            request, db, "auth/register.html",
            values=values,
            errors=error_messages(exc),
        )

    login_session(request, user)
    return redirect(request, "/", success="Your account has been created.")


@router.post("/logout")
async def logout(request: Request):
    form = await request.form()
    try:
        check_csrf(request, form)
    except PortalError as exc:
        return redirect(request, "/", error=exc.message)
    logout_session(request)
    return redirect(request, "/", success="You have been logged out.")


@router.get("/forgot-password", response_class=HTMLResponse)
async def forgot_password_page(request: Request, db: AsyncSession = Depends(get_db)):
    return await render(request, db, "auth/forgot_password.html", sent=False)


@router.post("/forgot-password", response_class=HTMLResponse)
async def forgot_password_submit(
    request: Request,
    background: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
):
    form = await request.form()
    try:
        check_csrf(request, form)
    except PortalError as exc:
        return await render(request, db, "auth/forgot_password.html", sent=False, errors=error_messages(exc))

    email = str(form.get("email", "")).strip().lower()
    await user_service.request_password_reset(db, email, mailer, background)
    # Same response whether or not the address exists
    return await render(request, db, "auth/forgot_password.html", sent=True, message=RESET_REQUESTED_MESSAGE)


@router.get("/reset-password/{token}", response_class=HTMLResponse)
async def reset_password_page(token: str, request: Request, db: AsyncSession = Depends(get_db)):
    user = await user_service.find_by_reset_token(db, token)
    if user is None:
        return await render(
            request, db, "auth/reset_password.html",
            token=token, valid=False, errors=[user_service.INVALID_RESET_LINK],
        )
    return await render(request, db, "auth/reset_password.html", token=token, valid=True)


@router.post("/reset-password/{token}", response_class=HTMLResponse)
async def reset_password_submit(token: str, request: Request, db: AsyncSession = Depends(get_db)):
    form = await request.form()
    try:
        check_csrf(request, form)
        data = parse_form(NewPasswordForm, form)
        await user_service.confirm_password_reset(db, token, data)
    except PortalError as exc:
        await db.rollback()
        valid = await user_service.find_by_reset_token(db, token) is not None
        return await render(
            request, db, "auth/reset_password.html",
            token=token, valid=valid, errors=error_messages(exc),
        )

    return redirect(request, "/login", success="Your password has been reset. You can now log in.")


@router.get("/account/password", response_class=HTMLResponse)
async def change_password_page(
    request: Request,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    return await render(request, db, "auth/change_password.html")


@router.post("/account/password", response_class=HTMLResponse)
async def change_password_submit(
    request: Request,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    form = await request.form()
    try:
        check_csrf(request, form)
        data = parse_form(NewPasswordForm, form)
        await user_service.change_password(db, user, str(form.get("current_password", "")), data)
    except PortalError as exc:
        await db.rollback()
        return await render(request, db, "auth/change_password.html", errors=error_messages(exc))

    return redirect(request, "/min-side", success="Password updated successfully.")
