"""FastAPI application entry point."""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import RedirectResponse
from fastapi.staticfiles import StaticFiles
from starlette.middleware.gzip import GZipMiddleware
from starlette.middleware.sessions import SessionMiddleware

from jobportal.config import get_settings
from jobportal.dependencies.auth import NotAuthenticatedException
from jobportal.models.base import engine, Base
from jobportal.routes.web import router as web_router, templates
from jobportal.routes.auth import router as auth_router
from jobportal.routes.positions import router as positions_router
from jobportal.routes.applications import router as applications_router
from jobportal.routes.documents import router as documents_router
from jobportal.routes.profile import router as profile_router
from jobportal.routes.admin import router as admin_router

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown."""
    logger.info("Starting %s...", settings.app_name)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables verified")
    os.makedirs(settings.uploads_dir, exist_ok=True)
    yield
    logger.info("Shutting down...")
    await engine.dispose()


app = FastAPI(
    title=settings.app_name,
    description="Job application portal for students, employees and admins",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(GZipMiddleware, minimum_size=500)
app.add_middleware(
    SessionMiddleware,
    secret_key=settings.secret_key,
    same_site="lax",
    https_only=not settings.debug and settings.public_base_url.startswith("https"),
)


@app.exception_handler(NotAuthenticatedException)
async def not_authenticated_handler(request: Request, exc: NotAuthenticatedException):
    request.session["flash_error"] = "Please log in to continue."
    return RedirectResponse("/login", status_code=303)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return templates.TemplateResponse(
        request,
        "error.html",
        {"request": request, "current_user": None, "message": "Something went wrong. Please try again later."},
        status_code=500,
    )


# Web routes (HTML pages)
app.include_router(web_router)
app.include_router(auth_router)
app.include_router(positions_router)
app.include_router(applications_router)
app.include_router(documents_router)
app.include_router(profile_router)
app.include_router(admin_router)

# Static files
static_dir = os.path.join(os.path.dirname(__file__), "static")
if os.path.isdir(static_dir):
    app.mount("/static", StaticFiles(directory=static_dir), name="static")


@app.get("/health")
async def health_check():
    return {"status": "healthy", "app": settings.app_name}
