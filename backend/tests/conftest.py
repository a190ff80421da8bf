"""Shared fixtures: a throwaway SQLite database and upload directory per test."""

import os
import re
import tempfile

_TMP = tempfile.mkdtemp(prefix="jobportal-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TMP}/test.db"
os.environ["UPLOADS_DIR"] = os.path.join(_TMP, "uploads")
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["RESET_RESPONSE_FLOOR_SECONDS"] = "0"
os.environ["SMTP_HOST"] = ""

import httpx  # noqa: E402
import pytest  # noqa: E402
from sqlalchemy import event  # noqa: E402

from jobportal.config import get_settings  # noqa: E402
from jobportal.dependencies.auth import context_for  # noqa: E402
from jobportal.models import Base  # noqa: E402
from jobportal.models.base import AsyncSessionLocal, engine  # noqa: E402
from jobportal.schemas import PositionForm, RegistrationForm  # noqa: E402
from jobportal.services import position_service, user_service  # noqa: E402
from jobportal.services.document_service import IncomingFile  # noqa: E402

PASSWORD = "Secret123"
PDF_BYTES = b"%PDF-1.4\n%\xe2\xe3\xcf\xd3\n1 0 obj\n<< /Type /Catalog >>\nendobj\ntrailer\n<< >>\n%%EOF\n"
CSRF_PATTERN = re.compile(r'name="csrf_token" value="([^"]+)"')


@pytest.fixture(autouse=True)
async def database():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield
    await engine.dispose()


@pytest.fixture(autouse=True)
def uploads_dir(tmp_path, monkeypatch):
    path = tmp_path / "uploads"
    monkeypatch.setattr(get_settings(), "uploads_dir", str(path))
    return path


@pytest.fixture
def statements():
    """SQL statements sent to the database while the test runs."""
    seen = []

    def record(conn, cursor, statement, parameters, context, executemany):
        seen.append(statement)

    event.listen(engine.sync_engine, "before_cursor_execute", record)
    yield seen
    event.remove(engine.sync_engine, "before_cursor_execute", record)


@pytest.fixture
async def db():
    async with AsyncSessionLocal() as session:
        yield session


async def make_user(db, username: str, role: str = "student", email: str | None = None, password: str = PASSWORD):
    form = RegistrationForm(
        username=username,
        email=email or f"{username}@example.com",
        password=password,
        confirm_password=password,
        full_name=username.capitalize(),
    )
    user = await user_service.register(db, form, role=role)
    await db.commit()
    return user


async def make_position(db, owner, title: str = "Teaching assistant", amount: int = 2):
    form = PositionForm(title=title, department="Informatics", location="Oslo", amount=amount)
    position = await position_service.create_position(db, context_for(owner), form)
    await db.commit()
    return position


def pdf_file(name: str = "cv.pdf") -> IncomingFile:
    return IncomingFile(filename=name, content=PDF_BYTES, content_type="application/pdf")


@pytest.fixture
async def student(db):
    return await make_user(db, "student")


@pytest.fixture
async def employee(db):
    return await make_user(db, "employee", role="employee")


@pytest.fixture
async def admin(db):
    return await make_user(db, "admin", role="admin")


@pytest.fixture
async def client():
    from jobportal.main import app

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


async def csrf_token(client, path: str = "/login") -> str:
    response = await client.get(path)
    match = CSRF_PATTERN.search(response.text)
    assert match, f"no csrf token on {path}"
    return match.group(1)


async def login(client, identifier: str, password: str = PASSWORD):
    token = await csrf_token(client, "/login")
    return await client.post(
        "/login",
        data={"identifier": identifier, "password": password, "csrf_token": token},
    )
