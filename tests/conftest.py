"""Shared pytest fixtures for the Eduverse test suite."""

from collections.abc import AsyncGenerator

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401
from app.config import settings
from app.database import Base, get_db, make_engine
from app.models import Quiz, SchoolClass, Student, Subject, Unit
from app.services.storage import LocalStorageService, get_storage_service
from main import app

# ---------------------------------------------------------------------------
# Async engine & session fixtures (in-memory SQLite)
# ---------------------------------------------------------------------------

TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest.fixture()
async def async_engine():
    """Create a fresh in-memory async engine per test."""
    engine = make_engine(TEST_DATABASE_URL, poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture()
async def db_session(async_engine) -> AsyncGenerator[AsyncSession, None]:
    """Provide an async session that rolls back after each test."""
    session_factory = async_sessionmaker(
        async_engine, class_=AsyncSession, expire_on_commit=False
    )
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture()
def storage(tmp_path) -> LocalStorageService:
    """Local file storage rooted in a per-test temporary directory."""
    return LocalStorageService(tmp_path / "uploads", "/uploads")


@pytest.fixture()
async def client(
    db_session: AsyncSession, storage: LocalStorageService
) -> AsyncGenerator[httpx.AsyncClient, None]:
    """HTTPX async client wired to the FastAPI app with test DB and storage."""

    async def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_storage_service] = lambda: storage

    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://testserver",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Convenience / data fixtures
# ---------------------------------------------------------------------------


def auth_for(email: str) -> dict[str, str]:
    return {settings.AUTH_HEADER: email}


@pytest.fixture()
def admin_headers() -> dict[str, str]:
    return auth_for("admin@example.com")


@pytest.fixture()
def student_headers() -> dict[str, str]:
    return auth_for("student@example.com")


class Builder:
    """Creates committed rows for tests."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def _add(self, obj):
        self.db.add(obj)
        await self.db.commit()
        return obj

    async def admin(self, email: str = "admin@example.com") -> Student:
        return await self._add(Student(email=email, name="Admin", role="admin"))

    async def school_class(self, name: str = "Class 1") -> SchoolClass:
        return await self._add(SchoolClass(name=name))

    async def subject(self, school_class: SchoolClass, name: str = "Subject 1") -> Subject:
        return await self._add(Subject(class_id=school_class.id, name=name))

    async def unit(
        self,
        subject: Subject,
        videos: list[str] = ("/uploads/v1.mp4",),
        pdfs: list[str] = (),
        title: str = "Unit 1",
    ) -> Unit:
        return await self._add(Unit(
            subject_id=subject.id,
            title=title,
            videos=[{"url": url, "name": url.rsplit("/", 1)[-1]} for url in videos],
            pdfs=[{"url": url, "name": url.rsplit("/", 1)[-1]} for url in pdfs],
        ))

    async def quiz(self, unit: Unit, enabled: bool = False, questions: list[dict] | None = None) -> Quiz:
        return await self._add(Quiz(unit_id=unit.id, name="Quiz", enabled=enabled, questions=questions or []))

    async def student(
        self,
        email: str = "student@example.com",
        classes: list[SchoolClass] = (),
        subjects: list[Subject] = (),
    ) -> Student:
        return await self._add(Student(
            email=email,
            name="Student",
            role="student",
            enrolled_classes=list(classes),
            enrolled_subjects=list(subjects),
        ))


@pytest.fixture()
def build(db_session: AsyncSession) -> Builder:
    return Builder(db_session)
