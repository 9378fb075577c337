"""User lookup and account creation."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.exceptions import NotFoundError, ValidationFailure
from app.models.school_class import SchoolClass
from app.models.student import Student
from app.models.subject import Subject

ROLES = ("student", "admin")


async def get_user_by_email(db: AsyncSession, email: str) -> Student | None:
    """Look up a registered user by email."""
    result = await db.execute(select(Student).where(Student.email == email.lower()))
    return result.scalar_one_or_none()


async def _load_all(db: AsyncSession, model, entity: str, ids: list[int] | None) -> list:
    ids = list(dict.fromkeys(ids or []))
    if not ids:
        return []
    result = await db.execute(select(model).where(model.id.in_(ids)))
    found = {obj.id: obj for obj in result.scalars().all()}
    missing = [i for i in ids if i not in found]
    if missing:
        raise NotFoundError(entity, missing[0])
    return [found[i] for i in ids]


async def create_user(
    db: AsyncSession,
    *,
    email: str,
    name: str | None = None,
    role: str = "student",
    school_name: str | None = None,
    class_ids: list[int] | None = None,
    subject_ids: list[int] | None = None,
) -> Student:
    """Create a student (optionally enrolled) or an admin account."""
    email = (email or "").strip().lower()
    if not email:
        raise ValidationFailure("Email is required")
    if role not in ROLES:
        raise ValidationFailure("Invalid role")
    if await get_user_by_email(db, email) is not None:
        raise ValidationFailure(f"{role.capitalize()} already exists")

    user = Student(email=email, name=name or email, role=role, school_name=school_name)
    if role == "student":
        user.enrolled_classes = await _load_all(db, SchoolClass, "Class", class_ids)
        user.enrolled_subjects = await _load_all(db, Subject, "Subject", subject_ids)
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


async def set_enrollment(
    db: AsyncSession,
    student: Student,
    *,
    class_ids: list[int] | None = None,
    subject_ids: list[int] | None = None,
) -> None:
    """Replace enrollments; None leaves that side untouched (caller commits).

    *student* must have both enrollment collections loaded.
    """
    if class_ids is not None:
        student.enrolled_classes = await _load_all(db, SchoolClass, "Class", class_ids)
    if subject_ids is not None:
        student.enrolled_subjects = await _load_all(db, Subject, "Subject", subject_ids)


def get_auth_email(headers) -> str | None:
    """Extract the authenticated email from the trusted proxy header."""
    email = headers.get(settings.AUTH_HEADER)
    return email.strip().lower() if email else None
