"""Curriculum data access: lookups, unit editing rules and cascade deletes."""

import logging
from collections.abc import Iterable

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.exceptions import NotFoundError, ValidationFailure
from app.models.enrollment import student_classes, student_subjects
from app.models.progress import QuizProgress
from app.models.quiz import Quiz
from app.models.school_class import SchoolClass
from app.models.student import Student
from app.models.subject import Subject
from app.models.unit import Unit, normalize_resource_items
from app.services.progress import Curriculum
from app.services.storage import StorageService

logger = logging.getLogger(__name__)


# ─── Lookups ──────────────────────────────────────────────────────────


async def find_student_by_id(db: AsyncSession, student_id: int) -> Student:
    """Load a student with enrollment (classes -> subjects) and ledgers, fresh."""
    result = await db.execute(
        select(Student)
        .where(Student.id == student_id)
        .options(
            selectinload(Student.enrolled_classes).selectinload(SchoolClass.subjects),
            selectinload(Student.enrolled_subjects),
            selectinload(Student.resource_progress),
            selectinload(Student.quiz_progress),
        )
        .execution_options(populate_existing=True)
    )
    student = result.scalar_one_or_none()
    if student is None:
        raise NotFoundError("Student", student_id)
    return student


async def save_student(db: AsyncSession, student: Student) -> None:
    db.add(student)
    await db.commit()


async def find_units_by_subject_ids(db: AsyncSession, subject_ids: Iterable[int]) -> list[Unit]:
    ids = list(subject_ids)
    if not ids:
        return []
    result = await db.execute(
        select(Unit)
        .where(Unit.subject_id.in_(ids))
        .order_by(Unit.id)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def find_quizzes_by_unit_ids(db: AsyncSession, unit_ids: Iterable[int]) -> list[Quiz]:
    ids = list(unit_ids)
    if not ids:
        return []
    result = await db.execute(
        select(Quiz)
        .where(Quiz.unit_id.in_(ids))
        .order_by(Quiz.id)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def load_curriculum(db: AsyncSession, subject_ids: Iterable[int]) -> Curriculum:
    units = await find_units_by_subject_ids(db, subject_ids)
    quizzes = await find_quizzes_by_unit_ids(db, {u.id for u in units})
    return Curriculum.from_records(units, quizzes)


async def _get(db: AsyncSession, model, entity: str, entity_id: int):
    obj = await db.get(model, entity_id, populate_existing=True)
    if obj is None:
        raise NotFoundError(entity, entity_id)
    return obj


async def get_class(db: AsyncSession, class_id: int) -> SchoolClass:
    return await _get(db, SchoolClass, "Class", class_id)


async def get_subject(db: AsyncSession, subject_id: int) -> Subject:
    return await _get(db, Subject, "Subject", subject_id)


async def get_unit(db: AsyncSession, unit_id: int) -> Unit:
    return await _get(db, Unit, "Unit", unit_id)


async def get_quiz(db: AsyncSession, quiz_id: int) -> Quiz:
    return await _get(db, Quiz, "Quiz", quiz_id)


# ─── Unit editing ─────────────────────────────────────────────────────


async def create_unit(
    db: AsyncSession,
    *,
    subject_id: int,
    title: str,
    description: str | None = None,
    videos: list[dict],
    pdfs: list[dict] | None = None,
) -> Unit:
    """Create a unit; it must have a title and at least one video."""
    title = (title or "").strip()
    if not title:
        raise ValidationFailure("Title is required")
    if not normalize_resource_items(videos, "Video"):
        raise ValidationFailure("At least one video is required")
    await get_subject(db, subject_id)

    unit = Unit(
        subject_id=subject_id,
        title=title,
        description=description or "",
        videos=videos,
        pdfs=pdfs or [],
    )
    db.add(unit)
    await db.commit()
    await db.refresh(unit)
    logger.info("Created unit %d (%s) in subject %d", unit.id, unit.title, subject_id)
    return unit


def _renamed(items: list[dict], renames: dict[str, str]) -> list[dict]:
    return [{**item, "name": renames.get(item["url"]) or item["name"]} for item in items]


def apply_unit_changes(
    unit: Unit,
    *,
    title: str | None = None,
    description: str | None = None,
    add_videos: list[dict] | None = None,
    add_pdfs: list[dict] | None = None,
    remove_video_urls: Iterable[str] = (),
    remove_pdf_urls: Iterable[str] = (),
    rename_videos: dict[str, str] | None = None,
    rename_pdfs: dict[str, str] | None = None,
) -> list[str]:
    """Validate and apply an edit to *unit* in memory.

    All checks run before any attribute is touched, so a rejected edit leaves
    the unit unchanged. Returns the URLs removed from the unit, whose files
    the caller should delete after committing.
    """
    if title is not None:
        title = title.strip()
        if not title:
            raise ValidationFailure("Title cannot be empty")

    videos = list(unit.videos or []) + normalize_resource_items(add_videos, "Video")
    pdfs = list(unit.pdfs or []) + normalize_resource_items(add_pdfs, "PDF")
    if rename_videos:
        videos = _renamed(videos, rename_videos)
    if rename_pdfs:
        pdfs = _renamed(pdfs, rename_pdfs)

    remove_video_urls = set(remove_video_urls)
    remove_pdf_urls = set(remove_pdf_urls)
    # Only URLs this unit actually lists get their files removed
    removed = [v["url"] for v in videos if v["url"] in remove_video_urls]
    removed += [p["url"] for p in pdfs if p["url"] in remove_pdf_urls]
    videos = [v for v in videos if v["url"] not in remove_video_urls]
    pdfs = [p for p in pdfs if p["url"] not in remove_pdf_urls]
    if not videos:
        raise ValidationFailure(
            "Unit must have at least one video. Upload a new video before removing the last one."
        )

    if title is not None:
        unit.title = title
    if description is not None:
        unit.description = description
    unit.videos = videos
    unit.pdfs = pdfs
    return sorted(set(removed))


# ─── Cascade deletes ──────────────────────────────────────────────────


def remove_files(storage: StorageService, urls: Iterable[str]) -> int:
    """Best-effort unlink; failures are logged by the storage service."""
    failed = sum(1 for url in urls if not storage.delete(url))
    if failed:
        logger.warning("%d resource file(s) could not be deleted", failed)
    return failed


async def purge_quiz_progress(db: AsyncSession, quiz_ids: Iterable[int]) -> None:
    """Remove every student's ledger entries for *quiz_ids* (not committed)."""
    ids = list(quiz_ids)
    if ids:
        await db.execute(delete(QuizProgress).where(QuizProgress.quiz_id.in_(ids)))


async def _delete_units(db: AsyncSession, units: list[Unit]) -> list[str]:
    """Delete units, their quizzes and matching quiz progress (not committed)."""
    if not units:
        return []
    unit_ids = [u.id for u in units]
    urls = [url for unit in units for url in unit.resource_urls()]

    quiz_ids = (
        await db.execute(select(Quiz.id).where(Quiz.unit_id.in_(unit_ids)))
    ).scalars().all()
    if quiz_ids:
        await purge_quiz_progress(db, quiz_ids)
        await db.execute(delete(Quiz).where(Quiz.id.in_(quiz_ids)))
    await db.execute(delete(Unit).where(Unit.id.in_(unit_ids)))
    logger.info("Deleted units %s with %d quiz(zes)", unit_ids, len(quiz_ids))
    return urls


async def _delete_subjects(db: AsyncSession, subject_ids: list[int]) -> list[str]:
    if not subject_ids:
        return []
    units = await find_units_by_subject_ids(db, subject_ids)
    urls = await _delete_units(db, units)
    await db.execute(
        delete(student_subjects).where(student_subjects.c.subject_id.in_(subject_ids))
    )
    await db.execute(delete(Subject).where(Subject.id.in_(subject_ids)))
    return urls


async def delete_quiz(db: AsyncSession, quiz_id: int) -> None:
    """Delete one quiz together with every student's progress entry for it."""
    await get_quiz(db, quiz_id)
    await purge_quiz_progress(db, [quiz_id])
    await db.execute(delete(Quiz).where(Quiz.id == quiz_id))
    await db.commit()
    logger.info("Deleted quiz %d", quiz_id)


async def delete_unit(db: AsyncSession, unit_id: int, storage: StorageService) -> None:
    unit = await get_unit(db, unit_id)
    urls = await _delete_units(db, [unit])
    await db.commit()
    remove_files(storage, urls)


async def delete_subject(db: AsyncSession, subject_id: int, storage: StorageService) -> None:
    await get_subject(db, subject_id)
    urls = await _delete_subjects(db, [subject_id])
    await db.commit()
    remove_files(storage, urls)


async def delete_class(db: AsyncSession, class_id: int, storage: StorageService) -> None:
    await get_class(db, class_id)
    subject_ids = list(
        (await db.execute(select(Subject.id).where(Subject.class_id == class_id))).scalars().all()
    )
    urls = await _delete_subjects(db, subject_ids)
    await db.execute(delete(student_classes).where(student_classes.c.class_id == class_id))
    await db.execute(delete(SchoolClass).where(SchoolClass.id == class_id))
    await db.commit()
    logger.info("Deleted class %d with subjects %s", class_id, subject_ids)
    remove_files(storage, urls)
