"""Student progress operations: ledger writes and progress reads.

Every operation re-reads the student, enrollment and curriculum from the
database and overwrites ``Student.overall_progress``; the cached value is
never used as an input.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.exceptions import ValidationFailure
from app.models.progress import QuizProgress, ResourceProgress
from app.models.quiz import Quiz
from app.models.school_class import SchoolClass
from app.models.subject import Subject
from app.models.unit import RESOURCE_TYPES, Unit
from app.services.curriculum import (
    find_student_by_id,
    get_quiz,
    get_unit,
    load_curriculum,
    save_student,
)
from app.services.progress import (
    Curriculum,
    Ledger,
    ProgressSummary,
    ProgressTree,
    build_progress_tree,
    compute_progress,
    explicit_subject_ids,
    normalize_resource_url,
    persist_cache,
    resolve_subject_ids,
    subject_visible,
)

logger = logging.getLogger(__name__)


class RecordResult(BaseModel):
    """Outcome of a ledger write.

    ``overall_percent`` is None when the write succeeded but the recompute
    afterwards did not.
    """

    created: bool
    overall_percent: int | None = None


class QuizHistoryItem(BaseModel):
    quiz_id: int
    score: float | None
    completed_at: datetime | None
    quiz_name: str | None = None
    unit_id: int | None = None
    unit_title: str | None = None
    subject_id: int | None = None
    subject_name: str | None = None
    class_id: int | None = None
    class_name: str | None = None
    total_questions: int = 0


# ─── Reads ────────────────────────────────────────────────────────────


async def _snapshot(db: AsyncSession, student_id: int):
    student = await find_student_by_id(db, student_id)
    subject_ids = resolve_subject_ids(student)
    curriculum = await load_curriculum(db, subject_ids) if subject_ids else Curriculum()
    return student, subject_ids, curriculum, Ledger.from_student(student)


def _log_summary(operation: str, student_id: int, subject_ids, curriculum, ledger, summary) -> None:
    if not settings.DEBUG_PROGRESS:
        return
    logger.info(
        "%s student=%d subjects=%d units=%d total=%d resource_keys=%d "
        "completed_resources=%d completed_quizzes=%d completed=%d percent=%d",
        operation,
        student_id,
        len(subject_ids),
        len(curriculum.units),
        summary.total_items,
        len(curriculum.resource_keys),
        ledger.completed_resources,
        ledger.completed_quizzes,
        summary.completed_items,
        summary.overall_percent,
    )


async def get_aggregated_progress(db: AsyncSession, student_id: int) -> ProgressSummary:
    """Recompute the flat progress summary and refresh the cached percentage."""
    student, subject_ids, curriculum, ledger = await _snapshot(db, student_id)
    summary = compute_progress(ledger, curriculum)
    persist_cache(student, summary)
    await save_student(db, student)
    _log_summary("aggregated", student_id, subject_ids, curriculum, ledger, summary)
    return summary


async def get_detailed_progress(db: AsyncSession, student_id: int) -> ProgressTree:
    """Class -> subject -> unit -> resource status tree for a student."""
    student, subject_ids, curriculum, ledger = await _snapshot(db, student_id)
    tree = build_progress_tree(student, curriculum, ledger)
    summary = compute_progress(ledger, curriculum)
    persist_cache(student, summary)
    await save_student(db, student)
    _log_summary("detailed", student_id, subject_ids, curriculum, ledger, summary)
    return tree


async def _recompute_after_write(db: AsyncSession, student_id: int) -> int | None:
    try:
        summary = await get_aggregated_progress(db, student_id)
    except Exception:
        # The ledger write is already committed; report it without a percentage
        logger.exception("Progress recompute failed for student %d", student_id)
        await db.rollback()
        return None
    return summary.overall_percent


# ─── Ledger writes ────────────────────────────────────────────────────


async def log_resource_progress(
    db: AsyncSession,
    student_id: int,
    unit_id: int,
    resource_type: str,
    resource_url: str | None,
) -> RecordResult:
    """Record that a video was watched or a PDF opened.

    Repeat calls for the same resource do not add ledger entries.
    """
    if resource_type not in RESOURCE_TYPES:
        raise ValidationFailure(f"resource_type must be one of {', '.join(RESOURCE_TYPES)}")
    student = await find_student_by_id(db, student_id)
    await get_unit(db, unit_id)

    normalized = normalize_resource_url(resource_url)
    exists = any(
        r.unit_id == unit_id
        and r.resource_type == resource_type
        and normalize_resource_url(r.resource_url) == normalized
        for r in student.resource_progress
    )
    if not exists:
        student.resource_progress.append(
            ResourceProgress(
                unit_id=unit_id,
                resource_type=resource_type,
                resource_url=normalized,
                completed_at=datetime.now(timezone.utc),
            )
        )
        await save_student(db, student)
        logger.info(
            "Student %d completed %s %s in unit %d", student_id, resource_type, normalized, unit_id
        )

    return RecordResult(
        created=not exists,
        overall_percent=await _recompute_after_write(db, student_id),
    )


async def record_quiz_result(
    db: AsyncSession, student_id: int, quiz_id: int, score: float | None
) -> RecordResult:
    """Store a quiz score; re-submitting overwrites the score and time."""
    student = await find_student_by_id(db, student_id)
    await get_quiz(db, quiz_id)

    now = datetime.now(timezone.utc)
    entry = next((q for q in student.quiz_progress if q.quiz_id == quiz_id), None)
    if entry is not None:
        entry.score = score
        entry.completed_at = now
    else:
        student.quiz_progress.append(
            QuizProgress(quiz_id=quiz_id, score=score, completed_at=now)
        )
    await save_student(db, student)
    logger.info("Student %d scored %s on quiz %d", student_id, score, quiz_id)

    return RecordResult(
        created=entry is None,
        overall_percent=await _recompute_after_write(db, student_id),
    )


def grade_answers(quiz: Quiz, answers: list[str | None]) -> int:
    """Number of questions whose submitted answer equals the correct one."""
    score = 0
    for question, answer in zip(quiz.questions or [], answers):
        if answer is not None and answer == question.get("correct_answer"):
            score += 1
    return score


# ─── Enrollment views ─────────────────────────────────────────────────


async def get_enrolled_classes(db: AsyncSession, student_id: int) -> list[dict]:
    """Enrolled classes with their subjects filtered by explicit enrollment."""
    student = await find_student_by_id(db, student_id)
    explicit = explicit_subject_ids(student)
    return [
        {
            "id": c.id,
            "name": c.name,
            "description": c.description,
            "subjects": [
                {"id": s.id, "name": s.name, "description": s.description}
                for s in c.subjects
                if subject_visible(s.id, explicit)
            ],
        }
        for c in student.enrolled_classes
    ]


async def can_access_subject(db: AsyncSession, student_id: int, subject_id: int) -> bool:
    student = await find_student_by_id(db, student_id)
    return subject_id in resolve_subject_ids(student)


async def get_quiz_history(db: AsyncSession, student_id: int) -> list[QuizHistoryItem]:
    """The student's quiz ledger joined with quiz, unit, subject and class names."""
    student = await find_student_by_id(db, student_id)
    entries = list(student.quiz_progress)
    quiz_ids = {e.quiz_id for e in entries}
    if not quiz_ids:
        return []

    result = await db.execute(
        select(Quiz, Unit, Subject, SchoolClass)
        .outerjoin(Unit, Unit.id == Quiz.unit_id)
        .outerjoin(Subject, Subject.id == Unit.subject_id)
        .outerjoin(SchoolClass, SchoolClass.id == Subject.class_id)
        .where(Quiz.id.in_(quiz_ids))
    )
    rows = {quiz.id: (quiz, unit, subject, school_class) for quiz, unit, subject, school_class in result.all()}

    history = []
    for entry in entries:
        quiz, unit, subject, school_class = rows.get(entry.quiz_id, (None, None, None, None))
        history.append(QuizHistoryItem(
            quiz_id=entry.quiz_id,
            score=entry.score,
            completed_at=entry.completed_at,
            quiz_name=quiz.name if quiz else None,
            unit_id=quiz.unit_id if quiz else None,
            unit_title=unit.title if unit else None,
            subject_id=subject.id if subject else None,
            subject_name=subject.name if subject else None,
            class_id=school_class.id if school_class else None,
            class_name=school_class.name if school_class else None,
            total_questions=len(quiz.questions or []) if quiz else 0,
        ))
    return history
