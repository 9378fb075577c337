"""Admin API: platform stats, user management and per-student progress."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.database import get_db
from app.dependencies import require_admin
from app.models.quiz import Quiz
from app.models.school_class import SchoolClass
from app.models.student import Student
from app.models.subject import Subject
from app.models.unit import Unit
from app.services import tracking
from app.services.auth import create_user, set_enrollment
from app.services.curriculum import find_student_by_id
from app.services.progress import ProgressSummary, ProgressTree

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])


class UserCreateRequest(BaseModel):
    email: str
    full_name: str | None = None
    role: str = "student"
    school_name: str | None = None
    class_ids: list[int] = []
    subject_ids: list[int] = []


class StudentUpdateRequest(BaseModel):
    name: str | None = None
    email: str | None = None
    school_name: str | None = None
    enrolled_classes: list[int] | None = None
    enrolled_subjects: list[int] | None = None


def _student_out(s: Student) -> dict:
    return {
        "id": s.id,
        "email": s.email,
        "name": s.name or s.email,
        "school_name": s.school_name,
        "role": s.role,
        "overall_progress": s.overall_progress,
        "enrolled_classes": [{"id": c.id, "name": c.name} for c in s.enrolled_classes],
        "enrolled_subjects": [
            {"id": sub.id, "name": sub.name, "class_id": sub.class_id}
            for sub in s.enrolled_subjects
        ],
        "quiz_count": len(s.quiz_progress),
        "resource_count": len(s.resource_progress),
    }


async def _count(db: AsyncSession, query) -> int:
    return (await db.execute(query)).scalar() or 0


@router.get("/stats")
async def stats(
    user: Student = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Platform-wide totals for the admin dashboard."""
    units = (await db.execute(select(Unit.videos, Unit.pdfs))).all()
    return {
        "total_students": await _count(
            db, select(func.count(Student.id)).where(Student.role == "student")
        ),
        "total_admins": await _count(
            db, select(func.count(Student.id)).where(Student.role == "admin")
        ),
        "total_classes": await _count(db, select(func.count(SchoolClass.id))),
        "total_subjects": await _count(db, select(func.count(Subject.id))),
        "total_units": len(units),
        # Quizzes whose unit still exists
        "total_quizzes": await _count(
            db, select(func.count(Quiz.id)).join(Unit, Unit.id == Quiz.unit_id)
        ),
        "total_videos": sum(len(videos or []) for videos, _ in units),
        "total_pdfs": sum(len(pdfs or []) for _, pdfs in units),
    }


@router.get("/users")
async def list_users(
    user: Student = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Students and admins, excluding the requesting admin."""
    result = await db.execute(
        select(Student)
        .where(Student.id != user.id)
        .options(
            selectinload(Student.enrolled_classes),
            selectinload(Student.enrolled_subjects),
            selectinload(Student.quiz_progress),
            selectinload(Student.resource_progress),
        )
        .order_by(Student.role.desc(), Student.id)
        .execution_options(populate_existing=True)
    )
    return [_student_out(s) for s in result.scalars().all()]


@router.post("/users", status_code=201)
async def api_create_user(
    body: UserCreateRequest,
    user: Student = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Create a student (with enrollments) or an admin account."""
    created = await create_user(
        db,
        email=body.email,
        name=body.full_name,
        role=body.role,
        school_name=body.school_name,
        class_ids=body.class_ids,
        subject_ids=body.subject_ids,
    )
    logger.info("Admin %d created %s account %d", user.id, created.role, created.id)
    return _student_out(await find_student_by_id(db, created.id))


@router.put("/students/{student_pk}")
async def update_student(
    student_pk: int,
    body: StudentUpdateRequest,
    user: Student = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Update a student's details and enrollments."""
    student = await find_student_by_id(db, student_pk)
    if body.name:
        student.name = body.name.strip()
    if body.email and body.email.strip().lower() != student.email:
        email = body.email.strip().lower()
        taken = await db.execute(
            select(Student.id).where(Student.email == email, Student.id != student_pk)
        )
        if taken.first():
            raise HTTPException(status_code=400, detail="Email already in use")
        student.email = email
    if body.school_name is not None:
        student.school_name = body.school_name.strip() or None
    await set_enrollment(
        db,
        student,
        class_ids=body.enrolled_classes,
        subject_ids=body.enrolled_subjects,
    )
    student.updated_at = datetime.now(timezone.utc)
    await db.commit()
    return _student_out(await find_student_by_id(db, student_pk))


@router.delete("/students/{student_pk}")
async def delete_student(
    student_pk: int,
    user: Student = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    if student_pk == user.id:
        raise HTTPException(status_code=400, detail="Cannot delete your own account")
    student = await find_student_by_id(db, student_pk)
    await db.delete(student)
    await db.commit()
    return {"message": "Student deleted successfully"}


@router.get("/students/{student_pk}/progress", response_model=ProgressSummary)
async def student_progress(
    student_pk: int,
    user: Student = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await tracking.get_aggregated_progress(db, student_pk)


@router.get("/students/{student_pk}/progress-detailed", response_model=ProgressTree)
async def student_progress_detailed(
    student_pk: int,
    user: Student = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await tracking.get_detailed_progress(db, student_pk)


@router.get("/students/{student_pk}/quiz-history", response_model=list[tracking.QuizHistoryItem])
async def student_quiz_history(
    student_pk: int,
    user: Student = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await tracking.get_quiz_history(db, student_pk)


@router.get("/quizzes")
async def list_all_quizzes(
    user: Student = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(select(Quiz.id, Quiz.unit_id, Quiz.name, Quiz.enabled).order_by(Quiz.id))
    return [
        {"id": qid, "unit_id": unit_id, "name": name, "enabled": enabled}
        for qid, unit_id, name, enabled in result.all()
    ]
