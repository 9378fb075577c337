"""Student-facing API: enrolled curriculum, quizzes and progress."""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies import require_student
from app.models.quiz import Quiz
from app.models.student import Student
from app.services import tracking
from app.services.curriculum import find_units_by_subject_ids, get_quiz, get_unit
from app.services.progress import ProgressSummary, ProgressTree

router = APIRouter(prefix="/api/student", tags=["student"])


class ProfileUpdateRequest(BaseModel):
    name: str | None = None
    school_name: str | None = None


class QuizProgressRequest(BaseModel):
    quiz_id: int
    score: float | None = None


class ResourceProgressRequest(BaseModel):
    unit_id: int
    resource_type: str
    resource_url: str


class QuizSubmission(BaseModel):
    answers: list[str | None]


class ProgressWriteResponse(BaseModel):
    message: str
    overall_percent: int | None = None


class QuizSubmitResponse(ProgressWriteResponse):
    score: int
    total_questions: int


def _profile(user: Student) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "name": user.name,
        "school_name": user.school_name,
        "overall_progress": user.overall_progress,
    }


async def _ensure_unit_access(db: AsyncSession, user: Student, unit_id: int) -> None:
    unit = await get_unit(db, unit_id)
    if not await tracking.can_access_subject(db, user.id, unit.subject_id):
        raise HTTPException(status_code=403, detail="Not enrolled in this subject")


@router.get("/profile")
async def get_profile(user: Student = Depends(require_student)):
    """Return the logged-in student's profile."""
    return _profile(user)


@router.put("/profile")
async def update_profile(
    body: ProfileUpdateRequest,
    user: Student = Depends(require_student),
    db: AsyncSession = Depends(get_db),
):
    """Update the logged-in student's own profile fields."""
    if body.name:
        user.name = body.name.strip()
    if body.school_name is not None:
        user.school_name = body.school_name.strip() or None
    user.updated_at = datetime.now(timezone.utc)
    await db.commit()
    return _profile(user)


@router.get("/classes")
async def enrolled_classes(
    user: Student = Depends(require_student),
    db: AsyncSession = Depends(get_db),
):
    """Enrolled classes, each with only the subjects the student takes."""
    return await tracking.get_enrolled_classes(db, user.id)


@router.get("/units/{subject_id}")
async def subject_units(
    subject_id: int,
    user: Student = Depends(require_student),
    db: AsyncSession = Depends(get_db),
):
    """Units (with resources) of one of the student's subjects."""
    if not await tracking.can_access_subject(db, user.id, subject_id):
        raise HTTPException(status_code=403, detail="Not enrolled in this subject")
    units = await find_units_by_subject_ids(db, [subject_id])
    return [
        {
            "id": u.id,
            "title": u.title,
            "description": u.description,
            "videos": u.videos,
            "pdfs": u.pdfs,
        }
        for u in units
    ]


@router.get("/quizzes/{unit_id}")
async def unit_quizzes(
    unit_id: int,
    user: Student = Depends(require_student),
    db: AsyncSession = Depends(get_db),
):
    """Enabled quizzes of a unit, without the correct answers."""
    await _ensure_unit_access(db, user, unit_id)
    result = await db.execute(
        select(Quiz)
        .where(Quiz.unit_id == unit_id, Quiz.enabled.is_(True))
        .order_by(Quiz.created_at.desc(), Quiz.id.desc())
    )
    return [
        {
            "id": q.id,
            "unit_id": q.unit_id,
            "name": q.name,
            "questions": [
                {"question_text": item.get("question_text"), "options": item.get("options", [])}
                for item in q.questions or []
            ],
        }
        for q in result.scalars().all()
    ]


@router.post("/quizzes/{quiz_id}/submit", response_model=QuizSubmitResponse)
async def submit_quiz(
    quiz_id: int,
    body: QuizSubmission,
    user: Student = Depends(require_student),
    db: AsyncSession = Depends(get_db),
):
    """Grade a quiz attempt and record the score."""
    quiz = await get_quiz(db, quiz_id)
    await _ensure_unit_access(db, user, quiz.unit_id)
    if not quiz.enabled:
        raise HTTPException(status_code=400, detail="Quiz is not enabled")
    score = tracking.grade_answers(quiz, body.answers)
    total_questions = len(quiz.questions or [])
    result = await tracking.record_quiz_result(db, user.id, quiz_id, score)
    return QuizSubmitResponse(
        message="Quiz progress updated",
        overall_percent=result.overall_percent,
        score=score,
        total_questions=total_questions,
    )


@router.post("/quiz-progress", response_model=ProgressWriteResponse)
async def quiz_progress(
    body: QuizProgressRequest,
    user: Student = Depends(require_student),
    db: AsyncSession = Depends(get_db),
):
    """Record a quiz score computed by the client."""
    quiz = await get_quiz(db, body.quiz_id)
    await _ensure_unit_access(db, user, quiz.unit_id)
    result = await tracking.record_quiz_result(db, user.id, body.quiz_id, body.score)
    return ProgressWriteResponse(
        message="Quiz progress updated", overall_percent=result.overall_percent
    )


@router.post("/resource-progress", response_model=ProgressWriteResponse)
async def resource_progress(
    body: ResourceProgressRequest,
    user: Student = Depends(require_student),
    db: AsyncSession = Depends(get_db),
):
    """Log that a video was watched or a PDF opened."""
    result = await tracking.log_resource_progress(
        db, user.id, body.unit_id, body.resource_type, body.resource_url
    )
    return ProgressWriteResponse(
        message="Resource progress logged", overall_percent=result.overall_percent
    )


@router.get("/progress", response_model=ProgressSummary)
async def aggregated_progress(
    user: Student = Depends(require_student),
    db: AsyncSession = Depends(get_db),
):
    return await tracking.get_aggregated_progress(db, user.id)


@router.get("/progress-detailed", response_model=ProgressTree)
async def detailed_progress(
    user: Student = Depends(require_student),
    db: AsyncSession = Depends(get_db),
):
    return await tracking.get_detailed_progress(db, user.id)


@router.get("/quiz-history", response_model=list[tracking.QuizHistoryItem])
async def quiz_history(
    user: Student = Depends(require_student),
    db: AsyncSession = Depends(get_db),
):
    return await tracking.get_quiz_history(db, user.id)
