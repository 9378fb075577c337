"""Quiz management API (admin)."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies import require_admin
from app.models.quiz import Quiz
from app.models.student import Student
from app.services import curriculum

router = APIRouter(prefix="/api/quizzes", tags=["quizzes"])


class Question(BaseModel):
    question_text: str
    options: list[str] = []
    correct_answer: str | None = None


class QuizCreateRequest(BaseModel):
    unit_id: int
    name: str | None = None
    questions: list[Question] = []


class QuizUpdateRequest(BaseModel):
    name: str | None = None
    questions: list[Question] | None = None


def _quiz_out(q: Quiz) -> dict:
    return {
        "id": q.id,
        "unit_id": q.unit_id,
        "name": q.name,
        "enabled": q.enabled,
        "questions": q.questions,
        "created_at": q.created_at.isoformat() if q.created_at else None,
    }


@router.post("", status_code=201)
async def create_quiz(
    body: QuizCreateRequest,
    user: Student = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Create a quiz for a unit. New quizzes start disabled."""
    await curriculum.get_unit(db, body.unit_id)
    quiz = Quiz(
        unit_id=body.unit_id,
        name=body.name.strip() if body.name else None,
        enabled=False,
        questions=[q.model_dump() for q in body.questions],
    )
    db.add(quiz)
    await db.commit()
    await db.refresh(quiz)
    return _quiz_out(quiz)


@router.get("/unit/{unit_id}")
async def list_quizzes(
    unit_id: int,
    user: Student = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Quizzes of a unit, newest first."""
    result = await db.execute(
        select(Quiz)
        .where(Quiz.unit_id == unit_id)
        .order_by(Quiz.created_at.desc(), Quiz.id.desc())
    )
    return [_quiz_out(q) for q in result.scalars().all()]


@router.put("/{quiz_id}")
async def update_quiz(
    quiz_id: int,
    body: QuizUpdateRequest,
    user: Student = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    quiz = await curriculum.get_quiz(db, quiz_id)
    if body.name is not None:
        quiz.name = body.name.strip() or None
    if body.questions is not None:
        quiz.questions = [q.model_dump() for q in body.questions]
    await db.commit()
    await db.refresh(quiz)
    return _quiz_out(quiz)


@router.patch("/{quiz_id}/toggle")
async def toggle_quiz(
    quiz_id: int,
    user: Student = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Flip whether students may take the quiz."""
    quiz = await curriculum.get_quiz(db, quiz_id)
    quiz.enabled = not quiz.enabled
    await db.commit()
    await db.refresh(quiz)
    return _quiz_out(quiz)


@router.delete("/{quiz_id}")
async def delete_quiz(
    quiz_id: int,
    user: Student = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Delete a quiz and purge its progress entries for all students."""
    await curriculum.delete_quiz(db, quiz_id)
    return {"message": "Quiz deleted"}
