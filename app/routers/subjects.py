"""Subject management API (admin)."""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies import require_admin
from app.models.student import Student
from app.models.subject import Subject
from app.services import curriculum
from app.services.storage import StorageService, get_storage_service

router = APIRouter(prefix="/api/subjects", tags=["subjects"])


class SubjectCreateRequest(BaseModel):
    class_id: int
    name: str
    description: str | None = None


class SubjectUpdateRequest(BaseModel):
    name: str | None = None
    description: str | None = None


def _subject_out(s: Subject) -> dict:
    return {"id": s.id, "class_id": s.class_id, "name": s.name, "description": s.description}


@router.post("", status_code=201)
async def create_subject(
    body: SubjectCreateRequest,
    user: Student = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Add a subject to an existing class."""
    if not body.name.strip():
        raise HTTPException(status_code=400, detail="Subject name is required")
    await curriculum.get_class(db, body.class_id)

    subject = Subject(class_id=body.class_id, name=body.name.strip(), description=body.description)
    db.add(subject)
    await db.commit()
    await db.refresh(subject)
    return _subject_out(subject)


@router.get("/class/{class_id}")
async def list_subjects(
    class_id: int,
    user: Student = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(Subject).where(Subject.class_id == class_id).order_by(Subject.id)
    )
    return [_subject_out(s) for s in result.scalars().all()]


@router.put("/{subject_id}")
async def update_subject(
    subject_id: int,
    body: SubjectUpdateRequest,
    user: Student = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    subject = await curriculum.get_subject(db, subject_id)
    if body.name and body.name.strip():
        subject.name = body.name.strip()
    if body.description:
        subject.description = body.description
    await db.commit()
    return _subject_out(subject)


@router.delete("/{subject_id}")
async def delete_subject(
    subject_id: int,
    user: Student = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    storage: StorageService = Depends(get_storage_service),
):
    """Delete a subject with its units, their files and quizzes."""
    await curriculum.delete_subject(db, subject_id, storage)
    return {"message": "Subject deleted"}
