"""Class management API (admin)."""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.database import get_db
from app.dependencies import require_admin
from app.models.school_class import SchoolClass
from app.models.student import Student
from app.services import curriculum
from app.services.storage import StorageService, get_storage_service

router = APIRouter(prefix="/api/classes", tags=["classes"])


class ClassRequest(BaseModel):
    name: str | None = None
    description: str | None = None


def _class_out(c: SchoolClass, subjects=None) -> dict:
    out = {"id": c.id, "name": c.name, "description": c.description}
    if subjects is not None:
        out["subjects"] = [
            {"id": s.id, "name": s.name, "description": s.description} for s in subjects
        ]
    return out


async def _name_taken(db: AsyncSession, name: str, exclude_id: int | None = None) -> bool:
    query = select(SchoolClass.id).where(SchoolClass.name == name)
    if exclude_id is not None:
        query = query.where(SchoolClass.id != exclude_id)
    return (await db.execute(query)).first() is not None


@router.post("", status_code=201)
async def create_class(
    body: ClassRequest,
    user: Student = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    name = (body.name or "").strip()
    if not name:
        raise HTTPException(status_code=400, detail="Class name is required")
    if await _name_taken(db, name):
        raise HTTPException(status_code=400, detail="Class already exists")

    school_class = SchoolClass(name=name, description=body.description)
    db.add(school_class)
    await db.commit()
    await db.refresh(school_class)
    return _class_out(school_class, subjects=[])


@router.get("")
async def list_classes(
    user: Student = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """All classes with their subjects."""
    result = await db.execute(
        select(SchoolClass)
        .options(selectinload(SchoolClass.subjects))
        .order_by(SchoolClass.id)
        .execution_options(populate_existing=True)
    )
    return [_class_out(c, c.subjects) for c in result.scalars().all()]


@router.put("/{class_id}")
async def update_class(
    class_id: int,
    body: ClassRequest,
    user: Student = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    school_class = await curriculum.get_class(db, class_id)
    if body.name and body.name.strip() != school_class.name:
        name = body.name.strip()
        if await _name_taken(db, name, exclude_id=class_id):
            raise HTTPException(status_code=400, detail="Class already exists")
        school_class.name = name
    if body.description:
        school_class.description = body.description
    await db.commit()
    return _class_out(school_class)


@router.delete("/{class_id}")
async def delete_class(
    class_id: int,
    user: Student = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    storage: StorageService = Depends(get_storage_service),
):
    """Delete a class with all its subjects, units, files and quizzes."""
    await curriculum.delete_class(db, class_id, storage)
    return {"message": "Class deleted"}
