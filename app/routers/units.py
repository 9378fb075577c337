"""Unit management API (admin): multipart create/update with file uploads."""

import json
import logging

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies import require_admin
from app.exceptions import ValidationFailure
from app.models.student import Student
from app.models.unit import Unit
from app.services import curriculum
from app.services.storage import StorageService, get_storage_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/units", tags=["units"])


def _unit_out(u: Unit) -> dict:
    return {
        "id": u.id,
        "subject_id": u.subject_id,
        "title": u.title,
        "description": u.description,
        "videos": u.videos,
        "pdfs": u.pdfs,
    }


async def _store_uploads(
    storage: StorageService,
    files: list[UploadFile] | None,
    names: list[str] | None,
    default_prefix: str,
) -> list[dict]:
    """Save uploads and pair each with its display name (by position)."""
    names = names or []
    items = []
    for idx, upload in enumerate(files or []):
        if not upload.filename:
            continue
        url = await storage.save(upload)
        name = (names[idx] if idx < len(names) else None) or upload.filename or f"{default_prefix} {idx + 1}"
        items.append({"url": url, "name": name})
    return items


def _parse_renames(raw: str | None, field: str) -> dict[str, str]:
    if not raw:
        return {}
    try:
        renames = json.loads(raw)
    except json.JSONDecodeError:
        raise HTTPException(status_code=400, detail=f"Invalid {field} format")
    if not isinstance(renames, dict):
        raise HTTPException(status_code=400, detail=f"{field} must be a JSON object")
    return {str(k): str(v) for k, v in renames.items() if v}


@router.post("", status_code=201)
async def create_unit(
    title: str = Form(""),
    subject_id: int = Form(...),
    description: str = Form(""),
    videos: list[UploadFile] | None = File(None),
    pdfs: list[UploadFile] | None = File(None),
    video_names: list[str] | None = Form(None),
    pdf_names: list[str] | None = Form(None),
    user: Student = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    storage: StorageService = Depends(get_storage_service),
):
    """Create a unit; at least one video upload is required."""
    if not title.strip():
        raise HTTPException(status_code=400, detail="Title is required")
    if not any(v.filename for v in videos or []):
        raise HTTPException(status_code=400, detail="At least one video is required")
    await curriculum.get_subject(db, subject_id)

    video_items = await _store_uploads(storage, videos, video_names, "Video")
    pdf_items = await _store_uploads(storage, pdfs, pdf_names, "PDF")
    try:
        unit = await curriculum.create_unit(
            db,
            subject_id=subject_id,
            title=title,
            description=description,
            videos=video_items,
            pdfs=pdf_items,
        )
    except Exception:
        curriculum.remove_files(storage, [i["url"] for i in video_items + pdf_items])
        raise
    return _unit_out(unit)


@router.get("/subject/{subject_id}")
async def list_units(
    subject_id: int,
    user: Student = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    units = await curriculum.find_units_by_subject_ids(db, [subject_id])
    return [_unit_out(u) for u in units]


@router.get("/{unit_id}")
async def get_unit(
    unit_id: int,
    user: Student = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return _unit_out(await curriculum.get_unit(db, unit_id))


@router.put("/{unit_id}")
async def update_unit(
    unit_id: int,
    title: str | None = Form(None),
    description: str | None = Form(None),
    videos: list[UploadFile] | None = File(None),
    pdfs: list[UploadFile] | None = File(None),
    video_names: list[str] | None = Form(None),
    pdf_names: list[str] | None = Form(None),
    remove_video_urls: list[str] | None = Form(None),
    remove_pdf_urls: list[str] | None = Form(None),
    rename_video_names: str | None = Form(None),
    rename_pdf_names: str | None = Form(None),
    user: Student = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    storage: StorageService = Depends(get_storage_service),
):
    """Edit a unit: append uploads, remove or rename resources.

    Removing the last video is rejected unless a new video is uploaded in the
    same request; a rejected edit leaves the unit unchanged.
    """
    unit = await curriculum.get_unit(db, unit_id)
    rename_videos = _parse_renames(rename_video_names, "rename_video_names")
    rename_pdfs = _parse_renames(rename_pdf_names, "rename_pdf_names")

    new_videos = await _store_uploads(storage, videos, video_names, "Video")
    new_pdfs = await _store_uploads(storage, pdfs, pdf_names, "PDF")
    try:
        removed = curriculum.apply_unit_changes(
            unit,
            title=title,
            description=description,
            add_videos=new_videos,
            add_pdfs=new_pdfs,
            remove_video_urls=remove_video_urls or [],
            remove_pdf_urls=remove_pdf_urls or [],
            rename_videos=rename_videos,
            rename_pdfs=rename_pdfs,
        )
    except ValidationFailure:
        curriculum.remove_files(storage, [i["url"] for i in new_videos + new_pdfs])
        raise

    await db.commit()
    await db.refresh(unit)
    curriculum.remove_files(storage, removed)
    logger.info("Updated unit %d (removed %d resource(s))", unit_id, len(removed))
    return {"message": "Unit updated successfully", "unit": _unit_out(unit)}


@router.delete("/{unit_id}")
async def delete_unit(
    unit_id: int,
    user: Student = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    storage: StorageService = Depends(get_storage_service),
):
    """Delete a unit, its files and quizzes, and purge quiz progress."""
    await curriculum.delete_unit(db, unit_id, storage)
    return {"message": "Unit deleted"}
