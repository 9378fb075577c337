"""Unit ORM model."""

from datetime import datetime, timezone

from sqlalchemy import JSON, Integer, String, Text, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, validates

from app.database import Base

RESOURCE_TYPES = ("video", "pdf")


def normalize_resource_items(items, default_prefix: str) -> list[dict]:
    """Coerce a resource list to ``{"url", "name"}`` dicts.

    Legacy rows stored bare URL strings; those get a positional default name.
    """
    normalized = []
    for idx, item in enumerate(items or []):
        if not item:
            continue
        if isinstance(item, str):
            normalized.append({"url": item, "name": f"{default_prefix} {idx + 1}"})
            continue
        url = item.get("url")
        if not url:
            continue
        normalized.append({
            "url": str(url),
            "name": item.get("name") or f"{default_prefix} {idx + 1}",
        })
    return normalized


class Unit(Base):
    __tablename__ = "units"
    # Ids are never reused, so leftover resource_progress rows cannot match a new unit
    __table_args__ = {"sqlite_autoincrement": True}

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    subject_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("subjects.id"), nullable=False
    )
    title: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str] = mapped_column(Text, default="")
    # Ordered lists of {"url", "name"}; always reassign, never mutate in place
    videos: Mapped[list[dict]] = mapped_column(JSON, default=list)
    pdfs: Mapped[list[dict]] = mapped_column(JSON, default=list)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    @validates("videos")
    def _validate_videos(self, key, value):
        return normalize_resource_items(value, "Video")

    @validates("pdfs")
    def _validate_pdfs(self, key, value):
        return normalize_resource_items(value, "PDF")

    def resource_urls(self) -> list[str]:
        """All stored resource URLs (videos first)."""
        return [v["url"] for v in self.videos or []] + [p["url"] for p in self.pdfs or []]
