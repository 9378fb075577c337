"""Quiz ORM model."""

from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class Quiz(Base):
    __tablename__ = "quizzes"
    # Ids are never reused, so leftover quiz_progress rows cannot match a new quiz
    __table_args__ = {"sqlite_autoincrement": True}

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    unit_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("units.id"), nullable=False
    )
    name: Mapped[str | None] = mapped_column(String, nullable=True)
    # New quizzes start hidden from students; they still count toward progress
    enabled: Mapped[bool] = mapped_column(Boolean, default=False)
    # [{"question_text", "options": [...], "correct_answer"}]
    questions: Mapped[list[dict]] = mapped_column(JSON, default=list)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
