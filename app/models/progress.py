"""Completion ledger ORM models (per-student resource and quiz logs)."""

from datetime import datetime, timezone

from sqlalchemy import Integer, Float, String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base


class ResourceProgress(Base):
    __tablename__ = "resource_progress"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    student_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("students.id", ondelete="CASCADE"), nullable=False
    )
    # Not a foreign key: entries outlive deleted units
    unit_id: Mapped[int] = mapped_column(Integer, nullable=False)
    resource_type: Mapped[str] = mapped_column(String, nullable=False)
    resource_url: Mapped[str] = mapped_column(String, nullable=False, default="")
    completed_at: Mapped[datetime] = mapped_column(
        DateTime, default=lambda: datetime.now(timezone.utc)
    )

    # Relationships
    student: Mapped["Student"] = relationship("Student", back_populates="resource_progress")


class QuizProgress(Base):
    __tablename__ = "quiz_progress"
    __table_args__ = (
        UniqueConstraint("student_id", "quiz_id", name="uq_quiz_progress_student_quiz"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    student_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("students.id", ondelete="CASCADE"), nullable=False
    )
    # Not a foreign key: purged explicitly by the unit cascade
    quiz_id: Mapped[int] = mapped_column(Integer, nullable=False)
    score: Mapped[float | None] = mapped_column(Float, nullable=True)
    completed_at: Mapped[datetime] = mapped_column(
        DateTime, default=lambda: datetime.now(timezone.utc)
    )

    # Relationships
    student: Mapped["Student"] = relationship("Student", back_populates="quiz_progress")
