"""Student ORM model."""

from datetime import datetime, timezone

from sqlalchemy import Integer, String, DateTime
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base
from app.models.enrollment import student_classes, student_subjects


class Student(Base):
    __tablename__ = "students"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    name: Mapped[str | None] = mapped_column(String, nullable=True)
    school_name: Mapped[str | None] = mapped_column(String, nullable=True)
    role: Mapped[str] = mapped_column(String, nullable=False, default="student")
    # Read-through cache of the last computed completion percentage
    overall_progress: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    enrolled_classes: Mapped[list["SchoolClass"]] = relationship(
        "SchoolClass", secondary=student_classes, order_by="SchoolClass.id"
    )
    enrolled_subjects: Mapped[list["Subject"]] = relationship(
        "Subject", secondary=student_subjects, order_by="Subject.id"
    )
    resource_progress: Mapped[list["ResourceProgress"]] = relationship(
        "ResourceProgress",
        back_populates="student",
        cascade="all, delete-orphan",
        order_by="ResourceProgress.id",
    )
    quiz_progress: Mapped[list["QuizProgress"]] = relationship(
        "QuizProgress",
        back_populates="student",
        cascade="all, delete-orphan",
        order_by="QuizProgress.id",
    )
