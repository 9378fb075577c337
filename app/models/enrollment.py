"""Student enrollment association tables."""

from sqlalchemy import Column, ForeignKey, Integer, Table

from app.database import Base

student_classes = Table(
    "student_classes",
    Base.metadata,
    Column("student_id", Integer, ForeignKey("students.id", ondelete="CASCADE"), primary_key=True),
    Column("class_id", Integer, ForeignKey("classes.id", ondelete="CASCADE"), primary_key=True),
)

# Explicit subject enrollments; when non-empty they filter the subjects of
# enrolled classes.
student_subjects = Table(
    "student_subjects",
    Base.metadata,
    Column("student_id", Integer, ForeignKey("students.id", ondelete="CASCADE"), primary_key=True),
    Column("subject_id", Integer, ForeignKey("subjects.id", ondelete="CASCADE"), primary_key=True),
)
