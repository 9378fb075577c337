"""ORM models package - exports all models and Base."""

from app.database import Base
from app.models.enrollment import student_classes, student_subjects
from app.models.student import Student
from app.models.school_class import SchoolClass
from app.models.subject import Subject
from app.models.unit import Unit
from app.models.quiz import Quiz
from app.models.progress import QuizProgress, ResourceProgress

__all__ = [
    "Base",
    "Student",
    "SchoolClass",
    "Subject",
    "Unit",
    "Quiz",
    "ResourceProgress",
    "QuizProgress",
    "student_classes",
    "student_subjects",
]
