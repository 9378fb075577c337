"""Progress aggregation engine.

Turns a student's completion ledger (resource views and quiz attempts) and a
snapshot of the curriculum they are accountable for into:

* a flat summary -- ``overall_percent``, ``total_items``, ``completed_items``
* a class -> subject -> unit -> resource status tree

Everything here is pure; loading and persistence live in
``app.services.curriculum`` and ``app.services.tracking``.

Counting rules
--------------
* A resource is identified by ``unit_id::type::normalized_url``. The same file
  listed twice under one unit, or logged from two hostnames, counts once.
* Each unit contributes one quiz slot if it has at least one quiz (enabled or
  not), no matter how many quizzes it has.
* Ledger entries pointing at deleted units or quizzes are tolerated; the
  completed count is clamped to the total.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Literal
from urllib.parse import urlsplit

from pydantic import BaseModel

from app.models.progress import QuizProgress, ResourceProgress
from app.models.quiz import Quiz
from app.models.student import Student
from app.models.unit import Unit

Status = Literal["completed", "started", "not-started", "not-applicable"]

COMPLETED: Status = "completed"
STARTED: Status = "started"
NOT_STARTED: Status = "not-started"
NOT_APPLICABLE: Status = "not-applicable"


# ---------------------------------------------------------------------------
# Resource keys
# ---------------------------------------------------------------------------


def normalize_resource_url(url: str | None) -> str:
    """Strip scheme and host from absolute URLs, keep relative paths as-is.

    A host-only URL maps to the root path "/".

    >>> normalize_resource_url("http://host/uploads/a.mp4")
    '/uploads/a.mp4'
    >>> normalize_resource_url("/uploads/a.mp4")
    '/uploads/a.mp4'
    """
    if not url:
        return ""
    url = str(url)
    if url.startswith(("http://", "https://")):
        try:
            return urlsplit(url).path or "/"
        except ValueError:
            return url
    return url


def resource_key(unit_id: int | str, resource_type: str, url: str | None) -> str:
    return f"{unit_id}::{resource_type}::{normalize_resource_url(url)}"


# ---------------------------------------------------------------------------
# Enrollment
# ---------------------------------------------------------------------------


def explicit_subject_ids(student: Student) -> set[int]:
    return {s.id for s in student.enrolled_subjects or []}


def subject_visible(subject_id: int, explicit: set[int]) -> bool:
    """Whether a class subject counts for a student with *explicit* overrides."""
    return not explicit or subject_id in explicit


def resolve_subject_ids(student: Student) -> set[int]:
    """Subject ids the student is accountable for.

    Subjects of enrolled classes, filtered by the explicit subject enrollments
    when there are any, plus every explicitly enrolled subject.
    """
    explicit = explicit_subject_ids(student)
    subject_ids: set[int] = set()
    for school_class in student.enrolled_classes or []:
        for subject in school_class.subjects or []:
            if subject_visible(subject.id, explicit):
                subject_ids.add(subject.id)
    subject_ids |= explicit
    return subject_ids


# ---------------------------------------------------------------------------
# Curriculum snapshot and ledger
# ---------------------------------------------------------------------------


@dataclass
class Curriculum:
    """Units (unique by id) and their quizzes for a set of subjects."""

    units: list[Unit] = field(default_factory=list)
    quizzes_by_unit: dict[int, list[Quiz]] = field(default_factory=dict)

    @classmethod
    def from_records(cls, units: Iterable[Unit], quizzes: Iterable[Quiz]) -> Curriculum:
        unique_units: dict[int, Unit] = {}
        for unit in units:
            unique_units.setdefault(unit.id, unit)
        quizzes_by_unit: dict[int, list[Quiz]] = {}
        for quiz in quizzes:
            if quiz.unit_id in unique_units:
                quizzes_by_unit.setdefault(quiz.unit_id, []).append(quiz)
        return cls(units=list(unique_units.values()), quizzes_by_unit=quizzes_by_unit)

    def units_for_subject(self, subject_id: int) -> list[Unit]:
        return [u for u in self.units if u.subject_id == subject_id]

    @property
    def resource_keys(self) -> set[str]:
        keys = set()
        for unit in self.units:
            for video in unit.videos or []:
                keys.add(resource_key(unit.id, "video", video.get("url")))
            for pdf in unit.pdfs or []:
                keys.add(resource_key(unit.id, "pdf", pdf.get("url")))
        return keys

    @property
    def quiz_unit_count(self) -> int:
        return sum(1 for quizzes in self.quizzes_by_unit.values() if quizzes)

    @property
    def total_items(self) -> int:
        return len(self.resource_keys) + self.quiz_unit_count


@dataclass
class Ledger:
    """Deduplicated view of a student's completion logs."""

    resource_keys: set[str] = field(default_factory=set)
    quiz_ids: set[int] = field(default_factory=set)

    @classmethod
    def from_entries(
        cls,
        resource_progress: Iterable[ResourceProgress],
        quiz_progress: Iterable[QuizProgress],
    ) -> Ledger:
        return cls(
            resource_keys={
                resource_key(r.unit_id, r.resource_type or "", r.resource_url)
                for r in resource_progress
            },
            quiz_ids={q.quiz_id for q in quiz_progress if q.quiz_id is not None},
        )

    @classmethod
    def from_student(cls, student: Student) -> Ledger:
        return cls.from_entries(student.resource_progress or [], student.quiz_progress or [])

    @property
    def completed_resources(self) -> int:
        return len(self.resource_keys)

    @property
    def completed_quizzes(self) -> int:
        return len(self.quiz_ids)


# ---------------------------------------------------------------------------
# Flat summary
# ---------------------------------------------------------------------------


class ProgressSummary(BaseModel):
    overall_percent: int
    total_items: int
    completed_items: int


EMPTY_SUMMARY = ProgressSummary(overall_percent=0, total_items=0, completed_items=0)


def percent(completed: int, total: int) -> int:
    """Rounded (half up) percentage clamped to 0-100."""
    if total <= 0:
        return 0
    value = math.floor(completed * 100 / total + 0.5)
    return max(0, min(100, value))


def compute_progress(ledger: Ledger, curriculum: Curriculum) -> ProgressSummary:
    total_items = curriculum.total_items
    completed_items = min(ledger.completed_resources + ledger.completed_quizzes, total_items)
    return ProgressSummary(
        overall_percent=percent(completed_items, total_items),
        total_items=total_items,
        completed_items=completed_items,
    )


def persist_cache(student: Student, summary: ProgressSummary) -> None:
    """Overwrite the student's cached percentage (caller commits)."""
    student.overall_progress = summary.overall_percent


# ---------------------------------------------------------------------------
# Status tree
# ---------------------------------------------------------------------------


class ResourceNode(BaseModel):
    type: Literal["video", "pdf"]
    url: str
    name: str | None = None
    status: Status


class UnitNode(BaseModel):
    id: int
    title: str
    status: Status
    videos: list[ResourceNode]
    pdfs: list[ResourceNode]
    has_quiz: bool
    quiz_status: Status


class SubjectNode(BaseModel):
    id: int
    name: str
    status: Status
    unit_count: int
    units: list[UnitNode]


class ClassNode(BaseModel):
    id: int
    name: str
    status: Status
    subjects: list[SubjectNode]


class ProgressTree(BaseModel):
    classes: list[ClassNode]


def unit_status(total_count: int, completed_count: int) -> Status:
    if total_count == 0:
        return NOT_APPLICABLE
    if completed_count == 0:
        return NOT_STARTED
    if completed_count >= total_count:
        return COMPLETED
    return STARTED


def rollup_status(child_statuses: Iterable[Status]) -> Status:
    """Reduce children to a parent status, ignoring not-applicable children."""
    applicable = [s for s in child_statuses if s != NOT_APPLICABLE]
    if not applicable:
        return NOT_APPLICABLE
    if all(s == COMPLETED for s in applicable):
        return COMPLETED
    if any(s in (STARTED, COMPLETED) for s in applicable):
        return STARTED
    return NOT_STARTED


def _resource_nodes(unit: Unit, resource_type: str, items: list[dict], ledger: Ledger) -> list[ResourceNode]:
    nodes = []
    for item in items or []:
        url = item.get("url") or ""
        done = resource_key(unit.id, resource_type, url) in ledger.resource_keys
        nodes.append(ResourceNode(
            type=resource_type,
            url=url,
            name=item.get("name"),
            status=COMPLETED if done else NOT_STARTED,
        ))
    return nodes


def build_unit_node(unit: Unit, quizzes: list[Quiz], ledger: Ledger) -> UnitNode:
    videos = _resource_nodes(unit, "video", unit.videos, ledger)
    pdfs = _resource_nodes(unit, "pdf", unit.pdfs, ledger)

    has_quiz = bool(quizzes)
    if not has_quiz:
        quiz_status = NOT_APPLICABLE
    elif any(q.id in ledger.quiz_ids for q in quizzes):
        quiz_status = COMPLETED
    else:
        quiz_status = NOT_STARTED

    resources = videos + pdfs
    total_count = len(resources) + (1 if has_quiz else 0)
    completed_count = sum(1 for r in resources if r.status == COMPLETED)
    if quiz_status == COMPLETED:
        completed_count += 1

    return UnitNode(
        id=unit.id,
        title=unit.title,
        status=unit_status(total_count, completed_count),
        videos=videos,
        pdfs=pdfs,
        has_quiz=has_quiz,
        quiz_status=quiz_status,
    )


def build_progress_tree(student: Student, curriculum: Curriculum, ledger: Ledger) -> ProgressTree:
    explicit = explicit_subject_ids(student)
    classes = []
    for school_class in student.enrolled_classes or []:
        subjects = []
        for subject in school_class.subjects or []:
            if not subject_visible(subject.id, explicit):
                continue
            units = [
                build_unit_node(unit, curriculum.quizzes_by_unit.get(unit.id, []), ledger)
                for unit in curriculum.units_for_subject(subject.id)
            ]
            subjects.append(SubjectNode(
                id=subject.id,
                name=subject.name,
                status=rollup_status(u.status for u in units),
                unit_count=len(units),
                units=units,
            ))
        classes.append(ClassNode(
            id=school_class.id,
            name=school_class.name,
            status=rollup_status(s.status for s in subjects),
            subjects=subjects,
        ))
    return ProgressTree(classes=classes)
