"""Unit tests for the pure progress engine (no database)."""

import pytest

from app.models import QuizProgress, ResourceProgress, SchoolClass, Student, Subject, Unit
from app.models.quiz import Quiz
from app.services.progress import (
    COMPLETED,
    NOT_APPLICABLE,
    NOT_STARTED,
    STARTED,
    Curriculum,
    Ledger,
    build_progress_tree,
    compute_progress,
    normalize_resource_url,
    percent,
    resolve_subject_ids,
    resource_key,
    rollup_status,
    unit_status,
)


def make_unit(unit_id, subject_id=1, videos=(), pdfs=()):
    return Unit(
        id=unit_id,
        subject_id=subject_id,
        title=f"Unit {unit_id}",
        videos=[{"url": v, "name": v} for v in videos],
        pdfs=[{"url": p, "name": p} for p in pdfs],
    )


def make_student(classes=(), subjects=(), resources=(), quizzes=()):
    return Student(
        email="s@example.com",
        enrolled_classes=list(classes),
        enrolled_subjects=list(subjects),
        resource_progress=[
            ResourceProgress(unit_id=u, resource_type=t, resource_url=url) for u, t, url in resources
        ],
        quiz_progress=[QuizProgress(quiz_id=q, score=1) for q in quizzes],
    )


# ─── Normalizer ───────────────────────────────────────────────────────


def test_absolute_and_relative_urls_normalize_to_same_key():
    assert normalize_resource_url("http://host/uploads/a.mp4") == normalize_resource_url("/uploads/a.mp4")
    assert normalize_resource_url("https://cdn.example.com:8443/uploads/a.mp4") == "/uploads/a.mp4"


@pytest.mark.parametrize(
    "url",
    ["http://host/uploads/a.mp4", "/uploads/a.mp4", "uploads/a.mp4", "https://host", "", None],
)
def test_normalize_is_idempotent(url):
    once = normalize_resource_url(url)
    assert normalize_resource_url(once) == once


def test_host_only_url_maps_to_root_and_unparseable_is_kept():
    assert normalize_resource_url("https://host") == "/"
    assert normalize_resource_url("http://host/") == "/"
    assert normalize_resource_url("http://[::1/broken") == "http://[::1/broken"
    assert normalize_resource_url(None) == ""


def test_resource_key_shape():
    assert resource_key(3, "pdf", "http://old-host/uploads/n.pdf") == "3::pdf::/uploads/n.pdf"


# ─── Enrollment resolver ──────────────────────────────────────────────


def test_resolve_all_class_subjects_without_explicit_overrides():
    s1, s2 = Subject(id=1, name="S1"), Subject(id=2, name="S2")
    c = SchoolClass(id=1, name="C", subjects=[s1, s2])
    assert resolve_subject_ids(make_student(classes=[c])) == {1, 2}


def test_resolve_explicit_subjects_filter_and_extend():
    s1, s2, s3 = Subject(id=1, name="S1"), Subject(id=2, name="S2"), Subject(id=3, name="S3")
    c = SchoolClass(id=1, name="C", subjects=[s1, s2])
    # s3 belongs to no enrolled class but is still counted
    student = make_student(classes=[c], subjects=[s2, s3])
    assert resolve_subject_ids(student) == {2, 3}


def test_resolve_nothing_enrolled():
    assert resolve_subject_ids(make_student()) == set()


# ─── Curriculum & ledger ──────────────────────────────────────────────


def test_curriculum_dedupes_units_resources_and_quiz_slots():
    unit = make_unit(1, videos=["/uploads/a.mp4", "http://host/uploads/a.mp4"], pdfs=["/uploads/a.pdf"])
    quizzes = [Quiz(id=10, unit_id=1), Quiz(id=11, unit_id=1), Quiz(id=12, unit_id=99)]
    curriculum = Curriculum.from_records([unit, unit], quizzes)

    assert len(curriculum.units) == 1
    assert curriculum.resource_keys == {"1::video::/uploads/a.mp4", "1::pdf::/uploads/a.pdf"}
    assert curriculum.quiz_unit_count == 1
    assert curriculum.total_items == 3


def test_ledger_dedupes_repeated_entries():
    student = make_student(
        resources=[
            (1, "video", "/uploads/a.mp4"),
            (1, "video", "http://other-host/uploads/a.mp4"),
            (1, "pdf", "/uploads/a.mp4"),
        ],
        quizzes=[10, 10],
    )
    ledger = Ledger.from_student(student)
    assert ledger.completed_resources == 2
    assert ledger.completed_quizzes == 1


# ─── Flat summary ─────────────────────────────────────────────────────


def test_empty_curriculum_is_zero():
    summary = compute_progress(Ledger(resource_keys={"1::video::/x"}, quiz_ids={4}), Curriculum())
    assert summary.model_dump() == {"overall_percent": 0, "total_items": 0, "completed_items": 0}


def test_two_of_three_resources_is_67_percent():
    curriculum = Curriculum.from_records(
        [make_unit(1, videos=["/v1.mp4", "/v2.mp4"], pdfs=["/p.pdf"])], []
    )
    ledger = Ledger(resource_keys={resource_key(1, "video", "/v1.mp4"), resource_key(1, "video", "/v2.mp4")})
    summary = compute_progress(ledger, curriculum)
    assert (summary.total_items, summary.completed_items, summary.overall_percent) == (3, 2, 67)


def test_stale_entries_are_clamped_to_total():
    curriculum = Curriculum.from_records([make_unit(1, videos=["/v1.mp4"])], [])
    ledger = Ledger(
        resource_keys={resource_key(1, "video", "/v1.mp4"), resource_key(99, "video", "/gone.mp4")},
        quiz_ids={123},
    )
    summary = compute_progress(ledger, curriculum)
    assert summary.completed_items == 1
    assert summary.overall_percent == 100


@pytest.mark.parametrize(
    "completed,total,expected",
    [(0, 0, 0), (1, 2, 50), (1, 3, 33), (2, 3, 67), (1, 8, 13), (5, 5, 100), (7, 5, 100)],
)
def test_percent_rounds_half_up_and_clamps(completed, total, expected):
    assert percent(completed, total) == expected


# ─── Status derivation ────────────────────────────────────────────────


@pytest.mark.parametrize(
    "total,completed,expected",
    [(0, 0, NOT_APPLICABLE), (3, 0, NOT_STARTED), (3, 1, STARTED), (3, 3, COMPLETED), (3, 4, COMPLETED)],
)
def test_unit_status(total, completed, expected):
    assert unit_status(total, completed) == expected


def test_rollup_ignores_not_applicable_children():
    assert rollup_status([]) == NOT_APPLICABLE
    assert rollup_status([NOT_APPLICABLE, NOT_APPLICABLE]) == NOT_APPLICABLE
    assert rollup_status([NOT_APPLICABLE, COMPLETED]) == COMPLETED
    assert rollup_status([NOT_STARTED, NOT_APPLICABLE]) == NOT_STARTED
    assert rollup_status([COMPLETED, NOT_STARTED]) == STARTED
    assert rollup_status([STARTED, NOT_STARTED]) == STARTED


def test_tree_not_applicable_subject_does_not_hold_back_class():
    done, empty = Subject(id=1, name="Done"), Subject(id=2, name="Empty")
    c = SchoolClass(id=1, name="C", subjects=[done, empty])
    unit = make_unit(1, subject_id=1, videos=["/v.mp4"])
    student = make_student(classes=[c], resources=[(1, "video", "http://host/v.mp4")])
    curriculum = Curriculum.from_records([unit], [])

    tree = build_progress_tree(student, curriculum, Ledger.from_student(student))

    class_node = tree.classes[0]
    assert [s.status for s in class_node.subjects] == [COMPLETED, NOT_APPLICABLE]
    assert class_node.subjects[1].unit_count == 0
    assert class_node.status == COMPLETED


def test_tree_quiz_status_any_quiz_completes_the_slot():
    s = Subject(id=1, name="S")
    c = SchoolClass(id=1, name="C", subjects=[s])
    unit = make_unit(1, videos=["/v.mp4"], pdfs=["/p.pdf"])
    quizzes = [Quiz(id=10, unit_id=1), Quiz(id=11, unit_id=1)]
    student = make_student(classes=[c], quizzes=[11])

    tree = build_progress_tree(student, Curriculum.from_records([unit], quizzes), Ledger.from_student(student))

    unit_node = tree.classes[0].subjects[0].units[0]
    assert unit_node.has_quiz is True
    assert unit_node.quiz_status == COMPLETED
    assert [r.status for r in unit_node.videos + unit_node.pdfs] == [NOT_STARTED, NOT_STARTED]
    assert unit_node.status == STARTED
    assert tree.classes[0].status == STARTED


def test_tree_hides_subjects_outside_explicit_enrollment():
    s1, s2 = Subject(id=1, name="S1"), Subject(id=2, name="S2")
    c = SchoolClass(id=1, name="C", subjects=[s1, s2])
    student = make_student(classes=[c], subjects=[s2])
    curriculum = Curriculum.from_records([make_unit(1, subject_id=2, videos=["/v.mp4"])], [])

    tree = build_progress_tree(student, curriculum, Ledger.from_student(student))

    assert [s.id for s in tree.classes[0].subjects] == [2]
    assert tree.classes[0].status == NOT_STARTED
    assert tree.classes[0].subjects[0].units[0].quiz_status == NOT_APPLICABLE
