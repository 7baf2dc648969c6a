"""Server side of the learner workflow: enrollment requests, approval, lesson
progress, quiz grading and course ratings.

Lesson progress and quiz submissions are checked against the same unlock gate
the course player uses (``app.services.progression``), so a client cannot skip
past a module whose quiz has not been passed.
"""

from __future__ import annotations

import logging
import math
import uuid

from sqlalchemy import delete as sql_delete
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.core.error_codes import ErrorCode
from app.core.errors import ApiError
from app.core.security import now_utc
from app.models import Course, CourseModule, Enrollment, LessonCompletion, QuizResult, User
from app.schemas.courses import CourseOut, ModuleOut
from app.schemas.enrollments import CompletedLessonOut, CompletedQuizOut, EnrollmentOut
from app.services import email_sender, progression
from app.services.certificate_service import maybe_issue_certificate
from app.services.course_service import build_course_out, get_available_course_or_404, parse_uuid

logger = logging.getLogger(__name__)


def enrollment_out(db: Session, enrollment: Enrollment) -> EnrollmentOut:
    lessons = db.execute(
        select(LessonCompletion)
        .where(LessonCompletion.enrollment_id == enrollment.id)
        .order_by(LessonCompletion.completed_at.asc(), LessonCompletion.id.asc())
    ).scalars()
    quizzes = db.execute(
        select(QuizResult).where(QuizResult.enrollment_id == enrollment.id).order_by(QuizResult.id.asc())
    ).scalars()

    return EnrollmentOut(
        id=str(enrollment.id),
        course_id=str(enrollment.course_id),
        user_id=str(enrollment.user_id),
        completed_lessons=[
            CompletedLessonOut(module_id=str(row.module_id), lesson_id=str(row.lesson_id), completed_at=row.completed_at)
            for row in lessons
        ],
        completed_quizzes=[
            CompletedQuizOut(module_id=str(row.module_id), score=row.score, passed=row.passed, completed_at=row.completed_at)
            for row in quizzes
        ],
        percent_complete=enrollment.percent_complete,
        completion_status=enrollment.completion_status,
        approval_status=enrollment.approval_status,
        rejection_reason=enrollment.rejection_reason,
        rating=enrollment.rating,
        review=enrollment.review,
        enrolled_at=enrollment.enrolled_at,
        completed_at=enrollment.completed_at,
    )


def get_enrollment_or_404(db: Session, enrollment_id: str) -> Enrollment:
    enrollment = db.get(
        Enrollment,
        parse_uuid(enrollment_id, code=ErrorCode.ENROLLMENT_NOT_FOUND, message="Enrollment not found"),
    )
    if not enrollment:
        raise ApiError(status_code=404, code=ErrorCode.ENROLLMENT_NOT_FOUND, message="Enrollment not found")
    return enrollment


def get_active_enrollment(db: Session, enrollment_id: str, user: User) -> Enrollment:
    """Load an enrollment the current student owns and may study in."""
    enrollment = get_enrollment_or_404(db, enrollment_id)
    if enrollment.user_id != user.id:
        raise ApiError(status_code=403, code=ErrorCode.FORBIDDEN, message="Not authorized to update this enrollment")
    if enrollment.approval_status != "approved":
        raise ApiError(status_code=403, code=ErrorCode.ENROLLMENT_NOT_APPROVED, message="Enrollment is not approved yet")
    return enrollment


def list_user_enrollments(db: Session, user: User) -> list[Enrollment]:
    return list(
        db.execute(
            select(Enrollment).where(Enrollment.user_id == user.id).order_by(Enrollment.enrolled_at.desc())
        ).scalars()
    )


def _reset_progress(db: Session, enrollment: Enrollment) -> None:
    db.execute(sql_delete(LessonCompletion).where(LessonCompletion.enrollment_id == enrollment.id))
    db.execute(sql_delete(QuizResult).where(QuizResult.enrollment_id == enrollment.id))
    enrollment.percent_complete = 0
    enrollment.completion_status = "not_started"
    enrollment.completed_at = None


def request_enrollment(db: Session, user: User, course_id: str) -> tuple[Enrollment, bool]:
    """Create a pending enrollment, or re-open a rejected one.

    Returns the enrollment and whether a new row was created.
    """
    course = get_available_course_or_404(db, course_id)

    existing = db.execute(
        select(Enrollment).where(Enrollment.user_id == user.id, Enrollment.course_id == course.id)
    ).scalars().first()

    if existing:
        if existing.approval_status != "rejected":
            raise ApiError(status_code=400, code=ErrorCode.ALREADY_ENROLLED, message="Already enrolled in this course")
        _reset_progress(db, existing)
        existing.approval_status = "pending"
        existing.rejection_reason = None
        existing.reviewed_at = None
        db.commit()
        db.refresh(existing)
        enrollment, created = existing, False
    else:
        enrollment = Enrollment(
            user_id=user.id,
            course_id=course.id,
            completion_status="not_started",
            approval_status="pending",
        )
        db.add(enrollment)
        db.commit()
        db.refresh(enrollment)
        created = True

    logger.info("Enrollment %s requested by %s for course %s", enrollment.id, user.id, course.id)
    email_sender.send_enrollment_requested(user.email, user.name, course.title)
    return enrollment, created


def _course_for(db: Session, enrollment: Enrollment) -> tuple[Course, CourseOut]:
    course = db.get(Course, enrollment.course_id)
    if not course:
        raise ApiError(status_code=404, code=ErrorCode.COURSE_NOT_FOUND, message="Course not found")
    return course, build_course_out(db, course)


def _module_for(course_out: CourseOut, module_id: str) -> ModuleOut:
    normalized = str(parse_uuid(module_id, code=ErrorCode.MODULE_NOT_FOUND, message="Module not found"))
    for module in course_out.modules:
        if module.id == normalized:
            return module
    raise ApiError(status_code=404, code=ErrorCode.MODULE_NOT_FOUND, message="Module not found")


def _ensure_unlocked(course_out: CourseOut, state: EnrollmentOut, module: ModuleOut) -> None:
    blocking = progression.find_blocking_module(course_out, state, module.id)
    if blocking is not None:
        raise ApiError(
            status_code=403,
            code=ErrorCode.MODULE_LOCKED,
            message=f'Complete the quiz of "{blocking.title}" before continuing',
        )


def _apply_percent(db: Session, course_out: CourseOut, enrollment: Enrollment) -> None:
    enrollment.percent_complete = progression.calculate_percent(course_out, enrollment_out(db, enrollment))
    if enrollment.percent_complete >= 100:
        enrollment.completion_status = "completed"
        if enrollment.completed_at is None:
            enrollment.completed_at = now_utc()
        return
    enrollment.completion_status = "in_progress" if enrollment.percent_complete > 0 else "not_started"
    enrollment.completed_at = None


def _refresh_completion(db: Session, course: Course, course_out: CourseOut, enrollment: Enrollment) -> None:
    _apply_percent(db, course_out, enrollment)
    db.commit()
    db.refresh(enrollment)
    maybe_issue_certificate(db, course, enrollment)


def recompute_course_progress(db: Session, course: Course) -> int:
    """Re-derive percent and status of every enrollment after the module tree changed.

    Completions that no longer match a module or lesson stop counting. Issued
    certificates are kept. Returns the number of enrollments whose state changed.
    """
    course_out = build_course_out(db, course)
    enrollments = list(db.execute(select(Enrollment).where(Enrollment.course_id == course.id)).scalars())

    changed = 0
    for enrollment in enrollments:
        before = (enrollment.percent_complete, enrollment.completion_status)
        _apply_percent(db, course_out, enrollment)
        if (enrollment.percent_complete, enrollment.completion_status) != before:
            changed += 1
    db.commit()

    for enrollment in enrollments:
        if enrollment.approval_status == "approved":
            maybe_issue_certificate(db, course, enrollment)
    if changed:
        logger.info("Recomputed progress of %s enrollments in course %s", changed, course.id)
    return changed


def record_lesson_completion(db: Session, enrollment: Enrollment, module_id: str, lesson_id: str) -> Enrollment:
    course, course_out = _course_for(db, enrollment)
    module = _module_for(course_out, module_id)
    _ensure_unlocked(course_out, enrollment_out(db, enrollment), module)

    normalized_lesson = str(parse_uuid(lesson_id, code=ErrorCode.LESSON_NOT_FOUND, message="Lesson not found"))
    if not any(lesson.id == normalized_lesson for lesson in module.lessons):
        raise ApiError(status_code=404, code=ErrorCode.LESSON_NOT_FOUND, message="Lesson not found")

    module_uuid = uuid.UUID(module.id)
    lesson_uuid = uuid.UUID(normalized_lesson)
    existing = db.execute(
        select(LessonCompletion.id).where(
            LessonCompletion.enrollment_id == enrollment.id,
            LessonCompletion.module_id == module_uuid,
            LessonCompletion.lesson_id == lesson_uuid,
        )
    ).scalar_one_or_none()
    if existing is None:
        db.add(
            LessonCompletion(
                enrollment_id=enrollment.id,
                module_id=module_uuid,
                lesson_id=lesson_uuid,
                completed_at=now_utc(),
            )
        )
        db.flush()
        logger.info("Enrollment %s completed lesson %s", enrollment.id, lesson_uuid)

    _refresh_completion(db, course, course_out, enrollment)
    return enrollment


def score_answers(questions: list[dict], answers: list[int]) -> int:
    if not questions:
        return 0
    correct = sum(1 for question, answer in zip(questions, answers) if answer == question["correct_index"])
    return math.floor(correct * 100 / len(questions) + 0.5)


def grade_quiz(db: Session, enrollment: Enrollment, module_id: str, answers: list[int]) -> tuple[Enrollment, int, bool]:
    course, course_out = _course_for(db, enrollment)
    module = _module_for(course_out, module_id)
    _ensure_unlocked(course_out, enrollment_out(db, enrollment), module)

    module_row = db.get(CourseModule, uuid.UUID(module.id))
    quiz = module_row.quiz_json if module_row else None
    questions = (quiz or {}).get("questions") or []
    if not questions:
        raise ApiError(status_code=404, code=ErrorCode.QUIZ_NOT_AVAILABLE, message="Quiz not available for this module")
    if len(answers) < len(questions):
        raise ApiError(status_code=400, code=ErrorCode.VALIDATION_ERROR, message="Answer every question before submitting")

    result = db.execute(
        select(QuizResult).where(QuizResult.enrollment_id == enrollment.id, QuizResult.module_id == module_row.id)
    ).scalars().first()
    if result is not None and result.passed:
        raise ApiError(status_code=400, code=ErrorCode.QUIZ_ALREADY_PASSED, message="This quiz has already been passed")

    score = score_answers(questions, answers)
    passing_score = quiz.get("passing_score", progression.PASSING_SCORE)
    passed = score >= passing_score

    if result is None:
        result = QuizResult(enrollment_id=enrollment.id, module_id=module_row.id)
        db.add(result)
    result.score = score
    result.passed = passed
    result.completed_at = now_utc()
    db.flush()
    logger.info("Enrollment %s scored %s on quiz %s (passed=%s)", enrollment.id, score, module_row.id, passed)

    _refresh_completion(db, course, course_out, enrollment)
    return enrollment, score, passed


def update_course_rating(db: Session, course_id: uuid.UUID) -> None:
    average, count = db.execute(
        select(func.avg(Enrollment.rating), func.count(Enrollment.id)).where(
            Enrollment.course_id == course_id,
            Enrollment.approval_status == "approved",
            Enrollment.rating.is_not(None),
        )
    ).one()
    course = db.get(Course, course_id)
    if course:
        course.average_rating = float(average) if average is not None else 0.0
        course.number_of_reviews = int(count)


def rate_enrollment(db: Session, enrollment: Enrollment, rating: int, review: str | None) -> Enrollment:
    if enrollment.completion_status != "completed":
        raise ApiError(
            status_code=400,
            code=ErrorCode.COURSE_NOT_COMPLETED,
            message="Complete all lessons before submitting a rating",
        )
    enrollment.rating = rating
    enrollment.review = review.strip() if review and review.strip() else None
    enrollment.rated_at = now_utc()
    db.flush()
    update_course_rating(db, enrollment.course_id)
    db.commit()
    db.refresh(enrollment)
    return enrollment


def list_pending_enrollments(db: Session) -> list[Enrollment]:
    return list(
        db.execute(
            select(Enrollment).where(Enrollment.approval_status == "pending").order_by(Enrollment.enrolled_at.asc())
        ).scalars()
    )


def review_enrollment(db: Session, enrollment_id: str, status: str, rejection_reason: str | None) -> Enrollment:
    enrollment = get_enrollment_or_404(db, enrollment_id)
    was_approved = enrollment.approval_status == "approved"
    was_rejected = enrollment.approval_status == "rejected"
    had_rating = enrollment.rating is not None

    enrollment.approval_status = status
    enrollment.reviewed_at = now_utc()

    course = db.get(Course, enrollment.course_id)
    if status == "rejected":
        enrollment.rejection_reason = (rejection_reason or "").strip() or "Enrollment request rejected"
        _reset_progress(db, enrollment)
        enrollment.rating = None
        enrollment.review = None
        enrollment.rated_at = None
        if had_rating:
            db.flush()
            update_course_rating(db, enrollment.course_id)
    else:
        enrollment.rejection_reason = None
        if not was_approved and course:
            course.total_enrollments = (course.total_enrollments or 0) + 1

    db.commit()
    db.refresh(enrollment)
    logger.info("Enrollment %s reviewed: %s", enrollment.id, status)

    student = db.get(User, enrollment.user_id)
    course_title = course.title if course else "this course"
    if student and status == "approved" and not was_approved:
        email_sender.send_enrollment_approved(student.email, student.name, course_title)
    elif student and status == "rejected" and not was_rejected:
        email_sender.send_enrollment_rejected(student.email, student.name, course_title, enrollment.rejection_reason)
    return enrollment
