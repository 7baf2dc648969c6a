from __future__ import annotations

import re
import uuid

from sqlalchemy import delete as sql_delete
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.error_codes import ErrorCode
from app.core.errors import ApiError
from app.models import Certificate, Course, CourseModule, Enrollment, Lesson, LessonCompletion, QuizResult
from app.schemas.admin_courses import (
    AdminCourseCreateRequest,
    AdminCourseUpdateRequest,
    AdminModuleCreate,
    AdminQuiz,
)
from app.services.course_service import get_course_or_404, parse_uuid
from app.services.enrollment_service import recompute_course_progress


def slugify(title: str) -> str:
    slug = re.sub(r"[^a-zA-Z0-9 -]", "", title.lower())
    slug = re.sub(r"\s+", "-", slug)
    return re.sub(r"-+", "-", slug)


def _quiz_json(quiz: AdminQuiz | None) -> dict | None:
    if quiz is None or not quiz.questions:
        return None
    passing_score = quiz.passing_score
    if passing_score is None:
        passing_score = get_settings().quiz_default_passing_score
    return {
        "title": quiz.title.strip() or "Module Quiz",
        "description": quiz.description.strip(),
        "passing_score": passing_score,
        "questions": [
            {
                "question": question.question.strip(),
                "options": [option.strip() for option in question.options],
                "correct_index": question.correct_index,
            }
            for question in quiz.questions
        ],
    }


def _add_modules(db: Session, course_id: uuid.UUID, modules: list[AdminModuleCreate]) -> None:
    for module_in in modules:
        module = CourseModule(
            course_id=course_id,
            title=module_in.title.strip(),
            description=module_in.description.strip(),
            sort_order=module_in.order,
            is_published=module_in.is_published,
            quiz_json=_quiz_json(module_in.quiz),
        )
        db.add(module)
        db.flush()

        for lesson_in in module_in.lessons:
            db.add(
                Lesson(
                    module_id=module.id,
                    title=lesson_in.title.strip(),
                    description=lesson_in.description.strip(),
                    lesson_type=lesson_in.lesson_type,
                    content=lesson_in.content,
                    video_url=lesson_in.video_url,
                    duration=lesson_in.duration,
                    document_url=lesson_in.document_url,
                    image_url=lesson_in.image_url,
                    sort_order=lesson_in.order,
                    is_free=lesson_in.is_free,
                )
            )


def create_course_with_modules(db: Session, payload: AdminCourseCreateRequest) -> Course:
    teacher_id = None
    if payload.teacher_id:
        teacher_id = parse_uuid(payload.teacher_id, code=ErrorCode.INVALID_USER, message="Teacher not found")

    try:
        course = Course(
            title=payload.title.strip(),
            slug=slugify(payload.title.strip()),
            description=payload.description.strip(),
            summary=payload.summary.strip(),
            price=payload.price,
            level=payload.level,
            category=payload.category,
            image_url=payload.image_url,
            teacher_id=teacher_id,
            is_published=payload.is_published,
            is_approved=payload.is_approved,
            certificate_template=payload.certificate_template,
        )
        db.add(course)
        db.flush()

        _add_modules(db, course.id, payload.modules)
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ApiError(status_code=409, code=ErrorCode.COURSE_CONFLICT, message="Course could not be created") from exc

    db.refresh(course)
    return course


def update_course(db: Session, course_id: str, payload: AdminCourseUpdateRequest) -> Course:
    course = get_course_or_404(db, course_id)
    for field in [
        "title", "description", "summary", "price", "level", "category",
        "image_url", "is_published", "is_approved", "certificate_template",
    ]:
        value = getattr(payload, field, None)
        if value is not None:
            setattr(course, field, value.strip() if isinstance(value, str) else value)
    if payload.title is not None:
        course.slug = slugify(course.title)
    db.commit()
    db.refresh(course)
    return course


def replace_course_modules(db: Session, course_id: str, modules: list[AdminModuleCreate]) -> Course:
    """Swap the whole module tree of a course.

    Modules and lessons get new ids, so recorded completions and quiz results
    stop counting; every enrollment of the course is recomputed afterwards.
    """
    course = get_course_or_404(db, course_id)

    module_ids = list(db.execute(select(CourseModule.id).where(CourseModule.course_id == course.id)).scalars())
    if module_ids:
        db.execute(sql_delete(Lesson).where(Lesson.module_id.in_(module_ids)))
        db.execute(sql_delete(CourseModule).where(CourseModule.id.in_(module_ids)))

    _add_modules(db, course.id, modules)
    db.commit()
    db.refresh(course)
    recompute_course_progress(db, course)
    return course


def list_all_courses(db: Session) -> list[tuple[Course, int]]:
    """Return all courses (newest first) paired with their module count."""
    courses = db.execute(select(Course).order_by(Course.created_at.desc())).scalars().all()
    if not courses:
        return []
    course_ids = [c.id for c in courses]
    counts_result = db.execute(
        select(CourseModule.course_id, func.count(CourseModule.id).label("cnt"))
        .where(CourseModule.course_id.in_(course_ids))
        .group_by(CourseModule.course_id)
    ).all()
    count_map = {row.course_id: row.cnt for row in counts_result}
    return [(course, count_map.get(course.id, 0)) for course in courses]


def delete_course(db: Session, course_id: str) -> None:
    """Hard-delete a course with its modules, lessons, enrollments and certificates."""
    course = get_course_or_404(db, course_id)

    enrollment_ids = list(db.execute(select(Enrollment.id).where(Enrollment.course_id == course.id)).scalars())
    if enrollment_ids:
        db.execute(sql_delete(LessonCompletion).where(LessonCompletion.enrollment_id.in_(enrollment_ids)))
        db.execute(sql_delete(QuizResult).where(QuizResult.enrollment_id.in_(enrollment_ids)))
    db.execute(sql_delete(Certificate).where(Certificate.course_id == course.id))
    db.execute(sql_delete(Enrollment).where(Enrollment.course_id == course.id))

    module_ids = list(db.execute(select(CourseModule.id).where(CourseModule.course_id == course.id)).scalars())
    if module_ids:
        db.execute(sql_delete(Lesson).where(Lesson.module_id.in_(module_ids)))
    db.execute(sql_delete(CourseModule).where(CourseModule.course_id == course.id))
    db.delete(course)
    db.commit()
