import uuid

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.error_codes import ErrorCode
from app.core.errors import ApiError
from app.models import Course, CourseModule, Lesson
from app.schemas.courses import CourseOut, CourseSummary, LessonOut, ModuleOut, QuizOut, QuizQuestionOut


def parse_uuid(raw: str, *, code: str, message: str) -> uuid.UUID:
    try:
        return uuid.UUID(str(raw))
    except ValueError as exc:
        raise ApiError(status_code=404, code=code, message=message) from exc


def get_course_or_404(db: Session, course_id: str) -> Course:
    course = db.get(Course, parse_uuid(course_id, code=ErrorCode.COURSE_NOT_FOUND, message="Course not found"))
    if not course:
        raise ApiError(status_code=404, code=ErrorCode.COURSE_NOT_FOUND, message="Course not found")
    return course


def list_course_modules(db: Session, course_id: uuid.UUID) -> list[CourseModule]:
    return list(
        db.execute(
            select(CourseModule)
            .where(CourseModule.course_id == course_id)
            .order_by(CourseModule.sort_order.asc(), CourseModule.id.asc())
        ).scalars()
    )


def list_module_lessons(db: Session, module_ids: list[uuid.UUID]) -> dict[uuid.UUID, list[Lesson]]:
    lessons_by_module: dict[uuid.UUID, list[Lesson]] = {module_id: [] for module_id in module_ids}
    if not module_ids:
        return lessons_by_module
    rows = db.execute(
        select(Lesson).where(Lesson.module_id.in_(module_ids)).order_by(Lesson.sort_order.asc(), Lesson.id.asc())
    ).scalars()
    for lesson in rows:
        lessons_by_module[lesson.module_id].append(lesson)
    return lessons_by_module


def quiz_out(quiz_json: dict | None) -> QuizOut | None:
    if not quiz_json:
        return None
    return QuizOut(
        title=quiz_json.get("title") or "Module Quiz",
        description=quiz_json.get("description") or "",
        passing_score=quiz_json.get("passing_score", 50),
        questions=[
            QuizQuestionOut(question=question["question"], options=list(question["options"]))
            for question in quiz_json.get("questions", [])
        ],
    )


def lesson_out(lesson: Lesson) -> LessonOut:
    return LessonOut(
        id=str(lesson.id),
        title=lesson.title,
        description=lesson.description,
        lesson_type=lesson.lesson_type,
        order=lesson.sort_order,
        content=lesson.content,
        video_url=lesson.video_url,
        duration=lesson.duration,
        document_url=lesson.document_url,
        image_url=lesson.image_url,
        is_free=lesson.is_free,
    )


def course_summary(course: Course) -> CourseSummary:
    return CourseSummary(
        id=str(course.id),
        title=course.title,
        slug=course.slug,
        description=course.description,
        category=course.category,
        level=course.level,
        price=float(course.price or 0),
        image_url=course.image_url,
        average_rating=course.average_rating,
        number_of_reviews=course.number_of_reviews,
        total_enrollments=course.total_enrollments,
    )


def build_course_out(db: Session, course: Course, *, published_only: bool = True) -> CourseOut:
    """Assemble the course tree the progression gate runs on."""
    modules = list_course_modules(db, course.id)
    if published_only:
        modules = [module for module in modules if module.is_published]
    lessons_by_module = list_module_lessons(db, [module.id for module in modules])

    return CourseOut(
        **course_summary(course).model_dump(),
        summary=course.summary,
        modules=[
            ModuleOut(
                id=str(module.id),
                title=module.title,
                description=module.description,
                order=module.sort_order,
                lessons=[lesson_out(lesson) for lesson in lessons_by_module[module.id]],
                quiz=quiz_out(module.quiz_json),
            )
            for module in modules
        ],
    )


def list_catalog(db: Session) -> list[Course]:
    return list(
        db.execute(
            select(Course)
            .where(Course.is_published.is_(True), Course.is_approved.is_(True))
            .order_by(Course.created_at.desc())
        ).scalars()
    )


def get_available_course_or_404(db: Session, course_id: str) -> Course:
    course = get_course_or_404(db, course_id)
    if not course.is_published or not course.is_approved:
        raise ApiError(status_code=404, code=ErrorCode.COURSE_NOT_AVAILABLE, message="Course not available")
    return course
