from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from app.api.admin_auth import require_admin_key
from app.db.session import get_db
from app.models import Course
from app.schemas.admin_courses import (
    AdminCourseCreateRequest,
    AdminCourseListResponse,
    AdminCourseResponse,
    AdminCourseSummaryResponse,
    AdminCourseUpdateRequest,
    AdminModulesReplaceRequest,
)
from app.services.admin_course_service import (
    create_course_with_modules,
    delete_course,
    list_all_courses,
    replace_course_modules,
    update_course,
)
from app.services.course_service import build_course_out, course_summary, get_course_or_404

router = APIRouter(prefix="/v1/admin/courses", tags=["admin"], dependencies=[Depends(require_admin_key)])


def _course_response(db: Session, course: Course) -> AdminCourseResponse:
    return AdminCourseResponse(
        **build_course_out(db, course, published_only=False).model_dump(),
        is_published=course.is_published,
        is_approved=course.is_approved,
        teacher_id=str(course.teacher_id) if course.teacher_id else None,
        created_at=course.created_at.isoformat(),
    )


@router.get("", response_model=AdminCourseListResponse)
def list_courses(
    db: Session = Depends(get_db),
) -> AdminCourseListResponse:
    courses_with_counts = list_all_courses(db)
    items = [
        AdminCourseSummaryResponse(
            **course_summary(course).model_dump(),
            is_published=course.is_published,
            is_approved=course.is_approved,
            module_count=count,
        )
        for course, count in courses_with_counts
    ]
    return AdminCourseListResponse(courses=items, total=len(items))


@router.post("", response_model=AdminCourseResponse, status_code=201)
def create_course(
    payload: AdminCourseCreateRequest,
    db: Session = Depends(get_db),
) -> AdminCourseResponse:
    course = create_course_with_modules(db, payload)
    return _course_response(db, course)


@router.get("/{course_id}", response_model=AdminCourseResponse)
def get_course(
    course_id: str,
    db: Session = Depends(get_db),
) -> AdminCourseResponse:
    return _course_response(db, get_course_or_404(db, course_id))


@router.patch("/{course_id}", response_model=AdminCourseResponse)
def patch_course(
    course_id: str,
    payload: AdminCourseUpdateRequest,
    db: Session = Depends(get_db),
) -> AdminCourseResponse:
    return _course_response(db, update_course(db, course_id, payload))


@router.put("/{course_id}/modules", response_model=AdminCourseResponse)
def put_course_modules(
    course_id: str,
    payload: AdminModulesReplaceRequest,
    db: Session = Depends(get_db),
) -> AdminCourseResponse:
    return _course_response(db, replace_course_modules(db, course_id, payload.modules))


@router.delete("/{course_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_course_endpoint(
    course_id: str,
    db: Session = Depends(get_db),
) -> Response:
    delete_course(db, course_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
