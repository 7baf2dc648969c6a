from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.schemas.courses import CourseListResponse, CourseOut
from app.services.course_service import build_course_out, course_summary, get_available_course_or_404, list_catalog

router = APIRouter(prefix="/v1/courses", tags=["courses"])


@router.get("", response_model=CourseListResponse)
def list_courses(db: Session = Depends(get_db)) -> CourseListResponse:
    return CourseListResponse(courses=[course_summary(course) for course in list_catalog(db)])


@router.get("/{course_id}", response_model=CourseOut)
def get_course(course_id: str, db: Session = Depends(get_db)) -> CourseOut:
    course = get_available_course_or_404(db, course_id)
    return build_course_out(db, course)
