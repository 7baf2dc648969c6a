from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from app.api.deps import StudentUser
from app.db.session import get_db
from app.schemas.enrollments import (
    EnrollmentListResponse,
    EnrollmentOut,
    EnrollRequest,
    LessonProgressRequest,
    QuizSubmitRequest,
    RatingRequest,
)
from app.services import enrollment_service

router = APIRouter(prefix="/v1/enrollments", tags=["enrollments"])


@router.post("", response_model=EnrollmentOut, status_code=status.HTTP_201_CREATED)
def enroll_in_course(
    payload: EnrollRequest,
    response: Response,
    current_user: StudentUser,
    db: Session = Depends(get_db),
) -> EnrollmentOut:
    enrollment, created = enrollment_service.request_enrollment(db, current_user, payload.course_id)
    if not created:
        response.status_code = status.HTTP_200_OK
    return enrollment_service.enrollment_out(db, enrollment)


@router.get("/me", response_model=EnrollmentListResponse)
def list_my_enrollments(current_user: StudentUser, db: Session = Depends(get_db)) -> EnrollmentListResponse:
    enrollments = enrollment_service.list_user_enrollments(db, current_user)
    return EnrollmentListResponse(
        enrollments=[enrollment_service.enrollment_out(db, enrollment) for enrollment in enrollments]
    )


@router.put("/{enrollment_id}/progress", response_model=EnrollmentOut)
def update_progress(
    enrollment_id: str,
    payload: LessonProgressRequest,
    current_user: StudentUser,
    db: Session = Depends(get_db),
) -> EnrollmentOut:
    enrollment = enrollment_service.get_active_enrollment(db, enrollment_id, current_user)
    enrollment = enrollment_service.record_lesson_completion(db, enrollment, payload.module_id, payload.lesson_id)
    return enrollment_service.enrollment_out(db, enrollment)


@router.put("/{enrollment_id}/quiz", response_model=EnrollmentOut)
def submit_quiz(
    enrollment_id: str,
    payload: QuizSubmitRequest,
    current_user: StudentUser,
    db: Session = Depends(get_db),
) -> EnrollmentOut:
    enrollment = enrollment_service.get_active_enrollment(db, enrollment_id, current_user)
    enrollment, _, _ = enrollment_service.grade_quiz(db, enrollment, payload.module_id, payload.answers)
    return enrollment_service.enrollment_out(db, enrollment)


@router.put("/{enrollment_id}/rating", response_model=EnrollmentOut)
def rate_enrollment(
    enrollment_id: str,
    payload: RatingRequest,
    current_user: StudentUser,
    db: Session = Depends(get_db),
) -> EnrollmentOut:
    enrollment = enrollment_service.get_active_enrollment(db, enrollment_id, current_user)
    enrollment = enrollment_service.rate_enrollment(db, enrollment, payload.rating, payload.review)
    return enrollment_service.enrollment_out(db, enrollment)
