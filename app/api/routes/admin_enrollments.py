from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.admin_auth import require_admin_key
from app.core.error_codes import ErrorCode
from app.db.session import get_db
from app.schemas.certificates import CertificateListResponse
from app.schemas.enrollments import EnrollmentListResponse, EnrollmentOut, EnrollmentReviewRequest
from app.services import enrollment_service
from app.services.certificate_service import certificate_out, list_certificates
from app.services.course_service import parse_uuid

router = APIRouter(prefix="/v1/admin", tags=["admin"], dependencies=[Depends(require_admin_key)])


@router.get("/enrollments/pending", response_model=EnrollmentListResponse)
def list_pending(db: Session = Depends(get_db)) -> EnrollmentListResponse:
    return EnrollmentListResponse(
        enrollments=[
            enrollment_service.enrollment_out(db, enrollment)
            for enrollment in enrollment_service.list_pending_enrollments(db)
        ]
    )


@router.put("/enrollments/{enrollment_id}/review", response_model=EnrollmentOut)
def review_enrollment(
    enrollment_id: str,
    payload: EnrollmentReviewRequest,
    db: Session = Depends(get_db),
) -> EnrollmentOut:
    enrollment = enrollment_service.review_enrollment(db, enrollment_id, payload.status, payload.rejection_reason)
    return enrollment_service.enrollment_out(db, enrollment)


@router.get("/certificates", response_model=CertificateListResponse)
def list_all_certificates(
    course_id: str | None = Query(default=None),
    db: Session = Depends(get_db),
) -> CertificateListResponse:
    course_uuid = None
    if course_id:
        course_uuid = parse_uuid(course_id, code=ErrorCode.COURSE_NOT_FOUND, message="Course not found")
    return CertificateListResponse(
        certificates=[certificate_out(certificate) for certificate in list_certificates(db, course_uuid)]
    )
