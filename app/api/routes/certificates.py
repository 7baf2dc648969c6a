from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import CurrentUser
from app.core.error_codes import ErrorCode
from app.core.errors import ApiError
from app.db.session import get_db
from app.models import Certificate, Course
from app.schemas.certificates import CertificateListResponse, CertificateOut
from app.services.certificate_service import certificate_out, list_user_certificates
from app.services.course_service import parse_uuid

router = APIRouter(prefix="/v1/certificates", tags=["certificates"])


@router.get("/me", response_model=CertificateListResponse)
def list_my_certificates(current_user: CurrentUser, db: Session = Depends(get_db)) -> CertificateListResponse:
    return CertificateListResponse(
        certificates=[certificate_out(certificate) for certificate in list_user_certificates(db, current_user)]
    )


@router.get("/{certificate_id}", response_model=CertificateOut)
def get_certificate(certificate_id: str, current_user: CurrentUser, db: Session = Depends(get_db)) -> CertificateOut:
    certificate = db.get(
        Certificate,
        parse_uuid(certificate_id, code=ErrorCode.CERTIFICATE_NOT_FOUND, message="Certificate not found"),
    )
    if not certificate:
        raise ApiError(status_code=404, code=ErrorCode.CERTIFICATE_NOT_FOUND, message="Certificate not found")

    is_owner = certificate.user_id == current_user.id
    is_admin = current_user.role == "admin"
    is_teacher = False
    if not is_owner and not is_admin:
        course = db.get(Course, certificate.course_id)
        is_teacher = bool(course and course.teacher_id == current_user.id)
    if not (is_owner or is_admin or is_teacher):
        raise ApiError(status_code=403, code=ErrorCode.FORBIDDEN, message="Not authorized to access this certificate")

    return certificate_out(certificate)
