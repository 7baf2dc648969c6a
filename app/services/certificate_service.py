import logging
import uuid

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.security import now_utc
from app.models import Certificate, Course, Enrollment, User
from app.schemas.certificates import CertificateOut
from app.services.email_sender import send_certificate_issued

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE = {
    "enabled": True,
    "title": "Certificate of Completion",
    "subtitle": "This certifies that",
    "logo_url": None,
    "background_url": None,
    "signature_title": "Program Director",
}


def create_certificate_number() -> str:
    prefix = get_settings().certificate_number_prefix
    return f"{prefix}-{uuid.uuid4().hex[:12].upper()}"


def template_snapshot(course: Course) -> dict:
    snapshot = dict(DEFAULT_TEMPLATE)
    snapshot["signature_name"] = get_settings().certificate_signature_name
    snapshot.update(course.certificate_template or {})
    return snapshot


def maybe_issue_certificate(db: Session, course: Course, enrollment: Enrollment) -> Certificate | None:
    """Issue the certificate for a completed enrollment, at most once."""
    if enrollment.completion_status != "completed":
        return None
    snapshot = template_snapshot(course)
    if snapshot.get("enabled") is False:
        return None

    existing = db.execute(select(Certificate).where(Certificate.enrollment_id == enrollment.id)).scalars().first()
    if existing:
        return existing

    student = db.get(User, enrollment.user_id)
    recipient_name = (student.name if student else "") or "Student"

    certificate = Certificate(
        user_id=enrollment.user_id,
        course_id=course.id,
        enrollment_id=enrollment.id,
        recipient_name=recipient_name,
        course_title=course.title,
        certificate_number=create_certificate_number(),
        template_snapshot=snapshot,
        issued_at=now_utc(),
    )
    db.add(certificate)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        return db.execute(select(Certificate).where(Certificate.enrollment_id == enrollment.id)).scalars().first()
    db.refresh(certificate)

    logger.info("Issued certificate %s for enrollment %s", certificate.certificate_number, enrollment.id)
    if student:
        send_certificate_issued(student.email, recipient_name, course.title, certificate.certificate_number)
    return certificate


def certificate_out(certificate: Certificate) -> CertificateOut:
    return CertificateOut(
        id=str(certificate.id),
        user_id=str(certificate.user_id),
        course_id=str(certificate.course_id),
        enrollment_id=str(certificate.enrollment_id),
        recipient_name=certificate.recipient_name,
        course_title=certificate.course_title,
        certificate_number=certificate.certificate_number,
        template_snapshot=certificate.template_snapshot,
        issued_at=certificate.issued_at.isoformat(),
    )


def list_user_certificates(db: Session, user: User) -> list[Certificate]:
    return list(
        db.execute(
            select(Certificate).where(Certificate.user_id == user.id).order_by(Certificate.issued_at.desc())
        ).scalars()
    )


def list_certificates(db: Session, course_id: uuid.UUID | None = None) -> list[Certificate]:
    stmt = select(Certificate).order_by(Certificate.issued_at.desc())
    if course_id is not None:
        stmt = stmt.where(Certificate.course_id == course_id)
    return list(db.execute(stmt).scalars())
