from pydantic import BaseModel


class CertificateOut(BaseModel):
    id: str
    user_id: str
    course_id: str
    enrollment_id: str
    recipient_name: str
    course_title: str
    certificate_number: str
    template_snapshot: dict
    issued_at: str


class CertificateListResponse(BaseModel):
    certificates: list[CertificateOut]
