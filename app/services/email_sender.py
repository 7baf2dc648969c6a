import logging
import smtplib
from email.message import EmailMessage

from app.core.config import get_settings

logger = logging.getLogger(__name__)


def _send_email(to: str, subject: str, body: str) -> None:
    """Send an email via SMTP or log it (dev)."""
    settings = get_settings()

    if settings.email_sender_backend == "console":
        logger.info("[EMAIL-CONSOLE] to=%s subject=%s body=%s", to, subject, body[:200])
        return

    if settings.email_sender_backend != "smtp":
        raise ValueError(f"Unsupported email sender backend: {settings.email_sender_backend}")

    if not settings.smtp_host or not settings.smtp_from_email:
        raise ValueError("SMTP host/from email not configured")

    msg = EmailMessage()
    msg["Subject"] = subject
    if settings.smtp_from_alias:
        msg["From"] = f"{settings.smtp_from_alias} <{settings.smtp_from_email}>"
    else:
        msg["From"] = settings.smtp_from_email
    msg["To"] = to
    msg.set_content(body)

    if settings.smtp_use_ssl:
        with smtplib.SMTP_SSL(settings.smtp_host, settings.smtp_port, timeout=10) as server:
            if settings.smtp_username:
                server.login(settings.smtp_username, settings.smtp_password)
            server.send_message(msg)
    else:
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=10) as server:
            if settings.smtp_use_tls:
                server.starttls()
            if settings.smtp_username:
                server.login(settings.smtp_username, settings.smtp_password)
            server.send_message(msg)


def notify(to: str, subject: str, body: str) -> None:
    """Best-effort delivery: a failed notification never fails the request that caused it."""
    try:
        _send_email(to, subject, body)
    except (OSError, smtplib.SMTPException, ValueError):
        logger.exception("Failed to send notification to %s (%s)", to, subject)


def send_enrollment_requested(email: str, name: str, course_title: str) -> None:
    subject = "Enrollment request sent"
    body = (
        f"Hello {name},\n\n"
        f'Your request to enroll in "{course_title}" is pending approval.\n'
        f"We will email you as soon as it has been reviewed.\n\n"
        f"- TESBINN Learning"
    )
    notify(email, subject, body)


def send_enrollment_approved(email: str, name: str, course_title: str) -> None:
    subject = "Enrollment approved"
    body = (
        f"Hello {name},\n\n"
        f'You can now access "{course_title}".\n\n'
        f"- TESBINN Learning"
    )
    notify(email, subject, body)


def send_enrollment_rejected(email: str, name: str, course_title: str, reason: str) -> None:
    subject = "Enrollment rejected"
    body = (
        f"Hello {name},\n\n"
        f'Your enrollment request for "{course_title}" was not approved.\n'
        f"Reason: {reason}\n\n"
        f"- TESBINN Learning"
    )
    notify(email, subject, body)


def send_certificate_issued(email: str, name: str, course_title: str, certificate_number: str) -> None:
    subject = "Certificate issued"
    body = (
        f"Congratulations {name},\n\n"
        f'You completed "{course_title}".\n'
        f"Your certificate number is {certificate_number}.\n\n"
        f"- TESBINN Learning"
    )
    notify(email, subject, body)
