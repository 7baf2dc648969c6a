import logging
import secrets

from fastapi import Header

from app.core.config import get_settings
from app.core.error_codes import ErrorCode
from app.core.errors import ApiError

logger = logging.getLogger(__name__)


def require_admin_key(
    x_admin_key: str | None = Header(default=None, alias="X-Admin-Key"),
) -> None:
    """Gate course authoring and enrollment review behind the shared admin key."""
    expected = get_settings().admin_api_key
    if not expected:
        raise ApiError(status_code=403, code=ErrorCode.UNAUTHORIZED, message="Admin routes are disabled")
    if not x_admin_key or not secrets.compare_digest(x_admin_key, expected):
        logger.warning("Rejected admin request with %s key", "an invalid" if x_admin_key else "no")
        raise ApiError(status_code=403, code=ErrorCode.UNAUTHORIZED, message="Invalid admin key")
