from typing import Any


class ApiError(Exception):
    """Error rendered as ``{"error": {"code", "message"}}`` by the app's exception handler."""

    def __init__(self, status_code: int, code: str, message: str):
        self.status_code = status_code
        self.code = str(code)
        self.message = message
        super().__init__(message)

    def to_payload(self) -> dict[str, Any]:
        return {"error": {"code": self.code, "message": self.message}}
