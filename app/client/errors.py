from app.schemas.courses import ModuleOut


class PlayerError(Exception):
    """Base class for every recoverable course-player failure."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(PlayerError):
    pass


class QuizValidationError(ValidationError):
    pass


class RatingValidationError(ValidationError):
    pass


class SessionExpiredError(PlayerError):
    pass


class RemoteError(PlayerError):
    def __init__(self, message: str, *, status_code: int | None = None, code: str | None = None):
        self.status_code = status_code
        self.code = code
        super().__init__(message)


class NotEnrolledError(PlayerError):
    pass


class ModuleLockedError(PlayerError):
    def __init__(self, message: str, *, blocking_module: ModuleOut | None = None):
        self.blocking_module = blocking_module
        super().__init__(message)


class OperationInProgressError(PlayerError):
    pass
