class ErrorCode:
    UNAUTHORIZED = "UNAUTHORIZED"
    INVALID_TOKEN = "INVALID_TOKEN"
    INVALID_USER = "INVALID_USER"
    FORBIDDEN = "FORBIDDEN"
    VALIDATION_ERROR = "VALIDATION_ERROR"

    COURSE_NOT_FOUND = "COURSE_NOT_FOUND"
    COURSE_NOT_AVAILABLE = "COURSE_NOT_AVAILABLE"
    COURSE_CONFLICT = "COURSE_CONFLICT"
    MODULE_NOT_FOUND = "MODULE_NOT_FOUND"
    LESSON_NOT_FOUND = "LESSON_NOT_FOUND"
    QUIZ_NOT_AVAILABLE = "QUIZ_NOT_AVAILABLE"
    MODULE_LOCKED = "MODULE_LOCKED"
    QUIZ_ALREADY_PASSED = "QUIZ_ALREADY_PASSED"

    ENROLLMENT_NOT_FOUND = "ENROLLMENT_NOT_FOUND"
    ENROLLMENT_NOT_APPROVED = "ENROLLMENT_NOT_APPROVED"
    ALREADY_ENROLLED = "ALREADY_ENROLLED"
    COURSE_NOT_COMPLETED = "COURSE_NOT_COMPLETED"

    CERTIFICATE_NOT_FOUND = "CERTIFICATE_NOT_FOUND"
