from datetime import datetime

from pydantic import BaseModel, Field


class CompletedLessonOut(BaseModel):
    module_id: str
    lesson_id: str
    completed_at: datetime | None = None


class CompletedQuizOut(BaseModel):
    module_id: str
    score: int | None = None
    passed: bool | None = None
    completed_at: datetime | None = None


class EnrollmentOut(BaseModel):
    id: str
    course_id: str
    user_id: str
    completed_lessons: list[CompletedLessonOut] = Field(default_factory=list)
    completed_quizzes: list[CompletedQuizOut] = Field(default_factory=list)
    percent_complete: int = 0
    completion_status: str = "not_started"
    approval_status: str = "pending"
    rejection_reason: str | None = None
    rating: int | None = None
    review: str | None = None
    enrolled_at: datetime | None = None
    completed_at: datetime | None = None


class EnrollmentListResponse(BaseModel):
    enrollments: list[EnrollmentOut]


class EnrollRequest(BaseModel):
    course_id: str


class LessonProgressRequest(BaseModel):
    module_id: str
    lesson_id: str


class QuizSubmitRequest(BaseModel):
    module_id: str
    answers: list[int]


class RatingRequest(BaseModel):
    rating: int = Field(ge=1, le=5)
    review: str | None = Field(default=None, max_length=1000)


class EnrollmentReviewRequest(BaseModel):
    status: str = Field(pattern="^(approved|rejected)$")
    rejection_reason: str | None = None
