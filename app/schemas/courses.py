from pydantic import BaseModel, Field


class QuizQuestionOut(BaseModel):
    question: str
    options: list[str]


class QuizOut(BaseModel):
    title: str = "Module Quiz"
    description: str = ""
    passing_score: int = 50
    questions: list[QuizQuestionOut] = Field(default_factory=list)


class LessonOut(BaseModel):
    id: str
    title: str
    description: str = ""
    lesson_type: str = Field(pattern="^(video|text|pdf|image)$")
    order: int
    content: str | None = None
    video_url: str | None = None
    duration: int | None = None
    document_url: str | None = None
    image_url: str | None = None
    is_free: bool = False


class ModuleOut(BaseModel):
    id: str
    title: str
    description: str = ""
    order: int
    lessons: list[LessonOut] = Field(default_factory=list)
    quiz: QuizOut | None = None


class CourseSummary(BaseModel):
    id: str
    title: str
    slug: str
    description: str
    category: str
    level: str
    price: float
    image_url: str | None = None
    average_rating: float | None = None
    number_of_reviews: int = 0
    total_enrollments: int = 0


class CourseListResponse(BaseModel):
    courses: list[CourseSummary]


class CourseOut(CourseSummary):
    summary: str = ""
    modules: list[ModuleOut] = Field(default_factory=list)
