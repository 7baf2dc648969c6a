from pydantic import BaseModel, Field, model_validator

from app.schemas.courses import CourseOut, CourseSummary


class AdminQuizQuestion(BaseModel):
    question: str = Field(min_length=1, max_length=300)
    options: list[str] = Field(min_length=2)
    correct_index: int = Field(ge=0)

    @model_validator(mode="after")
    def check_correct_index(self) -> "AdminQuizQuestion":
        if self.correct_index >= len(self.options):
            raise ValueError("correct_index must point at one of the options")
        return self


class AdminQuiz(BaseModel):
    title: str = Field(default="Module Quiz", max_length=120)
    description: str = Field(default="", max_length=500)
    passing_score: int | None = Field(default=None, ge=0, le=100)
    questions: list[AdminQuizQuestion] = Field(default_factory=list)


class AdminLessonCreate(BaseModel):
    title: str = Field(min_length=1, max_length=100)
    description: str = ""
    lesson_type: str = Field(pattern="^(video|text|pdf|image)$")
    order: int = 0
    content: str | None = None
    video_url: str | None = None
    duration: int | None = Field(default=None, ge=0)
    document_url: str | None = None
    image_url: str | None = None
    is_free: bool = False

    @model_validator(mode="after")
    def check_type_fields(self) -> "AdminLessonCreate":
        required = {
            "text": ("content",),
            "video": ("video_url", "duration"),
            "pdf": ("document_url",),
            "image": ("image_url",),
        }[self.lesson_type]
        missing = [name for name in required if getattr(self, name) in (None, "")]
        if missing:
            raise ValueError(f"{self.lesson_type} lessons require: {', '.join(missing)}")
        return self


class AdminModuleCreate(BaseModel):
    title: str = Field(min_length=1, max_length=100)
    description: str = ""
    order: int = 0
    is_published: bool = True
    lessons: list[AdminLessonCreate] = Field(default_factory=list)
    quiz: AdminQuiz | None = None


class AdminCourseCreateRequest(BaseModel):
    title: str = Field(min_length=1, max_length=100)
    description: str = Field(default="", max_length=500)
    summary: str = Field(default="", max_length=1000)
    price: float = Field(default=0, ge=0)
    level: str = Field(default="beginner", pattern="^(beginner|intermediate|advanced)$")
    category: str = Field(
        default="other",
        pattern="^(development|design|marketing|leadership|ai|business|productivity|other)$",
    )
    image_url: str | None = None
    teacher_id: str | None = None
    is_published: bool = False
    is_approved: bool = False
    certificate_template: dict = Field(default_factory=dict)
    modules: list[AdminModuleCreate] = Field(default_factory=list)


class AdminCourseUpdateRequest(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    summary: str | None = Field(default=None, max_length=1000)
    price: float | None = Field(default=None, ge=0)
    level: str | None = Field(default=None, pattern="^(beginner|intermediate|advanced)$")
    category: str | None = None
    image_url: str | None = None
    is_published: bool | None = None
    is_approved: bool | None = None
    certificate_template: dict | None = None


class AdminModulesReplaceRequest(BaseModel):
    modules: list[AdminModuleCreate]


class AdminCourseResponse(CourseOut):
    is_published: bool
    is_approved: bool
    teacher_id: str | None = None
    created_at: str


class AdminCourseSummaryResponse(CourseSummary):
    is_published: bool
    is_approved: bool
    module_count: int


class AdminCourseListResponse(BaseModel):
    courses: list[AdminCourseSummaryResponse]
    total: int
