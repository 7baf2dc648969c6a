"""Course player: drives the progression gate against the LMS API.

The player never edits completion state locally. Every mutation goes through
the API and the enrollment returned by the server replaces the local copy;
the gate view is recomputed from that copy on each access.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from contextlib import contextmanager

from app.client.api import LmsApiClient
from app.client.errors import (
    ModuleLockedError,
    NotEnrolledError,
    OperationInProgressError,
    PlayerError,
    QuizValidationError,
    RatingValidationError,
)
from app.schemas.courses import CourseOut, ModuleOut
from app.schemas.enrollments import EnrollmentOut
from app.services.progression import (
    GateView,
    LessonItem,
    LessonKey,
    LessonRef,
    NextItem,
    QuizItem,
    auto_advance_target,
    compute_gate_view,
    find_blocking_module,
    has_quiz,
    is_quiz_passed,
)

logger = logging.getLogger(__name__)


class CoursePlayer:
    def __init__(self, api: LmsApiClient, course: CourseOut, enrollment: EnrollmentOut):
        self.api = api
        self.course = course
        self.enrollment = enrollment
        self.current_lesson: LessonKey | None = None
        self.current_quiz_module_id: str | None = None
        self._busy: str | None = None
        self.open_next_item()

    @classmethod
    def load(cls, api: LmsApiClient, course_id: str) -> "CoursePlayer":
        course = api.get_course(course_id)
        enrollment = next((e for e in api.list_my_enrollments() if e.course_id == course.id), None)
        if enrollment is None:
            raise NotEnrolledError("You are not enrolled in this course")
        if enrollment.approval_status != "approved":
            raise NotEnrolledError(f"Enrollment is {enrollment.approval_status}, not approved yet")
        return cls(api, course, enrollment)

    @property
    def view(self) -> GateView:
        return compute_gate_view(self.course, self.enrollment)

    @property
    def busy(self) -> bool:
        return self._busy is not None

    def _module(self, module_id: str) -> ModuleOut:
        for module in self.course.modules:
            if module.id == module_id:
                return module
        raise PlayerError(f"Module {module_id} is not part of this course")

    def _require_unlocked(self, module_id: str) -> None:
        if self.view.is_unlocked(module_id):
            return
        blocking = find_blocking_module(self.course, self.enrollment, module_id)
        if blocking is not None:
            raise ModuleLockedError("Complete the quiz to unlock the next module.", blocking_module=blocking)
        raise ModuleLockedError("Complete the previous module quiz to continue.")

    @contextmanager
    def _operation(self, name: str) -> Iterator[None]:
        if self._busy is not None:
            raise OperationInProgressError(f"Cannot {name} while {self._busy} is in progress")
        self._busy = name
        try:
            yield
        finally:
            self._busy = None

    # Positioning

    def open_next_item(self) -> NextItem | None:
        item = self.view.next_item
        if isinstance(item, LessonItem):
            self.current_lesson = item.key
            self.current_quiz_module_id = None
        elif isinstance(item, QuizItem):
            self.current_lesson = None
            self.current_quiz_module_id = item.module.id
        return item

    def select_lesson(self, module_id: str, lesson_id: str) -> LessonRef:
        module = self._module(module_id)
        self._require_unlocked(module_id)
        lesson = next((lesson for lesson in module.lessons if lesson.id == lesson_id), None)
        if lesson is None:
            raise PlayerError(f"Lesson {lesson_id} is not part of module {module_id}")
        self.current_lesson = (module_id, lesson_id)
        self.current_quiz_module_id = None
        return LessonRef(module=module, lesson=lesson)

    def select_quiz(self, module_id: str) -> ModuleOut:
        module = self._module(module_id)
        self._require_unlocked(module_id)
        if not has_quiz(module):
            raise PlayerError(f"Module {module_id} has no quiz")
        self.current_lesson = None
        self.current_quiz_module_id = module_id
        return module

    # Remote mutations

    def mark_lesson_complete(self, module_id: str, lesson_id: str) -> EnrollmentOut:
        if self.view.is_completed((module_id, lesson_id)):
            return self.enrollment
        with self._operation("save progress"):
            enrollment = self.api.update_progress(self.enrollment.id, module_id, lesson_id)
        self.enrollment = enrollment
        logger.info("Lesson %s marked as complete", lesson_id)
        return enrollment

    def submit_quiz(self, module_id: str, answers: Sequence[int | None]) -> EnrollmentOut:
        module = self._module(module_id)
        if not has_quiz(module):
            raise PlayerError(f"Module {module_id} has no quiz")
        self._require_unlocked(module_id)

        if module_id in self.view.passed_quizzes:
            raise QuizValidationError("You have already passed this quiz.")

        question_count = len(module.quiz.questions)
        if len(answers) < question_count or any(answer is None for answer in answers[:question_count]):
            raise QuizValidationError("Answer every question before submitting.")

        with self._operation("submit quiz"):
            enrollment = self.api.submit_quiz(self.enrollment.id, module_id, [int(a) for a in answers[:question_count]])
        self.enrollment = enrollment

        result = next((quiz for quiz in enrollment.completed_quizzes if quiz.module_id == module_id), None)
        if result is not None and is_quiz_passed(result):
            self._auto_advance(module_id)
        return enrollment

    def _auto_advance(self, module_id: str) -> None:
        target = auto_advance_target(self.course, module_id)
        if target is None or not self.view.is_unlocked(target.module.id):
            return
        self.current_lesson = target.key
        self.current_quiz_module_id = None

    def submit_rating(self, rating: int, review: str | None = None) -> EnrollmentOut:
        if self.enrollment.completion_status != "completed":
            raise RatingValidationError("Complete all lessons before submitting a rating.")
        if not 1 <= rating <= 5:
            raise RatingValidationError("Choose a rating between 1 and 5.")

        review = review.strip() if review else None
        with self._operation("submit rating"):
            enrollment = self.api.submit_rating(self.enrollment.id, rating, review or None)
        self.enrollment = enrollment
        return enrollment

    # Navigation

    def navigate_previous(self) -> LessonRef | None:
        if self.current_lesson is None:
            return None
        entry = self.view.previous_lesson(self.current_lesson)
        if entry is None:
            return None
        return self.select_lesson(entry.module.id, entry.lesson.id)

    def navigate_next(self) -> LessonRef | None:
        """Acknowledge the current lesson as complete, then move to the next one."""
        if self.current_lesson is None:
            return None
        entry = self.view.next_lesson(self.current_lesson)
        if entry is None:
            return None
        module_id, lesson_id = self.current_lesson
        self.mark_lesson_complete(module_id, lesson_id)
        return self.select_lesson(entry.module.id, entry.lesson.id)
