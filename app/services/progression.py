"""Course progression gate.

Pure functions that derive, from a course structure and a learner's recorded
completions, which modules are unlocked, the ordered lesson sequence, the next
item to work on and previous/next navigation. Nothing here performs I/O or
caches results; callers recompute a :class:`GateView` whenever the enrollment
changes.

A module is unlocked iff every lower-ordered module that carries a non-empty
quiz has a passing result recorded. Modules without a quiz never block.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import Enum

from app.schemas.courses import CourseOut, LessonOut, ModuleOut
from app.schemas.enrollments import CompletedQuizOut, EnrollmentOut

PASSING_SCORE = 50

LessonKey = tuple[str, str]


class ModuleState(str, Enum):
    LOCKED = "locked"
    LESSONS_PENDING = "lessons_pending"
    QUIZ_PENDING = "quiz_pending"
    COMPLETE = "complete"


@dataclass(frozen=True)
class LessonRef:
    module: ModuleOut
    lesson: LessonOut

    @property
    def key(self) -> LessonKey:
        return (self.module.id, self.lesson.id)


@dataclass(frozen=True)
class LessonItem:
    module: ModuleOut
    lesson: LessonOut

    @property
    def key(self) -> LessonKey:
        return (self.module.id, self.lesson.id)


@dataclass(frozen=True)
class QuizItem:
    module: ModuleOut


NextItem = LessonItem | QuizItem


def sorted_modules(course: CourseOut) -> list[ModuleOut]:
    return sorted(course.modules, key=lambda module: (module.order, module.id))


def sorted_lessons(module: ModuleOut) -> list[LessonOut]:
    return sorted(module.lessons, key=lambda lesson: (lesson.order, lesson.id))


def has_quiz(module: ModuleOut) -> bool:
    return module.quiz is not None and len(module.quiz.questions) > 0


def is_quiz_passed(result: CompletedQuizOut) -> bool:
    """Use the server's verdict; fall back to ``PASSING_SCORE`` when it sent none."""
    if result.passed is not None:
        return result.passed
    return result.score is not None and result.score >= PASSING_SCORE


def completed_lesson_keys(enrollment: EnrollmentOut | None) -> frozenset[LessonKey]:
    if enrollment is None:
        return frozenset()
    return frozenset(
        (entry.module_id, entry.lesson_id)
        for entry in enrollment.completed_lessons
        if entry.module_id and entry.lesson_id
    )


def passed_quiz_module_ids(enrollment: EnrollmentOut | None) -> frozenset[str]:
    if enrollment is None:
        return frozenset()
    return frozenset(entry.module_id for entry in enrollment.completed_quizzes if entry.module_id and is_quiz_passed(entry))


def _find_module(modules: Iterable[ModuleOut], module_id: str) -> ModuleOut | None:
    for module in modules:
        if module.id == module_id:
            return module
    return None


def _blocking_module(modules: Sequence[ModuleOut], target: ModuleOut, passed: frozenset[str]) -> ModuleOut | None:
    for module in modules:
        if module.order >= target.order:
            continue
        if has_quiz(module) and module.id not in passed:
            return module
    return None


def find_blocking_module(course: CourseOut, enrollment: EnrollmentOut | None, module_id: str) -> ModuleOut | None:
    """Return the first lower-ordered module whose quiz still blocks ``module_id``."""
    modules = sorted_modules(course)
    target = _find_module(modules, module_id)
    if target is None:
        return None
    return _blocking_module(modules, target, passed_quiz_module_ids(enrollment))


def is_module_unlocked(course: CourseOut, enrollment: EnrollmentOut | None, module_id: str) -> bool:
    modules = sorted_modules(course)
    target = _find_module(modules, module_id)
    if target is None:
        return False
    return _blocking_module(modules, target, passed_quiz_module_ids(enrollment)) is None


def unlocked_modules(course: CourseOut, enrollment: EnrollmentOut | None) -> list[ModuleOut]:
    modules = sorted_modules(course)
    passed = passed_quiz_module_ids(enrollment)
    return [module for module in modules if _blocking_module(modules, module, passed) is None]


def _sequence_for(modules: Iterable[ModuleOut]) -> list[LessonRef]:
    return [LessonRef(module=module, lesson=lesson) for module in modules for lesson in sorted_lessons(module)]


def compute_lesson_sequence(course: CourseOut, enrollment: EnrollmentOut | None) -> list[LessonRef]:
    return _sequence_for(unlocked_modules(course, enrollment))


def _next_item(unlocked: Sequence[ModuleOut], completed: frozenset[LessonKey], passed: frozenset[str]) -> NextItem | None:
    for module in unlocked:
        for lesson in sorted_lessons(module):
            if (module.id, lesson.id) not in completed:
                return LessonItem(module=module, lesson=lesson)

    for module in unlocked:
        lessons_done = all((module.id, lesson.id) in completed for lesson in module.lessons)
        if lessons_done and has_quiz(module) and module.id not in passed:
            return QuizItem(module=module)

    return None


def compute_next_item(course: CourseOut, enrollment: EnrollmentOut | None) -> NextItem | None:
    return _next_item(
        unlocked_modules(course, enrollment),
        completed_lesson_keys(enrollment),
        passed_quiz_module_ids(enrollment),
    )


def module_state(course: CourseOut, enrollment: EnrollmentOut | None, module_id: str) -> ModuleState:
    modules = sorted_modules(course)
    target = _find_module(modules, module_id)
    passed = passed_quiz_module_ids(enrollment)
    if target is None or _blocking_module(modules, target, passed) is not None:
        return ModuleState.LOCKED

    completed = completed_lesson_keys(enrollment)
    if any((target.id, lesson.id) not in completed for lesson in target.lessons):
        return ModuleState.LESSONS_PENDING
    if has_quiz(target) and target.id not in passed:
        return ModuleState.QUIZ_PENDING
    return ModuleState.COMPLETE


def auto_advance_target(course: CourseOut, module_id: str, *, skip_empty: bool = False) -> LessonRef | None:
    """First lesson of the module right after ``module_id``.

    Only the immediately following module is considered: when it has no
    lessons there is no target. ``skip_empty=True`` keeps searching forward.
    """
    modules = sorted_modules(course)
    index = next((i for i, module in enumerate(modules) if module.id == module_id), None)
    if index is None:
        return None

    for module in modules[index + 1 :]:
        lessons = sorted_lessons(module)
        if lessons:
            return LessonRef(module=module, lesson=lessons[0])
        if not skip_empty:
            return None
    return None


def calculate_percent(course: CourseOut, enrollment: EnrollmentOut | None) -> int:
    lesson_keys = {(module.id, lesson.id) for module in course.modules for lesson in module.lessons}
    quiz_modules = {module.id for module in course.modules if has_quiz(module)}

    total = len(lesson_keys) + len(quiz_modules)
    if not total:
        return 0

    done_lessons = completed_lesson_keys(enrollment) & lesson_keys
    done_quizzes = passed_quiz_module_ids(enrollment) & quiz_modules
    percent = math.floor((len(done_lessons) + len(done_quizzes)) * 100 / total + 0.5)
    return max(0, min(100, percent))


@dataclass(frozen=True)
class GateView:
    """Snapshot of the gate for one (course, enrollment) pair."""

    modules: tuple[ModuleOut, ...]
    unlocked_module_ids: frozenset[str]
    sequence: tuple[LessonRef, ...]
    next_item: NextItem | None
    completed: frozenset[LessonKey]
    passed_quizzes: frozenset[str]

    def is_unlocked(self, module_id: str) -> bool:
        return module_id in self.unlocked_module_ids

    def is_completed(self, key: LessonKey) -> bool:
        return key in self.completed

    def index_of(self, key: LessonKey) -> int:
        for index, entry in enumerate(self.sequence):
            if entry.key == key:
                return index
        return -1

    def previous_lesson(self, key: LessonKey) -> LessonRef | None:
        index = self.index_of(key)
        if index <= 0:
            return None
        return self.sequence[index - 1]

    def next_lesson(self, key: LessonKey) -> LessonRef | None:
        index = self.index_of(key)
        if index < 0 or index >= len(self.sequence) - 1:
            return None
        return self.sequence[index + 1]

    @property
    def has_locked_modules(self) -> bool:
        return len(self.unlocked_module_ids) < len(self.modules)

    @property
    def is_finished(self) -> bool:
        return self.next_item is None


def compute_gate_view(course: CourseOut, enrollment: EnrollmentOut | None) -> GateView:
    modules = sorted_modules(course)
    completed = completed_lesson_keys(enrollment)
    passed = passed_quiz_module_ids(enrollment)
    unlocked = [module for module in modules if _blocking_module(modules, module, passed) is None]

    return GateView(
        modules=tuple(modules),
        unlocked_module_ids=frozenset(module.id for module in unlocked),
        sequence=tuple(_sequence_for(unlocked)),
        next_item=_next_item(unlocked, completed, passed),
        completed=completed,
        passed_quizzes=passed,
    )
