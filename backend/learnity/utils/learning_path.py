"""
Lesson ordering and unlock rules.

Lessons are flattened in section order then lesson order. With
sequential progress a lesson opens once the lesson before it is
completed, and a section opens once the section before it reaches the
unlock threshold.
"""

from typing import Iterable, List, Optional, Set

from learnity.core.config import settings
from learnity.models.course import Course, Lesson


def is_lesson_unlocked(course: Course, lesson_id: int, completed_ids: Iterable[int]) -> bool:
    if not course.require_sequential_progress:
        return True

    ordered_ids = [lesson.id for lesson in course.ordered_lessons()]
    if lesson_id not in ordered_ids:
        return False

    index = ordered_ids.index(lesson_id)
    if index == 0:
        return True
    return ordered_ids[index - 1] in set(completed_ids)


def percentage(done: int, total: int) -> int:
    """Whole percentage rounded half up."""
    return int(done * 100 / total + 0.5) if total else 0


def section_states(course: Course, completed_ids: Set[int]) -> List[dict]:
    """
    Completion and unlock state of every section of ``course``.

    The first section is always unlocked.
    """
    states = []
    previous_percentage: Optional[int] = None

    for index, section in enumerate(course.sections):
        total = len(section.lessons)
        done = len([lesson for lesson in section.lessons if lesson.id in completed_ids])
        section_percentage = percentage(done, total)

        unlocked = (
            not course.require_sequential_progress
            or index == 0
            or (previous_percentage or 0) >= settings.SECTION_UNLOCK_THRESHOLD
        )
        states.append({
            "section": section,
            "total_lessons": total,
            "completed_lessons": done,
            "progress_percentage": section_percentage,
            "is_unlocked": unlocked,
        })
        previous_percentage = section_percentage

    return states


def next_lesson(course: Course, completed_ids: Set[int]) -> Optional[Lesson]:
    """First incomplete lesson inside an unlocked section."""
    for state in section_states(course, completed_ids):
        if not state["is_unlocked"]:
            continue
        for lesson in state["section"].lessons:
            if lesson.id not in completed_ids:
                return lesson
    return None
