"""
XP, levels and streaks

`complete_lesson` is the only operation that changes progress. It validates
everything up front, then performs a single read-modify-write under the
store's per-record lock, so a rejected call leaves the record untouched and
concurrent completions never overwrite each other.
"""

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from database import ProgressStore
from schemas import CompleteLessonResponse, Language, Progress

log = logging.getLogger(__name__)

XP_PER_LEVEL = 100


class InvalidCompletion(ValueError):
    """A completion request that must be rejected before touching progress."""


def xp_for_accuracy(correct_answers: int, total_questions: int) -> int:
    # percentages compared by cross-multiplying to stay in integers
    score = correct_answers * 100
    if score >= 100 * total_questions:
        return 30
    if score >= 80 * total_questions:
        return 25
    if score >= 60 * total_questions:
        return 20
    return 10


def level_for_xp(xp: int) -> int:
    return xp // XP_PER_LEVEL + 1


def _utc_date(value: datetime) -> date:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.date()


def next_streak(streak: int, last_practice: Optional[datetime], today: date) -> int:
    """Streak after practicing on `today`, given the previous practice time."""
    if last_practice is None:
        return 1
    last = _utc_date(last_practice)
    if last == today:
        return streak
    if last == today - timedelta(days=1):
        return streak + 1
    # longer gap, or a practice date in the future
    return 1


def ensure_progress(store: ProgressStore, user_id: str, language: Language) -> Progress:
    # create() overwrites, so the lookup and the create share the record's lock
    with store.lock(user_id, language):
        progress = store.get(user_id, language)
        if progress is None:
            progress = store.create(user_id, language, last_practice_date=None)
        return progress


def _validate(language, level, lesson_number, correct_answers, total_questions) -> Language:
    try:
        language = Language(language)
    except ValueError:
        raise InvalidCompletion(f"Unsupported language: {language!r}") from None
    for name, value in (("level", level), ("lesson_number", lesson_number),
                        ("correct_answers", correct_answers), ("total_questions", total_questions)):
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidCompletion(f"{name} must be an integer")
    if total_questions <= 0:
        raise InvalidCompletion("total_questions must be positive")
    if not 0 <= correct_answers <= total_questions:
        raise InvalidCompletion("correct_answers must be between 0 and total_questions")
    if lesson_number < 1:
        raise InvalidCompletion("lesson_number must be at least 1")
    if level < 1:
        raise InvalidCompletion("level must be at least 1")
    return language


def complete_lesson(
    store: ProgressStore,
    user_id: str,
    language: Language,
    level: int,
    lesson_number: int,
    correct_answers: int,
    total_questions: int,
    now: Optional[datetime] = None,
) -> CompleteLessonResponse:
    """Award XP for a finished lesson and advance level and streak.

    `level` is the lesson's curriculum level as reported by the client; the
    learner's level is always recomputed from XP.
    """
    language = _validate(language, level, lesson_number, correct_answers, total_questions)
    now = now or datetime.now(timezone.utc)

    with store.lock(user_id, language):
        progress = ensure_progress(store, user_id, language)

        xp_earned = xp_for_accuracy(correct_answers, total_questions)
        old_level = progress.current_level
        new_xp = progress.xp + xp_earned
        new_level = level_for_xp(new_xp)
        leveled_up = new_level > old_level
        new_streak = next_streak(progress.streak, progress.last_practice_date, _utc_date(now))

        completed = list(progress.completed_lessons)
        if lesson_number not in completed:
            completed.append(lesson_number)

        updated = store.update(progress.model_copy(update={
            "current_level": new_level,
            "xp": new_xp,
            "streak": new_streak,
            "last_practice_date": now,
            "completed_lessons": completed,
        }))

    log.info("%s completed %s lesson %s: +%s XP (%s/%s correct)",
             user_id, language.value, lesson_number, xp_earned, correct_answers, total_questions)
    if leveled_up:
        log.info("%s reached %s level %s", user_id, language.value, new_level)

    return CompleteLessonResponse(
        xp_earned=xp_earned,
        new_xp=updated.xp,
        new_level=updated.current_level,
        leveled_up=leveled_up,
        new_streak=updated.streak,
    )
