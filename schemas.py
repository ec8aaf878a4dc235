"""
Schemas for LinguaQuest

Pydantic models shared by the progress store, the lesson resolver and the
HTTP layer. Field names are snake_case in Python and camelCase on the wire,
so the web client can keep sending `lessonNumber`, `correctAnswers`, etc.
Both spellings are accepted on input.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class Language(str, Enum):
    SPANISH = "Spanish"
    FRENCH = "French"
    JAPANESE = "Japanese"
    GERMAN = "German"
    KOREAN = "Korean"
    ENGLISH = "English"


LANGUAGES: List[Language] = list(Language)
DEFAULT_LANGUAGE = Language.ENGLISH

LESSONS_PER_LEVEL = 5
QUESTIONS_PER_LESSON = 5
LESSON_XP_REWARD = 20


def level_for_lesson(lesson_number: int) -> int:
    """Curriculum level a lesson number belongs to (5 lessons per level)."""
    return (lesson_number - 1) // LESSONS_PER_LEVEL + 1


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------- Users & Progress ----------

class User(CamelModel):
    """Account record. Only the seeded demo user exists in practice."""
    id: str = Field(..., description="Unique user identifier")
    username: str = Field(..., description="Unique login name")
    password: str = Field(..., description="Login secret")


class Progress(CamelModel):
    """A user's progress within one language"""
    id: str = Field(..., description="Unique record identifier")
    user_id: str = Field(..., description="Owner of this record")
    language: Language = Field(..., description="Language being learned")
    current_level: int = Field(1, ge=1, description="Level derived from xp")
    xp: int = Field(0, ge=0, description="Total accumulated experience points")
    streak: int = Field(0, ge=0, description="Consecutive practice days")
    last_practice_date: Optional[datetime] = Field(None, description="When the last lesson was completed")
    completed_lessons: List[int] = Field(default_factory=list, description="Completed lesson numbers")

    @field_validator("completed_lessons")
    @classmethod
    def _unique_lessons(cls, value: List[int]) -> List[int]:
        return list(dict.fromkeys(value))


# ---------- Questions & Lessons ----------

class QuestionBase(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    question: str = Field(..., min_length=1, description="Prompt shown to the learner")
    instruction: str = Field(..., description="How to answer")
    explanation: str = Field(..., min_length=1, description="Shown after answering")


class MultipleChoiceQuestion(QuestionBase):
    type: Literal["multiple_choice"] = "multiple_choice"
    choices: List[str] = Field(..., min_length=2)
    correct_answer: int = Field(..., ge=0, description="Index into choices")

    @model_validator(mode="after")
    def _answer_in_range(self):
        if self.correct_answer >= len(self.choices):
            raise ValueError("correct_answer must index into choices")
        return self


class Blank(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    position: int = Field(..., ge=0)
    correct_answer: str = Field(..., min_length=1)


class FillBlankQuestion(QuestionBase):
    type: Literal["fill_blank"] = "fill_blank"
    sentence: str = Field(..., description="Template sentence with _____ gaps")
    blanks: List[Blank] = Field(..., min_length=1)


class TranslationQuestion(QuestionBase):
    type: Literal["translation"] = "translation"
    source_text: str = Field(..., min_length=1)
    correct_answer: str = Field(..., min_length=1)
    acceptable_answers: List[str] = Field(default_factory=list)


Question = Annotated[
    Union[MultipleChoiceQuestion, FillBlankQuestion, TranslationQuestion],
    Field(discriminator="type"),
]


class Lesson(CamelModel):
    """A generated lesson. Rebuilt on every request, never stored."""
    id: int = Field(..., description="Same as lesson_number")
    language: Language
    level: int = Field(..., ge=1)
    lesson_number: int = Field(..., ge=1)
    questions: List[Question] = Field(..., min_length=QUESTIONS_PER_LESSON, max_length=QUESTIONS_PER_LESSON)
    xp_reward: int = Field(LESSON_XP_REWARD, description="Display only; completion uses the accuracy tiers")


# ---------- Requests & Responses ----------

class CompleteLessonRequest(CamelModel):
    user_id: str = Field(..., min_length=1)
    language: Language
    level: int = Field(..., ge=1)
    lesson_number: int = Field(..., ge=1)
    correct_answers: int = Field(..., ge=0)
    total_questions: int = Field(..., gt=0)

    @model_validator(mode="after")
    def _correct_within_total(self):
        if self.correct_answers > self.total_questions:
            raise ValueError("correctAnswers cannot exceed totalQuestions")
        return self


class CompleteLessonResponse(CamelModel):
    xp_earned: int
    new_xp: int
    new_level: int
    leveled_up: bool
    new_streak: int


class AnswerSubmission(CamelModel):
    user_id: str = Field("demo-user")
    language: Language
    level: Optional[int] = Field(None, ge=1, description="Ignored; derived from lesson_number")
    lesson_number: int = Field(..., ge=1)
    question_index: int = Field(..., ge=0, lt=QUESTIONS_PER_LESSON)
    user_answer: Union[int, str, List[str]]


class AnswerResult(CamelModel):
    correct: bool
    correct_answer: Union[int, str]
    explanation: str
