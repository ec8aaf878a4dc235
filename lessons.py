"""
Lesson content for LinguaQuest

Lessons are always five questions. When generation is enabled they come from
Gemini; otherwise, or whenever generation fails in any way, each language has
a fixed hand-written lesson to fall back on.
"""

import json
import logging
from typing import Any, Callable, List, Optional, Protocol, Union

import google.generativeai as genai
from pydantic import TypeAdapter

from schemas import (
    DEFAULT_LANGUAGE,
    LESSON_XP_REWARD,
    QUESTIONS_PER_LESSON,
    AnswerResult,
    FillBlankQuestion,
    Language,
    Lesson,
    MultipleChoiceQuestion,
    Question,
    TranslationQuestion,
    level_for_lesson,
)

log = logging.getLogger(__name__)

_QUESTION_LIST = TypeAdapter(List[Question])


class GenerationError(Exception):
    """The dynamic content source returned nothing usable."""


def difficulty_for_level(level: int) -> str:
    if level <= 2:
        return "beginner (basic vocabulary and greetings)"
    if level <= 5:
        return "elementary (common expressions and basic grammar)"
    if level <= 10:
        return "intermediate (everyday conversations and grammar)"
    if level <= 20:
        return "upper-intermediate (complex topics and structures)"
    return "advanced (nuanced language and sophisticated expressions)"


# ---------- Generation ----------

class LessonGenerator(Protocol):
    def generate(self, language: Language, level: int, lesson_number: int) -> List[Question]:
        ...


SYSTEM_PROMPT = """You are an expert language teacher creating engaging lessons for {language} learners.
Create exactly 5 questions for a {difficulty} level lesson (Level {level}, Lesson {lesson_number}).

Include a mix of:
- 2 multiple choice questions (4 choices each)
- 2 fill-in-the-blank questions (1-2 blanks per question)
- 1 translation question

Respond with a JSON array of questions. Every question has "type", "question",
"instruction" and a non-empty "explanation". By type:
- "multiple_choice": "choices" (array of strings), "correctAnswer" (index of the right choice)
- "fill_blank": "sentence" (use _____ for each gap), "blanks" (array of {{"position", "correctAnswer"}})
- "translation": "sourceText", "correctAnswer", "acceptableAnswers" (array of strings)
"""


class GeminiLessonGenerator:
    """Asks Gemini for a lesson and validates the reply against the Question schema.

    `model_factory` builds the SDK model; it defaults to `genai.GenerativeModel`.
    """

    def __init__(self, api_key: str, model: str = "gemini-2.5-flash", timeout: float = 10.0,
                 model_factory: Optional[Callable[..., Any]] = None):
        genai.configure(api_key=api_key)
        self.model = model
        self.timeout = timeout
        self._model_factory = model_factory or genai.GenerativeModel

    def generate(self, language: Language, level: int, lesson_number: int) -> List[Question]:
        language = Language(language)
        system = SYSTEM_PROMPT.format(
            language=language.value,
            difficulty=difficulty_for_level(level),
            level=level,
            lesson_number=lesson_number,
        )
        m = self._model_factory(self.model, system_instruction=system)
        try:
            response = m.generate_content(
                f"Generate a lesson for {language.value}, Level {level}, Lesson {lesson_number}.",
                generation_config={"response_mime_type": "application/json"},
                request_options={"timeout": self.timeout},
            )
            raw = (response.text or "").strip()
        except Exception as e:
            raise GenerationError(f"Gemini request failed: {e}") from e
        if not raw:
            raise GenerationError("Empty response from Gemini")

        try:
            questions = _QUESTION_LIST.validate_python(json.loads(raw))
        except ValueError as e:
            raise GenerationError(f"Malformed lesson from Gemini: {e}") from e

        if len(questions) != QUESTIONS_PER_LESSON:
            raise GenerationError(f"Expected {QUESTIONS_PER_LESSON} questions, got {len(questions)}")
        return questions


# ---------- Resolution ----------

class LessonResolver:
    def __init__(self, generator: Optional[LessonGenerator] = None):
        self.generator = generator

    def resolve(self, language: Language, level: int, lesson_number: int) -> List[Question]:
        log.info("Resolving lesson for %s, Level %s, Lesson %s", _name(language), level, lesson_number)
        if self.generator is None:
            return fallback_questions(language)

        try:
            questions = self.generator.generate(language, level, lesson_number)
            if len(questions) != QUESTIONS_PER_LESSON:
                raise GenerationError(f"Expected {QUESTIONS_PER_LESSON} questions, got {len(questions)}")
            return _QUESTION_LIST.validate_python(questions)
        except Exception:
            log.warning("Lesson generation failed, using fallback lesson", exc_info=True)
            return fallback_questions(language)

    def build_lesson(self, language: Language, lesson_number: int) -> Lesson:
        level = level_for_lesson(lesson_number)
        return Lesson(
            id=lesson_number,
            language=language,
            level=level,
            lesson_number=lesson_number,
            questions=self.resolve(language, level, lesson_number),
            xp_reward=LESSON_XP_REWARD,
        )


def _name(language) -> str:
    return language.value if isinstance(language, Language) else str(language)


# ---------- Answer checking ----------

def _norm(text) -> str:
    return str(text).strip().lower()


def check_answer(question: Question, answer: Union[int, str, List[str]]) -> AnswerResult:
    if isinstance(question, MultipleChoiceQuestion):
        try:
            correct = int(answer) == question.correct_answer
        except (TypeError, ValueError):
            correct = False
        expected = question.correct_answer
    elif isinstance(question, FillBlankQuestion):
        given = [answer] if isinstance(answer, str) else list(answer) if isinstance(answer, list) else []
        correct = len(given) == len(question.blanks) and all(
            _norm(g) == _norm(b.correct_answer) for g, b in zip(given, question.blanks)
        )
        expected = ", ".join(b.correct_answer for b in question.blanks)
    elif isinstance(question, TranslationQuestion):
        given = _norm(answer) if isinstance(answer, str) else None
        accepted = {_norm(question.correct_answer)} | {_norm(a) for a in question.acceptable_answers}
        correct = given in accepted
        expected = question.correct_answer
    else:
        raise TypeError(f"Unsupported question type: {type(question).__name__}")
    return AnswerResult(correct=correct, correct_answer=expected, explanation=question.explanation)


# ---------- Fallback lessons ----------

FALLBACK_LESSONS = {
    Language.SPANISH: [
        {
            "type": "multiple_choice",
            "question": "What does 'Hola' mean?",
            "instruction": "Select the correct translation",
            "choices": ["Hello", "Goodbye", "Thank you", "Please"],
            "correct_answer": 0,
            "explanation": "'Hola' is the most common greeting in Spanish, meaning 'Hello'.",
        },
        {
            "type": "multiple_choice",
            "question": "How do you say 'Thank you' in Spanish?",
            "instruction": "Choose the correct answer",
            "choices": ["Por favor", "Gracias", "Adiós", "Perdón"],
            "correct_answer": 1,
            "explanation": "'Gracias' means 'Thank you' in Spanish.",
        },
        {
            "type": "fill_blank",
            "question": "Complete the greeting",
            "instruction": "Fill in the missing word",
            "sentence": "Buenos _____",
            "blanks": [{"position": 0, "correct_answer": "días"}],
            "explanation": "'Buenos días' means 'Good morning' in Spanish.",
        },
        {
            "type": "fill_blank",
            "question": "Complete: '¿Cómo _____ llamas?'",
            "instruction": "Fill in the blank",
            "sentence": "¿Cómo _____ llamas?",
            "blanks": [{"position": 0, "correct_answer": "te"}],
            "explanation": "'¿Cómo te llamas?' means 'What is your name?' in Spanish.",
        },
        {
            "type": "translation",
            "question": "Translate to Spanish",
            "instruction": "Write the translation",
            "source_text": "Good morning",
            "correct_answer": "Buenos días",
            "acceptable_answers": ["buenos dias", "Buenos dias"],
            "explanation": "'Buenos días' is how you say 'Good morning' in Spanish.",
        },
    ],
    Language.FRENCH: [
        {
            "type": "multiple_choice",
            "question": "What does 'Bonjour' mean?",
            "instruction": "Select the correct translation",
            "choices": ["Goodbye", "Hello", "Thank you", "Please"],
            "correct_answer": 1,
            "explanation": "'Bonjour' means 'Hello' or 'Good day' in French.",
        },
        {
            "type": "multiple_choice",
            "question": "How do you say 'Thank you' in French?",
            "instruction": "Choose the correct answer",
            "choices": ["S'il vous plaît", "Merci", "Au revoir", "Pardon"],
            "correct_answer": 1,
            "explanation": "'Merci' means 'Thank you' in French.",
        },
        {
            "type": "fill_blank",
            "question": "Complete the greeting",
            "instruction": "Fill in the missing word",
            "sentence": "Bonne _____",
            "blanks": [{"position": 0, "correct_answer": "journée"}],
            "explanation": "'Bonne journée' means 'Have a good day' in French.",
        },
        {
            "type": "fill_blank",
            "question": "Complete: 'Comment _____ -vous?'",
            "instruction": "Fill in the blank",
            "sentence": "Comment _____ -vous?",
            "blanks": [{"position": 0, "correct_answer": "allez"}],
            "explanation": "'Comment allez-vous?' means 'How are you?' in French.",
        },
        {
            "type": "translation",
            "question": "Translate to French",
            "instruction": "Write the translation",
            "source_text": "Good evening",
            "correct_answer": "Bonsoir",
            "acceptable_answers": ["bonsoir"],
            "explanation": "'Bonsoir' is how you say 'Good evening' in French.",
        },
    ],
    Language.JAPANESE: [
        {
            "type": "multiple_choice",
            "question": "What does 'こんにちは' (Konnichiwa) mean?",
            "instruction": "Select the correct translation",
            "choices": ["Goodbye", "Thank you", "Hello", "Please"],
            "correct_answer": 2,
            "explanation": "'こんにちは' (Konnichiwa) means 'Hello' in Japanese.",
        },
        {
            "type": "multiple_choice",
            "question": "How do you say 'Thank you' in Japanese?",
            "instruction": "Choose the correct answer",
            "choices": ["すみません", "ありがとう", "さようなら", "おはよう"],
            "correct_answer": 1,
            "explanation": "'ありがとう' (Arigatou) means 'Thank you' in Japanese.",
        },
        {
            "type": "fill_blank",
            "question": "Complete the greeting",
            "instruction": "Fill in the missing hiragana",
            "sentence": "おはよう_____",
            "blanks": [{"position": 0, "correct_answer": "ございます"}],
            "explanation": "'おはようございます' (Ohayou gozaimasu) means 'Good morning' in Japanese.",
        },
        {
            "type": "fill_blank",
            "question": "Complete: 'お元気_____?'",
            "instruction": "Fill in the blank",
            "sentence": "お元気_____?",
            "blanks": [{"position": 0, "correct_answer": "ですか"}],
            "explanation": "'お元気ですか?' (Ogenki desu ka?) means 'How are you?' in Japanese.",
        },
        {
            "type": "translation",
            "question": "Translate to Japanese",
            "instruction": "Write the translation in hiragana or kanji",
            "source_text": "Good morning",
            "correct_answer": "おはようございます",
            "acceptable_answers": ["おはよう", "Ohayou gozaimasu"],
            "explanation": "'おはようございます' is the polite way to say 'Good morning' in Japanese.",
        },
    ],
    Language.GERMAN: [
        {
            "type": "multiple_choice",
            "question": "What does 'Guten Tag' mean?",
            "instruction": "Select the correct translation",
            "choices": ["Good morning", "Hello/Good day", "Goodbye", "Good evening"],
            "correct_answer": 1,
            "explanation": "'Guten Tag' means 'Hello' or 'Good day' in German.",
        },
        {
            "type": "multiple_choice",
            "question": "How do you say 'Thank you' in German?",
            "instruction": "Choose the correct answer",
            "choices": ["Bitte", "Danke", "Tschüss", "Entschuldigung"],
            "correct_answer": 1,
            "explanation": "'Danke' means 'Thank you' in German.",
        },
        {
            "type": "fill_blank",
            "question": "Complete the greeting",
            "instruction": "Fill in the missing word",
            "sentence": "Guten _____",
            "blanks": [{"position": 0, "correct_answer": "Morgen"}],
            "explanation": "'Guten Morgen' means 'Good morning' in German.",
        },
        {
            "type": "fill_blank",
            "question": "Complete: 'Wie _____ es dir?'",
            "instruction": "Fill in the blank",
            "sentence": "Wie _____ es dir?",
            "blanks": [{"position": 0, "correct_answer": "geht"}],
            "explanation": "'Wie geht es dir?' means 'How are you?' in German.",
        },
        {
            "type": "translation",
            "question": "Translate to German",
            "instruction": "Write the translation",
            "source_text": "Good evening",
            "correct_answer": "Guten Abend",
            "acceptable_answers": ["guten abend", "Guten abend"],
            "explanation": "'Guten Abend' is how you say 'Good evening' in German.",
        },
    ],
    Language.KOREAN: [
        {
            "type": "multiple_choice",
            "question": "What does '안녕하세요' (Annyeonghaseyo) mean?",
            "instruction": "Select the correct translation",
            "choices": ["Goodbye", "Thank you", "Hello", "Please"],
            "correct_answer": 2,
            "explanation": "'안녕하세요' (Annyeonghaseyo) is a polite greeting meaning 'Hello' in Korean.",
        },
        {
            "type": "multiple_choice",
            "question": "How do you say 'Thank you' in Korean?",
            "instruction": "Choose the correct answer",
            "choices": ["미안해요", "감사합니다", "안녕히 가세요", "좋아요"],
            "correct_answer": 1,
            "explanation": "'감사합니다' (Gamsahamnida) means 'Thank you' in Korean.",
        },
        {
            "type": "fill_blank",
            "question": "Complete the greeting",
            "instruction": "Fill in the missing syllable",
            "sentence": "안녕_____세요",
            "blanks": [{"position": 0, "correct_answer": "하"}],
            "explanation": "'안녕하세요' is the standard polite greeting in Korean.",
        },
        {
            "type": "fill_blank",
            "question": "Complete: '어떻게 _____?'",
            "instruction": "Fill in the blank",
            "sentence": "어떻게 _____?",
            "blanks": [{"position": 0, "correct_answer": "지내요"}],
            "explanation": "'어떻게 지내요?' means 'How are you?' in Korean.",
        },
        {
            "type": "translation",
            "question": "Translate to Korean",
            "instruction": "Write the translation in Hangul",
            "source_text": "Thank you",
            "correct_answer": "감사합니다",
            "acceptable_answers": ["고맙습니다", "Gamsahamnida"],
            "explanation": "'감사합니다' is the formal way to say 'Thank you' in Korean.",
        },
    ],
    Language.ENGLISH: [
        {
            "type": "multiple_choice",
            "question": "What is the past tense of 'go'?",
            "instruction": "Select the correct answer",
            "choices": ["goed", "went", "gone", "going"],
            "correct_answer": 1,
            "explanation": "'Went' is the simple past tense of the verb 'go'.",
        },
        {
            "type": "multiple_choice",
            "question": "Which word is a synonym for 'happy'?",
            "instruction": "Choose the correct answer",
            "choices": ["sad", "joyful", "angry", "tired"],
            "correct_answer": 1,
            "explanation": "'Joyful' is a synonym for 'happy', both meaning feeling pleasure or contentment.",
        },
        {
            "type": "fill_blank",
            "question": "Complete the sentence",
            "instruction": "Fill in the blank with the correct article",
            "sentence": "She is _____ teacher.",
            "blanks": [{"position": 0, "correct_answer": "a"}],
            "explanation": "We use 'a' before words that start with a consonant sound. 'Teacher' starts with 't'.",
        },
        {
            "type": "fill_blank",
            "question": "Complete: 'I _____ to the store yesterday.'",
            "instruction": "Fill in the blank with the correct verb form",
            "sentence": "I _____ to the store yesterday.",
            "blanks": [{"position": 0, "correct_answer": "went"}],
            "explanation": "Since 'yesterday' indicates past time, we use the past tense 'went'.",
        },
        {
            "type": "translation",
            "question": "Rephrase in formal English",
            "instruction": "Make this sentence more formal",
            "source_text": "I wanna go home",
            "correct_answer": "I would like to go home",
            "acceptable_answers": ["I want to go home", "I wish to go home"],
            "explanation": "'I would like to' is more formal than 'I wanna', which is very informal.",
        },
    ],
}

_FALLBACK_QUESTIONS = {lang: _QUESTION_LIST.validate_python(items) for lang, items in FALLBACK_LESSONS.items()}


def fallback_questions(language) -> List[Question]:
    """Fixed lesson for a language; anything unrecognised gets the English one."""
    try:
        language = Language(language)
    except ValueError:
        language = DEFAULT_LANGUAGE
    return list(_FALLBACK_QUESTIONS.get(language, _FALLBACK_QUESTIONS[DEFAULT_LANGUAGE]))
