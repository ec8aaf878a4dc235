import logging
from typing import List

from fastapi import Depends, FastAPI, HTTPException, Path, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import Settings, get_settings
from database import ProgressStore
from lessons import GeminiLessonGenerator, LessonResolver, check_answer
from leveling import InvalidCompletion, complete_lesson, ensure_progress
from schemas import (
    LANGUAGES,
    AnswerResult,
    AnswerSubmission,
    CompleteLessonRequest,
    CompleteLessonResponse,
    Language,
    Lesson,
    Progress,
)

settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
log = logging.getLogger(__name__)


def build_resolver(settings: Settings) -> LessonResolver:
    if not settings.generation_enabled:
        log.info("Lesson generation disabled, serving fallback lessons")
        return LessonResolver()
    return LessonResolver(GeminiLessonGenerator(
        api_key=settings.gemini_api_key,
        model=settings.gemini_model,
        timeout=settings.gemini_timeout,
    ))


app = FastAPI(title="LinguaQuest API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.state.settings = settings
app.state.store = ProgressStore(demo_user_id=settings.demo_user_id)
app.state.resolver = build_resolver(settings)


@app.exception_handler(RequestValidationError)
async def validation_error(request: Request, exc: RequestValidationError):
    errors = [{k: v for k, v in e.items() if k != "ctx"} for e in exc.errors()]
    return JSONResponse(status_code=400, content={"detail": "Invalid request", "errors": jsonable_encoder(errors)})


@app.get("/")
def read_root():
    return {"message": "LinguaQuest Backend is running"}


@app.get("/test")
def test_backend(request: Request):
    state = request.app.state
    response = {
        "backend": "✅ Running",
        "store": "❌ Not Available",
        "lesson_generation": "⚠️ Fallback lessons only",
        "languages": [lang.value for lang in LANGUAGES],
    }
    if getattr(state, "store", None) is not None:
        response["store"] = "✅ In-memory"
    if getattr(state, "resolver", None) is not None and state.resolver.generator is not None:
        response["lesson_generation"] = f"✅ {state.settings.gemini_model}"
    return response


# ---------- Dependencies ----------

def get_store(request: Request) -> ProgressStore:
    return request.app.state.store


def get_resolver(request: Request) -> LessonResolver:
    return request.app.state.resolver


def get_user_id(request: Request) -> str:
    # No auth: every request acts as the demo user.
    return request.app.state.settings.demo_user_id


# ---------- Languages & Progress ----------

@app.get("/api/languages")
def list_languages():
    return {"languages": [lang.value for lang in LANGUAGES]}


@app.get("/api/progress", response_model=List[Progress])
def list_progress(store: ProgressStore = Depends(get_store), user_id: str = Depends(get_user_id)):
    try:
        return store.list_for_user(user_id)
    except Exception:
        log.exception("Error listing progress")
        raise HTTPException(status_code=500, detail="Failed to fetch progress")


@app.get("/api/progress/{language}", response_model=Progress)
def get_progress(
    language: Language,
    store: ProgressStore = Depends(get_store),
    user_id: str = Depends(get_user_id),
):
    try:
        return ensure_progress(store, user_id, language)
    except Exception:
        log.exception("Error fetching progress")
        raise HTTPException(status_code=500, detail="Failed to fetch progress")


# ---------- Lessons ----------

@app.get("/api/lesson/{language}/{lesson_number}", response_model=Lesson)
def get_lesson(
    language: Language,
    lesson_number: int = Path(..., ge=1),
    resolver: LessonResolver = Depends(get_resolver),
):
    try:
        return resolver.build_lesson(language, lesson_number)
    except Exception:
        log.exception("Error generating lesson")
        raise HTTPException(status_code=500, detail="Failed to generate lesson")


@app.post("/api/check-answer", response_model=AnswerResult)
def check_lesson_answer(payload: AnswerSubmission, resolver: LessonResolver = Depends(get_resolver)):
    try:
        lesson = resolver.build_lesson(payload.language, payload.lesson_number)
        return check_answer(lesson.questions[payload.question_index], payload.user_answer)
    except Exception:
        log.exception("Error checking answer")
        raise HTTPException(status_code=500, detail="Failed to check answer")


@app.post("/api/complete-lesson", response_model=CompleteLessonResponse)
def complete(payload: CompleteLessonRequest, store: ProgressStore = Depends(get_store)):
    try:
        return complete_lesson(
            store,
            user_id=payload.user_id,
            language=payload.language,
            level=payload.level,
            lesson_number=payload.lesson_number,
            correct_answers=payload.correct_answers,
            total_questions=payload.total_questions,
        )
    except InvalidCompletion as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception:
        log.exception("Error completing lesson")
        raise HTTPException(status_code=500, detail="Failed to complete lesson")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.port)
