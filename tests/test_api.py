import pytest

from database import ProgressStore, StorageError
from lessons import LessonResolver
from main import app, get_resolver, get_store

STARTUP_STATE = app.state.store, app.state.resolver


def complete_body(**overrides):
    body = {
        "userId": "demo-user",
        "language": "Spanish",
        "level": 1,
        "lessonNumber": 1,
        "correctAnswers": 5,
        "totalQuestions": 5,
    }
    body.update(overrides)
    return body


class FailingStore(ProgressStore):
    def get(self, user_id, language):
        raise StorageError("disk on fire")

    def list_for_user(self, user_id):
        raise StorageError("disk on fire")


def test_root(client):
    assert client.get("/").json() == {"message": "LinguaQuest Backend is running"}


def test_diagnostics(client):
    data = client.get("/test").json()
    assert data["store"].endswith("In-memory")
    assert "Fallback" in data["lesson_generation"]
    assert len(data["languages"]) == 6


def test_languages(client):
    assert client.get("/api/languages").json()["languages"] == [
        "Spanish", "French", "Japanese", "German", "Korean", "English",
    ]


def test_progress_is_created_lazily(client, store):
    r = client.get("/api/progress/Spanish")
    assert r.status_code == 200
    data = r.json()
    assert data["userId"] == "demo-user"
    assert data["language"] == "Spanish"
    assert data["currentLevel"] == 1
    assert data["xp"] == 0
    assert data["streak"] == 0
    assert data["completedLessons"] == []
    assert data["lastPracticeDate"] is None
    assert store.get("demo-user", "Spanish").id == data["id"]


def test_progress_is_stable_across_fetches(client):
    first = client.get("/api/progress/French").json()
    assert client.get("/api/progress/French").json() == first


def test_progress_unknown_language(client):
    r = client.get("/api/progress/Klingon")
    assert r.status_code == 400
    assert r.json()["detail"] == "Invalid request"


def test_list_progress(client):
    assert client.get("/api/progress").json() == []
    client.get("/api/progress/Korean")
    client.get("/api/progress/German")
    languages = {p["language"] for p in client.get("/api/progress").json()}
    assert languages == {"Korean", "German"}


def test_get_lesson(client):
    r = client.get("/api/lesson/Spanish/1")
    assert r.status_code == 200
    lesson = r.json()
    assert lesson["id"] == 1
    assert lesson["lessonNumber"] == 1
    assert lesson["level"] == 1
    assert lesson["xpReward"] == 20
    assert len(lesson["questions"]) == 5
    first = lesson["questions"][0]
    assert first["type"] == "multiple_choice"
    assert first["correctAnswer"] == 0
    assert lesson["questions"][2]["blanks"] == [{"position": 0, "correctAnswer": "días"}]
    assert lesson["questions"][4]["sourceText"] == "Good morning"


def test_lesson_level_is_derived_from_number(client):
    assert client.get("/api/lesson/French/7").json()["level"] == 2
    assert client.get("/api/lesson/French/21").json()["level"] == 5


@pytest.mark.parametrize("path", [
    "/api/lesson/Spanish/0",
    "/api/lesson/Spanish/-3",
    "/api/lesson/Spanish/abc",
    "/api/lesson/Klingon/1",
])
def test_lesson_validation(client, path):
    assert client.get(path).status_code == 400


def test_complete_lesson(client):
    r = client.post("/api/complete-lesson", json=complete_body())
    assert r.status_code == 200
    assert r.json() == {
        "xpEarned": 30,
        "newXp": 30,
        "newLevel": 1,
        "leveledUp": False,
        "newStreak": 1,
    }
    progress = client.get("/api/progress/Spanish").json()
    assert progress["xp"] == 30
    assert progress["streak"] == 1
    assert progress["completedLessons"] == [1]
    assert progress["lastPracticeDate"] is not None


def test_complete_lesson_accumulates(client):
    client.post("/api/complete-lesson", json=complete_body(correctAnswers=3))
    client.post("/api/complete-lesson", json=complete_body(lessonNumber=2, correctAnswers=1))
    data = client.post("/api/complete-lesson", json=complete_body(lessonNumber=2, correctAnswers=4)).json()
    assert data["xpEarned"] == 25
    assert data["newXp"] == 55
    assert data["newStreak"] == 1
    assert client.get("/api/progress/Spanish").json()["completedLessons"] == [1, 2]


def test_complete_lesson_accepts_snake_case(client):
    body = {
        "user_id": "demo-user",
        "language": "German",
        "level": 1,
        "lesson_number": 2,
        "correct_answers": 1,
        "total_questions": 5,
    }
    assert client.post("/api/complete-lesson", json=body).json()["xpEarned"] == 10


@pytest.mark.parametrize("overrides", [
    {"totalQuestions": 0, "correctAnswers": 0},
    {"correctAnswers": 6},
    {"correctAnswers": -1},
    {"lessonNumber": 0},
    {"level": "one"},
    {"language": "Klingon"},
])
def test_complete_lesson_validation_leaves_progress(client, overrides):
    client.post("/api/complete-lesson", json=complete_body())
    before = client.get("/api/progress/Spanish").json()
    r = client.post("/api/complete-lesson", json=complete_body(**overrides))
    assert r.status_code == 400
    assert r.json()["errors"]
    assert client.get("/api/progress/Spanish").json() == before


def test_complete_lesson_missing_field(client):
    body = complete_body()
    del body["totalQuestions"]
    assert client.post("/api/complete-lesson", json=body).status_code == 400


def test_check_answer(client):
    body = {"language": "Spanish", "lessonNumber": 1, "questionIndex": 0, "userAnswer": 0}
    assert client.post("/api/check-answer", json=body).json() == {
        "correct": True,
        "correctAnswer": 0,
        "explanation": "'Hola' is the most common greeting in Spanish, meaning 'Hello'.",
    }


def test_check_answer_translation(client):
    body = {"language": "French", "lessonNumber": 1, "questionIndex": 4, "userAnswer": "bonsoir "}
    data = client.post("/api/check-answer", json=body).json()
    assert data["correct"] is True
    assert data["correctAnswer"] == "Bonsoir"


def test_check_answer_rejects_bad_index(client):
    body = {"language": "French", "lessonNumber": 1, "questionIndex": 5, "userAnswer": "x"}
    assert client.post("/api/check-answer", json=body).status_code == 400


def test_storage_failure_is_a_server_error(client):
    app.dependency_overrides[get_store] = lambda: FailingStore()
    r = client.get("/api/progress/Spanish")
    assert r.status_code == 500
    assert r.json() == {"detail": "Failed to fetch progress"}
    assert client.get("/api/progress").status_code == 500
    r = client.post("/api/complete-lesson", json=complete_body())
    assert r.status_code == 500
    assert r.json() == {"detail": "Failed to complete lesson"}


class ExplodingResolver(LessonResolver):
    def build_lesson(self, language, lesson_number):
        raise RuntimeError("resolver bug")


def test_lesson_failure_is_a_json_server_error(client):
    app.dependency_overrides[get_resolver] = lambda: ExplodingResolver()
    r = client.get("/api/lesson/Spanish/1")
    assert r.status_code == 500
    assert r.json() == {"detail": "Failed to generate lesson"}
    body = {"language": "Spanish", "lessonNumber": 1, "questionIndex": 0, "userAnswer": 0}
    r = client.post("/api/check-answer", json=body)
    assert r.status_code == 500
    assert r.json() == {"detail": "Failed to check answer"}


def test_client_fixture_swaps_app_state(client, store):
    assert app.state.store is store


def test_app_state_is_restored_after_client_fixture():
    # runs without the client fixture, after the tests above
    assert (app.state.store, app.state.resolver) == STARTUP_STATE
