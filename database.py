"""
In-memory storage for LinguaQuest

One ProgressStore is built per process and handed to request handlers.
Progress records are keyed by (user_id, language); records are copied on the
way in and out, so the only way to change stored state is `update`.
"""

import logging
import threading
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Dict, Iterator, List, Optional, Tuple

from schemas import Language, Progress, User

log = logging.getLogger(__name__)

_NOW = object()

ProgressKey = Tuple[str, Language]


class StorageError(RuntimeError):
    """Raised when the store cannot read or write a record."""


class ProgressStore:
    def __init__(self, demo_user_id: str = "demo-user"):
        self._users: Dict[str, User] = {}
        self._progress: Dict[ProgressKey, Progress] = {}
        self._locks: Dict[ProgressKey, threading.RLock] = {}
        self._locks_guard = threading.Lock()

        demo = User(id=demo_user_id, username="demo", password="demo")
        self._users[demo.id] = demo

    # ---------- Users ----------

    def get_user(self, user_id: str) -> Optional[User]:
        return self._users.get(user_id)

    def get_user_by_username(self, username: str) -> Optional[User]:
        return next((u for u in self._users.values() if u.username == username), None)

    def create_user(self, username: str, password: str) -> User:
        user = User(id=str(uuid.uuid4()), username=username, password=password)
        self._users[user.id] = user
        return user

    # ---------- Progress ----------

    def get(self, user_id: str, language: Language) -> Optional[Progress]:
        doc = self._progress.get(_key(user_id, language))
        return doc.model_copy(deep=True) if doc else None

    def create(
        self,
        user_id: str,
        language: Language,
        current_level: int = 1,
        xp: int = 0,
        streak: int = 0,
        last_practice_date=_NOW,
        completed_lessons: Optional[List[int]] = None,
    ) -> Progress:
        """Store a fresh record, replacing any existing one for the key.

        `last_practice_date` defaults to the current time when omitted; pass
        None explicitly for a record that has never been practiced.
        """
        if last_practice_date is _NOW:
            last_practice_date = datetime.now(timezone.utc)
        progress = Progress(
            id=str(uuid.uuid4()),
            user_id=user_id,
            language=language,
            current_level=current_level,
            xp=xp,
            streak=streak,
            last_practice_date=last_practice_date,
            completed_lessons=list(completed_lessons or []),
        )
        self._progress[_key(user_id, language)] = progress
        log.debug("Created progress %s for %s/%s", progress.id, user_id, progress.language.value)
        return progress.model_copy(deep=True)

    def update(self, progress: Progress) -> Progress:
        if not isinstance(progress, Progress):
            raise StorageError(f"Cannot store {type(progress).__name__} as progress")
        stored = progress.model_copy(deep=True)
        self._progress[_key(stored.user_id, stored.language)] = stored
        return stored.model_copy(deep=True)

    def list_for_user(self, user_id: str) -> List[Progress]:
        return [p.model_copy(deep=True) for p in self._progress.values() if p.user_id == user_id]

    @contextmanager
    def lock(self, user_id: str, language: Language) -> Iterator[None]:
        """Serialize read-modify-write cycles on a single progress record.

        The lock is reentrant, so a holder may call helpers that lock again.
        """
        key = _key(user_id, language)
        with self._locks_guard:
            key_lock = self._locks.setdefault(key, threading.RLock())
        with key_lock:
            yield


def _key(user_id: str, language: Language) -> ProgressKey:
    return user_id, Language(language)
