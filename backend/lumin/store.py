from __future__ import annotations
import json
import logging
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional

from .errors import ValidationError
from .schemas import LessonDocument, UserRecord
from .settings import settings


logger = logging.getLogger(__name__)


class LessonStore(ABC):
    """Keyed document store for users and their lessons.

    Every lesson lookup is filtered by owner; a foreign id behaves exactly like
    a missing one.
    """

    @abstractmethod
    def get_user(self, username: str) -> Optional[UserRecord]: ...

    @abstractmethod
    def add_user(self, user: UserRecord) -> None:
        """Insert ``user``; raises ``ValidationError`` if the username is taken."""

    @abstractmethod
    def list_lessons(self, owner_id: str) -> List[LessonDocument]: ...

    @abstractmethod
    def get_lesson(self, lesson_id: str, owner_id: str) -> Optional[LessonDocument]: ...

    @abstractmethod
    def put_lesson(self, lesson: LessonDocument) -> None: ...

    @abstractmethod
    def delete_lesson(self, lesson_id: str, owner_id: str) -> bool:
        """Remove the lesson if id and owner match. Returns whether anything was removed."""


class JsonFileStore(LessonStore):
    """Single JSON file ``{"users": [...], "lessons": [...]}``, rewritten on every mutation."""

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    def _read(self) -> Dict[str, List[Dict[str, Any]]]:
        if not self.path.exists():
            return {"users": [], "lessons": []}
        with self.path.open("r", encoding="utf-8") as fh:
            data = json.load(fh)
        data.setdefault("users", [])
        data.setdefault("lessons", [])
        return data

    def _write(self, data: Dict[str, List[Dict[str, Any]]]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=self.path.name, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh, indent=2)
            os.replace(tmp, self.path)
        except BaseException:
            os.unlink(tmp)
            raise

    def get_user(self, username: str) -> Optional[UserRecord]:
        for row in self._read()["users"]:
            if row.get("username") == username:
                return UserRecord.model_validate(row)
        return None

    def add_user(self, user: UserRecord) -> None:
        with self._lock:
            data = self._read()
            if any(row.get("username") == user.username for row in data["users"]):
                raise ValidationError("User exists")
            data["users"].append(user.model_dump(by_alias=True))
            self._write(data)
        logger.info("Registered user %s", user.username)

    def list_lessons(self, owner_id: str) -> List[LessonDocument]:
        return [
            LessonDocument.model_validate(row)
            for row in self._read()["lessons"]
            if row.get("ownerId") == owner_id
        ]

    def get_lesson(self, lesson_id: str, owner_id: str) -> Optional[LessonDocument]:
        for row in self._read()["lessons"]:
            if row.get("id") == lesson_id and row.get("ownerId") == owner_id:
                return LessonDocument.model_validate(row)
        return None

    def put_lesson(self, lesson: LessonDocument) -> None:
        with self._lock:
            data = self._read()
            if any(row.get("id") == lesson.id for row in data["lessons"]):
                raise ValidationError(f"Lesson {lesson.id} already exists")
            data["lessons"].append(lesson.model_dump(by_alias=True))
            self._write(data)

    def delete_lesson(self, lesson_id: str, owner_id: str) -> bool:
        with self._lock:
            data = self._read()
            kept = [
                row for row in data["lessons"]
                if not (row.get("id") == lesson_id and row.get("ownerId") == owner_id)
            ]
            if len(kept) == len(data["lessons"]):
                return False
            data["lessons"] = kept
            self._write(data)
        logger.info("Deleted lesson %s", lesson_id)
        return True


@lru_cache
def get_store() -> LessonStore:
    if settings.database_url:
        from .db import SqlStore

        return SqlStore(settings.database_url)
    return JsonFileStore(settings.database_file)
