from __future__ import annotations
from typing import List

from fastapi import APIRouter, Depends

from ..errors import NotFoundError
from ..schemas import LessonDocument
from ..store import LessonStore, get_store
from .auth import User, get_current_user


router = APIRouter(prefix="/api/lessons", tags=["lessons"])


@router.get("", response_model=List[LessonDocument])
async def list_lessons(user: User = Depends(get_current_user), store: LessonStore = Depends(get_store)):
    return store.list_lessons(user.id)


@router.get("/{lesson_id}", response_model=LessonDocument)
async def get_lesson(lesson_id: str, user: User = Depends(get_current_user), store: LessonStore = Depends(get_store)):
    lesson = store.get_lesson(lesson_id, user.id)
    if lesson is None:
        raise NotFoundError("Lesson not found")
    return lesson


@router.delete("/{lesson_id}")
async def delete_lesson(lesson_id: str, user: User = Depends(get_current_user), store: LessonStore = Depends(get_store)):
    # Unknown or foreign ids are a silent no-op
    store.delete_lesson(lesson_id, user.id)
    return {"success": True}
