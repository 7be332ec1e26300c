"""
Lesson Playback Router

Server-side playback sessions for generated lessons. Each session wraps a
LessonNavigator and is owned by the user who opened it. It handles:
- Opening a session on a stored lesson
- Sequential navigation (goto/next/previous)
- Quiz answering with reveal
- Editing and running the lesson's code buffer

Sessions live in process memory and are lost on restart; the lesson itself
stays in the store.
"""

from __future__ import annotations
import uuid
from typing import Any, Dict

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ..errors import NotFoundError
from ..navigator import LessonNavigator
from ..sandbox import CodeRunner
from ..store import LessonStore, get_store
from .auth import User, get_current_user


router = APIRouter(prefix="/api", tags=["sessions"])


# ============================================================================
# REQUEST MODELS
# ============================================================================

class GoToRequest(BaseModel):
    index: int


class QuizAnswerRequest(BaseModel):
    """
    Attributes:
        question_index: Position of the question within the current quiz section
        option_index: Index of the selected option (0-3)
    """
    question_index: int = Field(validation_alias="questionIndex")
    option_index: int = Field(validation_alias="optionIndex")


class CodeUpdateRequest(BaseModel):
    code: str


# ============================================================================
# SESSION STATE
# ============================================================================

class PlaybackSession:
    def __init__(self, owner_id: str, navigator: LessonNavigator) -> None:
        self.session_id: str = uuid.uuid4().hex
        self.owner_id = owner_id
        self.navigator = navigator

    def view(self) -> Dict[str, Any]:
        return {
            "sessionId": self.session_id,
            "lessonId": self.navigator.lesson.id,
            **self.navigator.render(),
        }


_sessions: Dict[str, PlaybackSession] = {}

# Opening one more than this drops the user's oldest session
MAX_SESSIONS_PER_USER = 5


def get_runner() -> CodeRunner:
    return CodeRunner()


def _get_session(session_id: str, user: User) -> PlaybackSession:
    session = _sessions.get(session_id)
    # Foreign sessions look exactly like missing ones
    if session is None or session.owner_id != user.id:
        raise NotFoundError("Session not found")
    return session


# ============================================================================
# API ENDPOINTS
# ============================================================================

@router.post("/lessons/{lesson_id}/sessions")
async def open_session(
    lesson_id: str,
    user: User = Depends(get_current_user),
    store: LessonStore = Depends(get_store),
    runner: CodeRunner = Depends(get_runner),
):
    lesson = store.get_lesson(lesson_id, user.id)
    if lesson is None:
        raise NotFoundError("Lesson not found")
    session = PlaybackSession(user.id, LessonNavigator(lesson, runner=runner))
    owned = [sid for sid, s in _sessions.items() if s.owner_id == user.id]
    # dicts keep insertion order, so the first ids are the oldest
    for sid in owned[: max(0, len(owned) - MAX_SESSIONS_PER_USER + 1)]:
        del _sessions[sid]
    _sessions[session.session_id] = session
    return session.view()


@router.get("/sessions/{session_id}")
async def get_session(session_id: str, user: User = Depends(get_current_user)):
    return _get_session(session_id, user).view()


@router.post("/sessions/{session_id}/goto")
async def go_to(session_id: str, req: GoToRequest, user: User = Depends(get_current_user)):
    session = _get_session(session_id, user)
    session.navigator.go_to(req.index)
    return session.view()


@router.post("/sessions/{session_id}/next")
async def next_section(session_id: str, user: User = Depends(get_current_user)):
    session = _get_session(session_id, user)
    session.navigator.next()
    return session.view()


@router.post("/sessions/{session_id}/previous")
async def previous_section(session_id: str, user: User = Depends(get_current_user)):
    session = _get_session(session_id, user)
    session.navigator.previous()
    return session.view()


@router.post("/sessions/{session_id}/quiz")
async def answer_quiz(session_id: str, req: QuizAnswerRequest, user: User = Depends(get_current_user)):
    session = _get_session(session_id, user)
    accepted = session.navigator.select_quiz_option(req.question_index, req.option_index)
    return {**session.view(), "accepted": accepted}


@router.put("/sessions/{session_id}/code")
async def update_code(session_id: str, req: CodeUpdateRequest, user: User = Depends(get_current_user)):
    session = _get_session(session_id, user)
    session.navigator.update_code(req.code)
    return session.view()


@router.post("/sessions/{session_id}/run")
async def run_code(session_id: str, user: User = Depends(get_current_user)):
    session = _get_session(session_id, user)
    output = await session.navigator.run_code()
    return {"output": output}


@router.delete("/sessions/{session_id}")
async def close_session(session_id: str, user: User = Depends(get_current_user)):
    session = _get_session(session_id, user)
    _sessions.pop(session.session_id, None)
    return {"success": True}
