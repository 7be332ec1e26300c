import copy
import json
import os

# Must be set before lumin.settings is imported
os.environ.setdefault("PASSWORD_HASH_ROUNDS", "1000")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")
os.environ.setdefault("LLM_API_KEY", "test-key")

import pytest
from fastapi.testclient import TestClient

from lumin.generation import LessonGenerator
from lumin.main import app
from lumin.routers import sessions
from lumin.routers.generate import get_generator
from lumin.routers.sessions import get_runner
from lumin.schemas import LessonDocument
from lumin.store import JsonFileStore, get_store


LESSON_PAYLOAD = {
    "title": "Recursion From Scratch",
    "description": "Functions that call themselves.",
    "estimatedTime": "30 minutes",
    "sections": [
        {"title": "Introduction", "type": "text", "content": "Recursion solves a problem by solving smaller copies of it."},
        {"title": "Core Concepts", "type": "text", "content": "Every recursive function needs a base case."},
        {
            "title": "Visual Understanding",
            "type": "visual",
            "diagram": "graph TD\nA[fact 3] --> B[fact 2]\nB --> C[fact 1]",
            "diagramType": "mermaid",
            "explanation": "Each call waits on the next one.",
        },
        {
            "title": "Interactive Example",
            "type": "code",
            "language": "python",
            "content": "def fact(n):\n    return 1 if n <= 1 else n * fact(n - 1)\nprint(fact(5))",
            "explanation": "Classic factorial.",
            "expectedOutput": "120",
        },
        {"title": "Deep Dive", "type": "text", "content": "The call stack grows with every call."},
        {
            "title": "Practice Quiz",
            "type": "quiz",
            "questions": [
                {
                    "question": f"Question {i}?",
                    "options": ["A", "B", "C", "D"],
                    "correct": i % 4,
                    "explanation": f"Because {i % 4}.",
                }
                for i in range(7)
            ],
        },
        {
            "title": "Hands-On Project",
            "type": "project",
            "content": "Write a recursive Fibonacci.",
            "requirements": ["Use recursion"],
            "hints": ["fib(0) == 0"],
            "starterCode": "def fib(n):\n    pass",
            "testCases": [{"input": "10", "expected": "55"}],
        },
        {"title": "Key Takeaways", "type": "text", "content": "Base case first."},
    ],
}


@pytest.fixture
def lesson_payload():
    return copy.deepcopy(LESSON_PAYLOAD)


@pytest.fixture
def lesson(lesson_payload):
    return LessonDocument.model_validate(
        {
            **lesson_payload,
            "id": "lesson-1",
            "ownerId": "owner-1",
            "topic": "Recursion",
            "difficulty": "beginner",
            "duration": "30 minutes",
            "created": "2024-01-01T00:00:00+00:00",
        }
    )


class FakeLLM:
    """Stands in for LLMClient; replies are strings or exceptions, consumed in order.

    The last reply is repeated once the others are used up.
    """

    def __init__(self, *replies):
        self.replies = list(replies)
        self.calls = []
        self.closed = False

    async def generate(self, prompt, *, model, max_tokens=None, temperature=None):
        self.calls.append((prompt, model))
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, Exception):
            raise reply
        return reply

    async def aclose(self):
        self.closed = True


class FakeRunner:
    def __init__(self, output="", error=None):
        self.output = output
        self.error = error
        self.ran = []

    async def run(self, code):
        self.ran.append(code)
        if self.error is not None:
            raise self.error
        return self.output


@pytest.fixture
def store(tmp_path):
    return JsonFileStore(tmp_path / "database.json")


@pytest.fixture
def llm():
    return FakeLLM(json.dumps(LESSON_PAYLOAD))


@pytest.fixture
def runner():
    return FakeRunner(output="120\n")


@pytest.fixture
def client(store, llm, runner):
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_generator] = lambda: LessonGenerator(store, client_factory=lambda: llm)
    app.dependency_overrides[get_runner] = lambda: runner
    try:
        with TestClient(app) as c:
            yield c
    finally:
        app.dependency_overrides.clear()
        sessions._sessions.clear()
