from __future__ import annotations
import json
import logging
import re
import uuid
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional

from pydantic import ValidationError as SchemaError

from .errors import GenerationError, LuminError, ModelNotFoundError, ProviderError
from .llm_client import LLMClient
from .schemas import LessonContent, LessonDocument
from .settings import settings
from .store import LessonStore


logger = logging.getLogger(__name__)

_FENCE = re.compile(r"^```[\w-]*[ \t]*\n?([\s\S]*?)\n?[ \t]*```$")
_FENCE_ANYWHERE = re.compile(r"```[\w-]*[ \t]*\n?([\s\S]*?)\n?[ \t]*```")

Attempt = Callable[[str, bool], Awaitable[str]]


def build_prompt(topic: str, difficulty: str, duration: str) -> str:
    return (
        f'Create an interactive lesson on "{topic}" ({difficulty}, {duration}).\n\n'
        "JSON format:\n"
        f'{{"title":"...","description":"...","estimatedTime":"{duration}",\n'
        '"sections":[\n'
        '  {"title":"Introduction","type":"text","content":"400-500 words"},\n'
        '  {"title":"Core Concepts","type":"text","content":"600-700 words"},\n'
        '  {"title":"Visual Understanding","type":"visual","diagram":"graph TD\\nA-->B","diagramType":"mermaid","explanation":"300 words"},\n'
        '  {"title":"Interactive Example","type":"code","language":"python","content":"def calc():\\n    print(\'test\')\\ncalc()","explanation":"300 words","expectedOutput":"test"},\n'
        '  {"title":"Deep Dive","type":"text","content":"500 words"},\n'
        '  {"title":"Practice Quiz","type":"quiz","questions":[{"question":"Q","options":["A","B","C","D"],"correct":2,"explanation":"why"}]},\n'
        '  {"title":"Hands-On Project","type":"project","content":"400 words","requirements":["r1"],"hints":["h1"],"starterCode":"# code","testCases":[{"input":"x","expected":"y"}]},\n'
        '  {"title":"Key Takeaways","type":"text","content":"300 words"}\n'
        "]}\n\n"
        "Constraints:\n"
        "- Keep the sections in exactly this order.\n"
        "- 7+ quiz questions, each with exactly 4 options; correct is the 0-based index of the right option.\n"
        "- Runnable Python code that prints its result to standard output.\n"
        "- Valid Mermaid syntax in the diagram.\n"
        "- 3000+ words total.\n\n"
        "Return ONLY JSON."
    )


def build_reduced_prompt(topic: str, difficulty: str, duration: str) -> str:
    return (
        f'Create an interactive lesson on "{topic}" ({difficulty}, {duration}).\n\n'
        "JSON format with 7+ quiz questions, runnable Python code, valid Mermaid diagrams. "
        "Section types: text, visual, code, quiz, project. Return ONLY JSON.\n\n"
        f'{{"title":"...","description":"...","estimatedTime":"{duration}","sections":[...]}}'
    )


def strip_code_fence(text: str) -> str:
    """Remove a surrounding ``` fence (optionally language tagged) from a model reply."""
    stripped = text.strip()
    match = _FENCE.match(stripped)
    if match is None and not stripped.startswith("{"):
        # Prose around the fence, e.g. "Here is your lesson:"
        match = _FENCE_ANYWHERE.search(stripped)
    if match:
        return match.group(1).strip()
    return stripped


def parse_lesson(text: str) -> LessonContent:
    try:
        data = json.loads(strip_code_fence(text))
    except json.JSONDecodeError as e:
        raise GenerationError(f"Model returned invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise GenerationError("Model returned JSON that is not an object")
    try:
        return LessonContent.model_validate(data)
    except SchemaError as e:
        raise GenerationError(f"Model returned an invalid lesson: {e}") from e


class FallbackPolicy:
    """Primary attempt; one fallback attempt only when the primary model is unknown."""

    def __init__(self, primary_model: str, fallback_model: str) -> None:
        self.primary_model = primary_model
        self.fallback_model = fallback_model

    async def run(self, attempt: Attempt) -> str:
        # attempt(model, reduced_prompt)
        try:
            return await attempt(self.primary_model, False)
        except ModelNotFoundError as e:
            logger.warning("Model %s not found (%s); trying fallback %s", self.primary_model, e, self.fallback_model)
            return await attempt(self.fallback_model, True)


class LessonGenerator:
    def __init__(
        self,
        store: LessonStore,
        *,
        client_factory: Optional[Callable[[], LLMClient]] = None,
        policy: Optional[FallbackPolicy] = None,
        id_factory: Callable[[], str] = lambda: uuid.uuid4().hex,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self.store = store
        self.client_factory = client_factory or LLMClient
        self.policy = policy or FallbackPolicy(settings.llm_model, settings.llm_fallback_model)
        self.id_factory = id_factory
        self.clock = clock

    async def generate(self, topic: str, difficulty: str, duration: str, owner_id: str) -> LessonDocument:
        logger.info("Generating lesson %r (%s, %s) for %s", topic, difficulty, duration, owner_id)
        try:
            client = self.client_factory()
        except ProviderError as e:
            raise GenerationError(str(e)) from e

        async def attempt(model: str, reduced: bool) -> str:
            prompt = (build_reduced_prompt if reduced else build_prompt)(topic, difficulty, duration)
            return await client.generate(prompt, model=model)

        try:
            raw = await self.policy.run(attempt)
        except ProviderError as e:
            logger.error("Lesson generation failed: %s", e)
            raise GenerationError(str(e)) from e
        finally:
            await client.aclose()

        content = parse_lesson(raw)
        fields: Dict[str, Any] = content.model_dump()
        lesson = LessonDocument(
            **fields,
            id=self.id_factory(),
            owner_id=owner_id,
            topic=topic,
            difficulty=difficulty,
            duration=duration,
            created=self.clock().isoformat(),
        )
        try:
            self.store.put_lesson(lesson)
        except LuminError:
            raise
        except Exception as e:
            logger.exception("Could not store lesson %s", lesson.id)
            raise GenerationError(f"Could not store lesson: {e}") from e
        logger.info("Stored lesson %s with %d sections", lesson.id, len(lesson.sections))
        return lesson
