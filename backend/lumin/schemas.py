from __future__ import annotations
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class _Wire(BaseModel):
    # camelCase on the wire, snake_case in Python; unknown keys from the model are dropped
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore", coerce_numbers_to_str=True
    )


class TextSection(_Wire):
    type: Literal["text"] = "text"
    title: str
    content: str


class VisualSection(_Wire):
    type: Literal["visual"] = "visual"
    title: str
    diagram: str
    diagram_type: str = "mermaid"
    explanation: str = ""


class CodeSection(_Wire):
    type: Literal["code"] = "code"
    title: str
    language: str = "python"
    content: str
    explanation: str = ""
    expected_output: str = ""


class QuizQuestion(_Wire):
    question: str
    options: List[str] = Field(min_length=4, max_length=4)
    correct: int = Field(ge=0)
    explanation: str = ""

    @model_validator(mode="after")
    def _correct_in_range(self) -> "QuizQuestion":
        if self.correct >= len(self.options):
            raise ValueError(f"correct index {self.correct} out of range for {len(self.options)} options")
        return self


class QuizSection(_Wire):
    type: Literal["quiz"] = "quiz"
    title: str
    questions: List[QuizQuestion] = Field(min_length=1)


class ProjectTestCase(_Wire):
    input: str = ""
    expected: str = ""


class ProjectSection(_Wire):
    type: Literal["project"] = "project"
    title: str
    content: str
    requirements: List[str] = Field(default_factory=list)
    hints: List[str] = Field(default_factory=list)
    starter_code: str = ""
    test_cases: List[ProjectTestCase] = Field(default_factory=list)


Section = Annotated[
    Union[TextSection, VisualSection, CodeSection, QuizSection, ProjectSection],
    Field(discriminator="type"),
]


class LessonContent(_Wire):
    """The part of a lesson produced by the language model."""

    title: str
    description: str = ""
    estimated_time: Optional[str] = None
    sections: List[Section] = Field(min_length=1)


class LessonDocument(LessonContent):
    id: str
    owner_id: str
    topic: str
    difficulty: str
    duration: str
    created: str


class UserRecord(_Wire):
    id: str
    username: str
    password_hash: str


class GenerateRequest(_Wire):
    topic: str = Field(min_length=1)
    difficulty: Literal["beginner", "intermediate", "advanced"]
    duration: str = "30 minutes"
