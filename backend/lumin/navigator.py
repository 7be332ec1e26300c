"""
Lesson Navigator

Playback state for one learner walking through one lesson. It handles:
- Sequential navigation over the ordered sections (clamped, no skipping rules)
- Diagram rendering when a visual section is entered
- Quiz answering with per-question reveal
- An editable code buffer and execution through the code runner

The navigator never raises for code execution or diagram failures; those end
up as text in the corresponding output slot so playback continues.
"""

from __future__ import annotations
import html
import logging
from typing import Any, Callable, Dict, List, Optional, Protocol

from typing_extensions import assert_never

from .errors import CodeExecutionError, ValidationError
from .schemas import (
    CodeSection,
    LessonDocument,
    ProjectSection,
    QuizSection,
    TextSection,
    VisualSection,
)


logger = logging.getLogger(__name__)

NO_OUTPUT_MESSAGE = "Code executed successfully (no output)"

DiagramRenderer = Callable[[str, str], str]


class Runner(Protocol):
    async def run(self, code: str) -> str: ...


def render_diagram_markup(diagram: str, diagram_type: str) -> str:
    """
    Default diagram renderer.

    Produces the markup a Mermaid-enabled page turns into an SVG. Diagram
    syntax is not interpreted here.
    """
    return f'<pre class="{html.escape(diagram_type)}">{html.escape(diagram)}</pre>'


class QuizProgress:
    """
    Answers for one quiz section.

    Attributes:
        answers: question index -> selected option index
        revealed: question index -> True once answered
    """

    def __init__(self) -> None:
        self.answers: Dict[int, int] = {}
        self.revealed: Dict[int, bool] = {}


class LessonNavigator:
    """
    State machine over ``lesson.sections``.

    Attributes:
        current_index: Always within ``[0, len(sections))``
        code: Editable buffer, seeded from the first code section (empty if none)
        code_output: Output of the last ``run_code`` call
        diagram_output: Rendered diagram of the current visual section, if any
    """

    def __init__(
        self,
        lesson: LessonDocument,
        *,
        runner: Optional[Runner] = None,
        diagram_renderer: DiagramRenderer = render_diagram_markup,
    ) -> None:
        self.lesson = lesson
        self.runner = runner
        self.diagram_renderer = diagram_renderer
        self.current_index = 0
        self.code = ""
        self.code_output = ""
        self.diagram_output: Optional[str] = None
        self._quizzes: Dict[int, QuizProgress] = {}
        for section in lesson.sections:
            if isinstance(section, CodeSection):
                self.code = section.content
                break
        self.go_to(0)

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    @property
    def sections(self) -> List[Any]:
        return self.lesson.sections

    @property
    def section(self):
        return self.sections[self.current_index]

    @property
    def has_previous(self) -> bool:
        return self.current_index > 0

    @property
    def has_next(self) -> bool:
        return self.current_index < len(self.sections) - 1

    def go_to(self, index: int):
        """Move to ``index`` clamped into range and return the section entered."""
        self.current_index = max(0, min(int(index), len(self.sections) - 1))
        section = self.section
        if isinstance(section, VisualSection):
            self._render_diagram(section)
        else:
            self.diagram_output = None
        return section

    def next(self):
        return self.go_to(self.current_index + 1)

    def previous(self):
        return self.go_to(self.current_index - 1)

    def _render_diagram(self, section: VisualSection) -> None:
        # Replaces whatever was rendered before
        try:
            self.diagram_output = self.diagram_renderer(section.diagram, section.diagram_type)
        except Exception as e:
            logger.warning("Diagram render failed for %r: %s", section.title, e)
            self.diagram_output = f"Diagram error: {e}"

    # ------------------------------------------------------------------
    # Quiz
    # ------------------------------------------------------------------

    def _current_quiz(self) -> QuizSection:
        section = self.section
        if not isinstance(section, QuizSection):
            raise ValidationError("Current section is not a quiz")
        return section

    def quiz_progress(self, section_index: Optional[int] = None) -> QuizProgress:
        idx = self.current_index if section_index is None else section_index
        return self._quizzes.setdefault(idx, QuizProgress())

    @property
    def quiz_answers(self) -> Dict[int, int]:
        return self.quiz_progress().answers

    @property
    def revealed(self) -> Dict[int, bool]:
        return self.quiz_progress().revealed

    def select_quiz_option(self, question_index: int, option_index: int) -> bool:
        """
        Answer a question of the current quiz section.

        The first answer locks the question: it is revealed for the rest of the
        session and later selections are ignored.

        Returns:
            True if the answer was recorded, False if the question was already revealed
        """
        quiz = self._current_quiz()
        if not 0 <= question_index < len(quiz.questions):
            raise ValidationError(f"No question {question_index} in this quiz")
        question = quiz.questions[question_index]
        if not 0 <= option_index < len(question.options):
            raise ValidationError(f"No option {option_index} for question {question_index}")
        progress = self.quiz_progress()
        if progress.revealed.get(question_index):
            return False
        progress.answers[question_index] = option_index
        progress.revealed[question_index] = True
        return True

    def is_correct(self, question_index: int) -> Optional[bool]:
        """Correctness of the recorded answer, or None while unanswered."""
        quiz = self._current_quiz()
        selected = self.quiz_answers.get(question_index)
        if selected is None:
            return None
        return selected == quiz.questions[question_index].correct

    # ------------------------------------------------------------------
    # Code
    # ------------------------------------------------------------------

    def update_code(self, code: str) -> None:
        self.code = code

    async def run_code(self) -> str:
        """Execute the buffer; failures become an ``Error: ...`` output instead of raising."""
        if self.runner is None:
            self.code_output = "Error: code execution is not available"
            return self.code_output
        try:
            output = await self.runner.run(self.code)
            self.code_output = output or NO_OUTPUT_MESSAGE
        except CodeExecutionError as e:
            self.code_output = f"Error: {e}"
        except Exception as e:
            logger.exception("Code runner crashed")
            self.code_output = f"Error: {e}"
        return self.code_output

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def render(self) -> Dict[str, Any]:
        """View of the current section plus the navigation state."""
        section = self.section
        view: Dict[str, Any] = {
            "index": self.current_index,
            "total": len(self.sections),
            "hasPrevious": self.has_previous,
            "hasNext": self.has_next,
            "section": section.model_dump(by_alias=True),
        }
        if isinstance(section, TextSection):
            pass
        elif isinstance(section, VisualSection):
            view["diagramOutput"] = self.diagram_output
        elif isinstance(section, CodeSection):
            view["code"] = self.code
            view["codeOutput"] = self.code_output
        elif isinstance(section, QuizSection):
            progress = self.quiz_progress()
            view["questions"] = [
                {
                    "selected": progress.answers.get(i),
                    "revealed": progress.revealed.get(i, False),
                    "correct": (
                        progress.answers[i] == q.correct if i in progress.answers else None
                    ),
                }
                for i, q in enumerate(section.questions)
            ]
        elif isinstance(section, ProjectSection):
            pass
        else:
            assert_never(section)
        return view
