from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional

DIFFICULTIES = ("Beginner", "Intermediate", "Advanced")
TYPE_PREFERENCES = ("coding", "conceptual", "either")
QUESTION_TYPES = ("coding", "conceptual")
REALIZED_TYPES = ("coding", "conceptual", "both")

# Wire and legacy spellings of the "either" preference
PREFERENCE_ALIASES = {"any": "either", "both": "either"}


def normalize_preference(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip().lower()
    return PREFERENCE_ALIASES.get(value, value)


@dataclass(frozen=True)
class SessionConfig:
    difficulty: Optional[str] = None
    topic: Optional[str] = None
    type_preference: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        return bool(
            self.difficulty
            and self.topic and self.topic.strip()
            and self.type_preference
        )


@dataclass
class Challenge:
    realized_type: str
    coding_question: Optional[str] = None
    coding_hint: Optional[str] = None
    conceptual_question: Optional[str] = None
    conceptual_hint: Optional[str] = None

    def question_for(self, view: Optional[str]) -> Optional[str]:
        if view == "coding":
            return self.coding_question
        if view == "conceptual":
            return self.conceptual_question
        return None

    def hint_for(self, view: Optional[str]) -> Optional[str]:
        if view == "coding":
            return self.coding_hint
        if view == "conceptual":
            return self.conceptual_hint
        return None

    def set_hint(self, view: str, hint: str) -> None:
        if view == "coding":
            self.coding_hint = hint
        else:
            self.conceptual_hint = hint

    @property
    def views(self) -> tuple[str, ...]:
        if self.realized_type == "both":
            return QUESTION_TYPES
        return (self.realized_type,)

    @property
    def default_view(self) -> str:
        return "coding" if self.realized_type == "both" else self.realized_type


@dataclass(frozen=True)
class GradingResult:
    score: int
    passed: bool
    feedback: str
    view: Optional[str] = None


@dataclass(frozen=True)
class SolutionReveal:
    solution: str
    explanation: Optional[str] = None
    view: Optional[str] = None


@dataclass
class SessionState:
    session_id: str
    config: SessionConfig = field(default_factory=SessionConfig)
    challenge: Optional[Challenge] = None
    active_view: Optional[str] = None
    code_draft: str = ""
    conceptual_draft: str = ""
    grading: Optional[GradingResult] = None
    solution: Optional[SolutionReveal] = None
    hint_revealed: bool = False
    attempt_count: int = 0
    # Phase flags: true only while the matching provider call is in flight
    fetching_challenge: bool = False
    submitting_grading: bool = False
    fetching_solution: bool = False
    fetching_hint: bool = False
    # Phase errors
    generation_error: Optional[str] = None
    grading_error: Optional[str] = None
    solution_error: Optional[str] = None
    hint_error: Optional[str] = None
    epoch: int = 0

    @property
    def draft(self) -> str:
        if self.active_view == "conceptual":
            return self.conceptual_draft
        if self.active_view == "coding":
            return self.code_draft
        return ""

    @property
    def current_question(self) -> Optional[str]:
        if self.challenge is None:
            return None
        return self.challenge.question_for(self.active_view)

    @property
    def current_hint(self) -> Optional[str]:
        if self.challenge is None:
            return None
        return self.challenge.hint_for(self.active_view)

    @property
    def status(self) -> str:
        if self.fetching_challenge:
            return "fetching_challenge"
        if not self.config.is_complete:
            return "unconfigured"
        if self.challenge is None:
            return "error" if self.generation_error else "unconfigured"
        if self.submitting_grading:
            return "submitting"
        if self.fetching_solution:
            return "fetching_solution"
        if self.solution is not None:
            return "solution_ready"
        if self.grading_error or self.solution_error:
            return "error"
        if self.grading is not None:
            return "graded"
        return "challenge_ready"
