"""
Async wrappers around the LLM service.

Each provider turns structured input into one chat call, validates the JSON the
model returns with pydantic, and raises its own ProviderError subclass on any
failure. Providers hold no session state.
"""
from __future__ import annotations
import asyncio
import logging
from typing import Any, Dict, Literal, Optional, Type

from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as SchemaError

from errors import (
    GenerationError, GradingError, HintError, ProviderError, SolutionError, ValidationError,
)
from models import (
    DIFFICULTIES, QUESTION_TYPES, TYPE_PREFERENCES,
    Challenge, GradingResult, SolutionReveal, normalize_preference,
)
from openrouter_client import OpenRouterClient
from prompts import (
    TUTOR_SYSTEM_PROMPT, QUESTION_PROMPT, CODE_GRADING_PROMPT, CONCEPTUAL_GRADING_PROMPT,
    SOLUTION_PROMPT, HINT_PROMPT, TOPIC_PROMPT,
)

logger = logging.getLogger(__name__)

PREDEFINED_TOPICS = [
    "JavaScript Variables", "Python Lists", "React Props", "CSS Selectors", "HTML Attributes",
    "JavaScript Functions", "Python Dictionaries", "React State Management", "CSS Grid Layout",
    "Data Structures: Arrays", "Algorithms: Bubble Sort",
]


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


# ---------- Response schemas ----------
class SingleQuestionOut(BaseModel):
    question: str = Field(..., min_length=1)
    hint: Optional[str] = None
    questionType: Literal["coding", "conceptual"]

    @field_validator("question", "hint", mode="before")
    @classmethod
    def blank_fields(cls, v):
        return _blank_to_none(v)


class DualQuestionOut(BaseModel):
    codingQuestion: Optional[str] = None
    codingHint: Optional[str] = None
    conceptualQuestion: Optional[str] = None
    conceptualHint: Optional[str] = None
    questionTypeGenerated: Literal["coding", "conceptual", "both"]

    @field_validator(
        "codingQuestion", "codingHint", "conceptualQuestion", "conceptualHint", mode="before"
    )
    @classmethod
    def blank_fields(cls, v):
        return _blank_to_none(v)


class GradingOut(BaseModel):
    score: int = Field(..., ge=0, le=100)
    passed: bool
    feedback: str = ""


class SolutionOut(BaseModel):
    solution: str = Field(..., min_length=1)
    explanation: Optional[str] = None

    @field_validator("solution", "explanation", mode="before")
    @classmethod
    def blank_fields(cls, v):
        return _blank_to_none(v)


class HintOut(BaseModel):
    hint: str = Field(..., min_length=1)

    @field_validator("hint", mode="before")
    @classmethod
    def strip_hint(cls, v):
        return v.strip() if isinstance(v, str) else v


class TopicOut(BaseModel):
    topic: str = Field(..., min_length=1)

    @field_validator("topic", mode="before")
    @classmethod
    def strip_topic(cls, v):
        return v.strip() if isinstance(v, str) else v


# ---------- Input checks ----------
def check_topic(topic: Optional[str]) -> str:
    if not topic or not topic.strip():
        raise ValidationError("Topic must not be empty.")
    return topic.strip()


def check_difficulty(difficulty: Optional[str]) -> str:
    if difficulty not in DIFFICULTIES:
        raise ValidationError(f"Difficulty must be one of {', '.join(DIFFICULTIES)}.")
    return difficulty


def check_preference(preference: Optional[str]) -> str:
    value = normalize_preference(preference)
    if value not in TYPE_PREFERENCES:
        raise ValidationError(f"Question type must be one of {', '.join(TYPE_PREFERENCES)}.")
    return value


def check_question_type(question_type: Optional[str]) -> str:
    if question_type not in QUESTION_TYPES:
        raise ValidationError(f"Question type must be one of {', '.join(QUESTION_TYPES)}.")
    return question_type


def to_challenge(data: Dict[str, Any]) -> Challenge:
    """Normalise either response shape into a Challenge and enforce its invariant."""
    if "questionTypeGenerated" in data:
        dual = DualQuestionOut.model_validate(data)
        challenge = Challenge(
            realized_type=dual.questionTypeGenerated,
            coding_question=dual.codingQuestion,
            coding_hint=dual.codingHint,
            conceptual_question=dual.conceptualQuestion,
            conceptual_hint=dual.conceptualHint,
        )
    else:
        single = SingleQuestionOut.model_validate(data)
        if single.questionType == "coding":
            challenge = Challenge(realized_type="coding",
                                  coding_question=single.question, coding_hint=single.hint)
        else:
            challenge = Challenge(realized_type="conceptual",
                                  conceptual_question=single.question, conceptual_hint=single.hint)

    has_coding = challenge.coding_question is not None
    has_conceptual = challenge.conceptual_question is not None
    if challenge.realized_type == "coding":
        ok = has_coding and not has_conceptual and challenge.conceptual_hint is None
    elif challenge.realized_type == "conceptual":
        ok = has_conceptual and not has_coding and challenge.coding_hint is None
    else:
        ok = has_coding and has_conceptual
    if not ok:
        raise GenerationError(
            f"Generated challenge does not match its declared type '{challenge.realized_type}'."
        )
    return challenge


class _LLMProvider:
    error_cls: Type[ProviderError] = ProviderError

    def __init__(self, client: OpenRouterClient, temperature: float = 0.2):
        self.client = client
        self.temperature = temperature

    async def _ask(self, prompt: str) -> Dict[str, Any]:
        messages = [
            {"role": "system", "content": TUTOR_SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ]
        try:
            return await asyncio.to_thread(self.client.chat_json, messages, self.temperature)
        except RuntimeError as e:
            logger.warning("%s call failed: %s", type(self).__name__, e)
            raise self.error_cls(str(e)) from e

    def _validate(self, schema: Type[BaseModel], data: Dict[str, Any]) -> Any:
        try:
            return schema.model_validate(data)
        except SchemaError as e:
            logger.warning("%s got unusable output: %s", type(self).__name__, e)
            raise self.error_cls(f"Unusable model output: {e.error_count()} validation error(s)") from e


class QuestionProvider(_LLMProvider):
    error_cls = GenerationError

    async def generate_challenge(self, topic: str, difficulty: str, type_preference: str) -> Challenge:
        topic = check_topic(topic)
        difficulty = check_difficulty(difficulty)
        preference = check_preference(type_preference)
        wire_preference = "any" if preference == "either" else preference

        data = await self._ask(QUESTION_PROMPT.format(
            topic=topic, difficulty=difficulty, preference=wire_preference,
        ))
        try:
            return to_challenge(data)
        except SchemaError as e:
            logger.warning("QuestionProvider got unusable output: %s", e)
            raise GenerationError(f"Unusable model output: {e.error_count()} validation error(s)") from e


class GradingProvider(_LLMProvider):
    error_cls = GradingError

    async def grade_code(self, code: str, topic: str, difficulty: str) -> GradingResult:
        data = await self._ask(CODE_GRADING_PROMPT.format(
            code=code, topic=check_topic(topic), difficulty=check_difficulty(difficulty),
        ))
        out = self._validate(GradingOut, data)
        return GradingResult(score=out.score, passed=out.passed, feedback=out.feedback, view="coding")

    async def grade_conceptual(self, answer: str, question: str, topic: str, difficulty: str) -> GradingResult:
        data = await self._ask(CONCEPTUAL_GRADING_PROMPT.format(
            answer=answer, question=question,
            topic=check_topic(topic), difficulty=check_difficulty(difficulty),
        ))
        out = self._validate(GradingOut, data)
        return GradingResult(score=out.score, passed=out.passed, feedback=out.feedback, view="conceptual")


class SolutionProvider(_LLMProvider):
    error_cls = SolutionError

    async def generate_solution(self, topic: str, difficulty: str, question: str, question_type: str) -> SolutionReveal:
        if not question or not question.strip():
            raise ValidationError("A question is required to generate a solution.")
        question_type = check_question_type(question_type)
        data = await self._ask(SOLUTION_PROMPT.format(
            topic=check_topic(topic), difficulty=check_difficulty(difficulty),
            question=question, question_type=question_type,
        ))
        out = self._validate(SolutionOut, data)
        return SolutionReveal(solution=out.solution, explanation=out.explanation, view=question_type)


class HintProvider(_LLMProvider):
    error_cls = HintError

    async def generate_hint(self, question: str, topic: str, difficulty: str) -> str:
        data = await self._ask(HINT_PROMPT.format(
            question=question, topic=check_topic(topic), difficulty=check_difficulty(difficulty),
        ))
        return self._validate(HintOut, data).hint


class TopicProvider(_LLMProvider):
    error_cls = GenerationError

    def predefined_topics(self) -> list[str]:
        return list(PREDEFINED_TOPICS)

    async def suggest_topic(self, difficulty: str) -> str:
        data = await self._ask(TOPIC_PROMPT.format(difficulty=check_difficulty(difficulty)))
        return self._validate(TopicOut, data).topic


class Providers:
    """Bundle of every provider sharing one LLM client."""
    def __init__(self, client: OpenRouterClient, temperature: float = 0.2):
        self.questions = QuestionProvider(client, temperature)
        self.grading = GradingProvider(client, temperature)
        self.solutions = SolutionProvider(client, temperature)
        self.hints = HintProvider(client, temperature)
        self.topics = TopicProvider(client, temperature)
