import asyncio

import pytest

from errors import GenerationError, GradingError, HintError, SolutionError, ValidationError
from providers import (
    GradingProvider, HintProvider, QuestionProvider, SolutionProvider, TopicProvider,
    PREDEFINED_TOPICS, to_challenge,
)
from fakes import FakeLLMClient


def run(coro):
    return asyncio.run(coro)


def test_single_question_response():
    client = FakeLLMClient({
        "question": "Implement bubble sort",
        "hint": "Think about nested loops",
        "questionType": "coding",
    })
    challenge = run(QuestionProvider(client).generate_challenge("Bubble Sort", "Beginner", "coding"))
    assert challenge.realized_type == "coding"
    assert challenge.coding_question == "Implement bubble sort"
    assert challenge.coding_hint == "Think about nested loops"
    assert challenge.conceptual_question is None
    assert "Topic: Bubble Sort" in client.last_prompt
    assert "preferred question type: coding" in client.last_prompt


def test_either_preference_is_sent_as_any():
    client = FakeLLMClient({
        "codingQuestion": "Reverse a list",
        "codingHint": "",
        "conceptualQuestion": "Why are lists mutable?",
        "conceptualHint": "Identity",
        "questionTypeGenerated": "both",
    })
    challenge = run(QuestionProvider(client).generate_challenge("Python Lists", "Intermediate", "either"))
    assert "preferred question type: any" in client.last_prompt
    assert challenge.realized_type == "both"
    assert challenge.views == ("coding", "conceptual")
    assert challenge.default_view == "coding"
    # Blank hints are treated as missing
    assert challenge.coding_hint is None


def test_challenge_invariant_violations():
    with pytest.raises(GenerationError):
        to_challenge({"codingQuestion": "Reverse a list", "questionTypeGenerated": "both"})
    with pytest.raises(GenerationError):
        to_challenge({
            "codingQuestion": "Reverse a list",
            "conceptualQuestion": "Why?",
            "questionTypeGenerated": "coding",
        })
    with pytest.raises(GenerationError):
        to_challenge({"conceptualHint": "x", "questionTypeGenerated": "conceptual"})


def test_malformed_generation_output_is_generation_error():
    client = FakeLLMClient({"question": "Q", "questionType": "essay"})
    with pytest.raises(GenerationError):
        run(QuestionProvider(client).generate_challenge("Lists", "Beginner", "coding"))


def test_transport_failure_is_generation_error():
    client = FakeLLMClient(RuntimeError("OpenRouter error 503: overloaded"))
    with pytest.raises(GenerationError, match="503"):
        run(QuestionProvider(client).generate_challenge("Lists", "Beginner", "coding"))


def test_question_inputs_checked_locally():
    client = FakeLLMClient()
    provider = QuestionProvider(client)
    with pytest.raises(ValidationError):
        run(provider.generate_challenge("  ", "Beginner", "coding"))
    with pytest.raises(ValidationError):
        run(provider.generate_challenge("Lists", "Expert", "coding"))
    with pytest.raises(ValidationError):
        run(provider.generate_challenge("Lists", "Beginner", "essay"))
    assert client.messages == []


def test_grade_code():
    client = FakeLLMClient({"score": 40, "passed": False, "feedback": "Incomplete"})
    result = run(GradingProvider(client).grade_code("function bubbleSort(){}", "Bubble Sort", "Beginner"))
    assert result.score == 40
    assert result.passed is False
    assert result.feedback == "Incomplete"
    assert result.view == "coding"
    assert "function bubbleSort(){}" in client.last_prompt


def test_grade_conceptual_includes_question():
    client = FakeLLMClient({"score": 85, "passed": True, "feedback": "Clear"})
    result = run(GradingProvider(client).grade_conceptual(
        "Equal keys keep their order", "What is a stable sort?", "Sorting", "Intermediate",
    ))
    assert result.view == "conceptual"
    assert result.passed is True
    assert "What is a stable sort?" in client.last_prompt
    assert "Equal keys keep their order" in client.last_prompt


def test_passed_is_taken_from_grader():
    client = FakeLLMClient({"score": 95, "passed": False, "feedback": "Missed a requirement"})
    result = run(GradingProvider(client).grade_code("x = 1", "Variables", "Beginner"))
    assert result.passed is False


@pytest.mark.parametrize("payload", [
    {"score": 140, "passed": True, "feedback": "?"},
    {"score": -1, "passed": False, "feedback": "?"},
    {"passed": True, "feedback": "no score"},
])
def test_unusable_grading_output(payload):
    client = FakeLLMClient(payload)
    with pytest.raises(GradingError):
        run(GradingProvider(client).grade_code("x = 1", "Variables", "Beginner"))


def test_solution_provider():
    client = FakeLLMClient({"solution": "def f(): pass", "explanation": "  "})
    reveal = run(SolutionProvider(client).generate_solution("Functions", "Beginner", "Write f", "coding"))
    assert reveal.solution == "def f(): pass"
    assert reveal.explanation is None
    assert reveal.view == "coding"
    assert "Question type: coding" in client.last_prompt


def test_solution_failure():
    client = FakeLLMClient(RuntimeError("OpenRouter request failed: timeout"))
    with pytest.raises(SolutionError):
        run(SolutionProvider(client).generate_solution("Functions", "Beginner", "Write f", "conceptual"))


def test_solution_requires_question():
    with pytest.raises(ValidationError):
        run(SolutionProvider(FakeLLMClient()).generate_solution("Functions", "Beginner", "", "coding"))


def test_hint_provider():
    client = FakeLLMClient({"hint": " Consider the base case. "}, {"tip": "wrong key"})
    provider = HintProvider(client)
    assert run(provider.generate_hint("Write factorial", "Recursion", "Beginner")) == "Consider the base case."
    with pytest.raises(HintError):
        run(provider.generate_hint("Write factorial", "Recursion", "Beginner"))


def test_topic_provider():
    client = FakeLLMClient({"topic": "Binary Search"})
    provider = TopicProvider(client)
    assert run(provider.suggest_topic("Intermediate")) == "Binary Search"
    assert "Intermediate level" in client.last_prompt
    assert provider.predefined_topics() == PREDEFINED_TOPICS
    assert provider.predefined_topics() is not PREDEFINED_TOPICS


def test_blank_question_is_generation_error():
    client = FakeLLMClient({"question": "   ", "hint": "h", "questionType": "coding"})
    with pytest.raises(GenerationError):
        run(QuestionProvider(client).generate_challenge("Lists", "Beginner", "coding"))


def test_blank_hint_is_hint_error():
    client = FakeLLMClient({"hint": "  \n "})
    with pytest.raises(HintError):
        run(HintProvider(client).generate_hint("Write factorial", "Recursion", "Beginner"))
