from __future__ import annotations


class CodeCrafterError(Exception):
    """Base class for every error raised by the challenge session layer."""


class ValidationError(CodeCrafterError, ValueError):
    """Local input check failed (empty submission, unknown difficulty, ...).

    Never reaches the LLM service.
    """


class SessionBusyError(CodeCrafterError):
    """The intent is disabled while a related provider call is in flight."""


class SessionNotFoundError(CodeCrafterError, LookupError):
    pass


class ProviderError(CodeCrafterError):
    """The external AI call failed or returned unusable output.

    Transport failures and malformed model output are not distinguished.
    """

    phase = "provider"


class GenerationError(ProviderError):
    phase = "generation"


class GradingError(ProviderError):
    phase = "grading"


class SolutionError(ProviderError):
    phase = "solution"


class HintError(ProviderError):
    phase = "hint"
