from __future__ import annotations
import logging
import uuid
from typing import Dict, Optional

from errors import CodeCrafterError, SessionBusyError, SessionNotFoundError, ValidationError
from models import DIFFICULTIES, SessionConfig, SessionState, normalize_preference
from providers import Providers, check_difficulty, check_preference, check_question_type

logger = logging.getLogger(__name__)

# Phase flags that disable each intent while true
_BLOCKING_FLAGS = {
    "switch_view": ("fetching_challenge", "submitting_grading", "fetching_solution", "fetching_hint"),
    "edit": ("fetching_challenge", "submitting_grading"),
    "submit": ("fetching_challenge", "submitting_grading", "fetching_solution"),
    "solution": ("fetching_challenge", "submitting_grading", "fetching_solution"),
    "hint": ("fetching_challenge", "fetching_hint"),
}


class ChallengeSession:
    """
    Challenge session state machine.

    Unconfigured -> FetchingChallenge -> ChallengeReady -> (Submitting -> Graded)*
    -> (FetchingSolution -> SolutionReady)?, with a phase-scoped error reachable from
    every provider call and config change / restart going back to FetchingChallenge.

    All state lives in one SessionState and is only mutated here. Every provider call
    captures the epoch it was issued under; a result arriving after the epoch moved on
    (config change, restart, view switch) is dropped without touching the state.
    """
    def __init__(self, session_id: str, providers: Providers):
        self.providers = providers
        self.state = SessionState(session_id=session_id)

    @property
    def session_id(self) -> str:
        return self.state.session_id

    # ---------- Selection ----------
    async def select(
        self,
        difficulty: Optional[str] = None,
        topic: Optional[str] = None,
        type_preference: Optional[str] = None,
    ) -> SessionState:
        """Apply a selection change. None leaves a field as is, "" clears it."""
        current = self.state.config
        config = SessionConfig(
            difficulty=_pick(difficulty, current.difficulty),
            topic=_pick(topic, current.topic),
            type_preference=_pick(normalize_preference(type_preference), current.type_preference),
        )
        if config.difficulty is not None:
            check_difficulty(config.difficulty)
        if config.type_preference is not None:
            check_preference(config.type_preference)
        return await self.configure(config)

    async def configure(self, config: SessionConfig) -> SessionState:
        st = self.state
        if config == st.config and (st.challenge is not None or st.fetching_challenge):
            return st

        st.config = config
        if not config.is_complete:
            self._clear()
            st.fetching_challenge = False
            logger.info("[%s] config incomplete, session unconfigured", st.session_id)
            return st

        await self._fetch_challenge()
        return st

    async def restart(self) -> SessionState:
        if not self.state.config.is_complete:
            raise ValidationError(
                "Challenge parameters not found. Please choose a difficulty, topic and question type."
            )
        logger.info("[%s] restarting challenge", self.session_id)
        await self._fetch_challenge()
        return self.state

    async def _fetch_challenge(self) -> None:
        st = self.state
        self._clear()
        st.fetching_challenge = True
        epoch, config = st.epoch, st.config
        logger.info("[%s] generating %s question for %r (%s)",
                    st.session_id, config.type_preference, config.topic, config.difficulty)

        try:
            challenge = await self.providers.questions.generate_challenge(
                config.topic, config.difficulty, config.type_preference,
            )
        except CodeCrafterError as e:
            if self._is_stale(epoch, "generation"):
                return
            st.fetching_challenge = False
            st.generation_error = (
                f'Failed to generate question(s) for "{config.topic}". '
                "Please try again or select different parameters."
            )
            logger.warning("[%s] generation failed: %s", st.session_id, e)
            return

        if self._is_stale(epoch, "generation"):
            return
        st.fetching_challenge = False
        st.challenge = challenge
        st.active_view = challenge.default_view
        logger.info("[%s] challenge ready (%s)", st.session_id, challenge.realized_type)

    # ---------- Challenge interaction ----------
    def switch_view(self, view: str) -> SessionState:
        st = self.state
        view = check_question_type(view)
        if st.challenge is None:
            raise ValidationError("There is no challenge to switch between.")
        if view not in st.challenge.views:
            raise ValidationError(f"This challenge has no {view} question.")
        if view == st.active_view:
            return st
        self._require_idle("switch_view")

        st.epoch += 1
        st.active_view = view
        st.code_draft = ""
        st.conceptual_draft = ""
        st.grading = None
        st.solution = None
        st.hint_revealed = False
        st.grading_error = st.solution_error = st.hint_error = None
        logger.info("[%s] switched to %s view", st.session_id, view)
        return st

    def update_draft(self, text: str) -> SessionState:
        st = self.state
        if st.current_question is None:
            raise ValidationError("There is no question to answer yet.")
        self._require_idle("edit")
        if st.active_view == "coding":
            st.code_draft = text or ""
        else:
            st.conceptual_draft = text or ""
        return st

    async def submit(self, text: Optional[str] = None) -> SessionState:
        st = self.state
        self._require_idle("submit")
        question = st.current_question
        if question is None:
            self._reject("grading", "Missing information to grade. Ensure a challenge has been generated.")
        if text is not None:
            self.update_draft(text)

        submission = st.draft
        if not submission.strip():
            if st.active_view == "coding":
                message = "Code editor is empty. Please write your code before submitting."
            else:
                message = "Answer field is empty. Please write your answer before submitting."
            self._reject("grading", message)

        st.submitting_grading = True
        st.grading = None
        st.solution = None
        st.grading_error = st.solution_error = None
        epoch, view, config = st.epoch, st.active_view, st.config
        logger.info("[%s] grading %s submission (%d chars)", st.session_id, view, len(submission))

        try:
            if view == "coding":
                result = await self.providers.grading.grade_code(
                    submission, config.topic, config.difficulty,
                )
            else:
                result = await self.providers.grading.grade_conceptual(
                    submission, question, config.topic, config.difficulty,
                )
        except CodeCrafterError as e:
            if self._is_stale(epoch, "grading"):
                return st
            st.submitting_grading = False
            st.grading_error = f"Failed to grade {view} challenge. Please try again."
            logger.warning("[%s] grading failed: %s", st.session_id, e)
            return st

        if self._is_stale(epoch, "grading"):
            return st
        st.submitting_grading = False
        st.grading = result
        st.attempt_count += 1
        logger.info("[%s] graded: score=%d passed=%s", st.session_id, result.score, result.passed)
        return st

    async def reveal_solution(self) -> SessionState:
        st = self.state
        self._require_idle("solution")
        question = st.current_question
        if question is None:
            self._reject("solution", "Cannot generate solution: Missing challenge details.")

        st.fetching_solution = True
        st.solution = None
        st.solution_error = None
        epoch, view, config = st.epoch, st.active_view, st.config

        try:
            reveal = await self.providers.solutions.generate_solution(
                config.topic, config.difficulty, question, view,
            )
        except CodeCrafterError as e:
            if self._is_stale(epoch, "solution"):
                return st
            st.fetching_solution = False
            st.solution_error = "Failed to generate solution. Please try again."
            logger.warning("[%s] solution failed: %s", st.session_id, e)
            return st

        if self._is_stale(epoch, "solution"):
            return st
        st.fetching_solution = False
        st.solution = reveal
        return st

    async def reveal_hint(self) -> SessionState:
        st = self.state
        question = st.current_question
        if question is None:
            self._reject("hint", "There is no question to give a hint for yet.")
        if st.current_hint:
            st.hint_revealed = True
            return st
        self._require_idle("hint")

        st.fetching_hint = True
        st.hint_error = None
        epoch, view, config = st.epoch, st.active_view, st.config

        try:
            hint = await self.providers.hints.generate_hint(question, config.topic, config.difficulty)
        except CodeCrafterError as e:
            if self._is_stale(epoch, "hint"):
                return st
            st.fetching_hint = False
            st.hint_error = "Failed to generate a hint. Please try again."
            logger.warning("[%s] hint failed: %s", st.session_id, e)
            return st

        if self._is_stale(epoch, "hint"):
            return st
        st.fetching_hint = False
        st.challenge.set_hint(view, hint)
        st.hint_revealed = True
        return st

    # ---------- Surfaces ----------
    def controls(self) -> Dict[str, bool]:
        st = self.state
        has_question = st.current_question is not None
        both = st.challenge is not None and st.challenge.realized_type == "both"
        return {
            "select": True,
            "restart": st.config.is_complete,
            "switch_view": both and self._idle("switch_view"),
            "edit": has_question and self._idle("edit"),
            "submit": has_question and self._idle("submit"),
            "hint": has_question and self._idle("hint"),
            "solution": has_question and self._idle("solution"),
        }

    # ---------- helpers ----------
    def _clear(self) -> None:
        st = self.state
        st.epoch += 1
        st.challenge = None
        st.active_view = None
        st.code_draft = ""
        st.conceptual_draft = ""
        st.grading = None
        st.solution = None
        st.hint_revealed = False
        st.attempt_count = 0
        st.submitting_grading = st.fetching_solution = st.fetching_hint = False
        st.generation_error = st.grading_error = st.solution_error = st.hint_error = None

    def _idle(self, intent: str) -> bool:
        return not any(getattr(self.state, flag) for flag in _BLOCKING_FLAGS[intent])

    def _require_idle(self, intent: str) -> None:
        busy = [flag for flag in _BLOCKING_FLAGS[intent] if getattr(self.state, flag)]
        if busy:
            raise SessionBusyError(f"Cannot {intent.replace('_', ' ')} while {', '.join(busy)}.")

    def _reject(self, phase: str, message: str) -> None:
        setattr(self.state, f"{phase}_error", message)
        raise ValidationError(message)

    def _is_stale(self, epoch: int, phase: str) -> bool:
        if epoch != self.state.epoch:
            logger.debug("[%s] dropping stale %s result (epoch %d, now %d)",
                         self.session_id, phase, epoch, self.state.epoch)
            return True
        return False


def _pick(new: Optional[str], old: Optional[str]) -> Optional[str]:
    if new is None:
        return old
    new = new.strip()
    return new or None


class ChallengeEngine:
    """
    Registry of independent challenge sessions.
    Sessions share only the stateless providers.
    """
    def __init__(self, providers: Providers):
        self.providers = providers
        self._sessions: Dict[str, ChallengeSession] = {}

    # ---------- Session lifecycle ----------
    async def start_session(
        self,
        difficulty: Optional[str] = None,
        topic: Optional[str] = None,
        type_preference: Optional[str] = None,
    ) -> ChallengeSession:
        sid = str(uuid.uuid4())
        session = ChallengeSession(sid, self.providers)
        self._sessions[sid] = session
        logger.info("[%s] session started", sid)
        if difficulty or topic or type_preference:
            try:
                await session.select(difficulty=difficulty, topic=topic, type_preference=type_preference)
            except ValidationError:
                self._sessions.pop(sid, None)
                raise
        return session

    def get_session(self, session_id: str) -> Optional[ChallengeSession]:
        return self._sessions.get(session_id)

    def require_session(self, session_id: str) -> ChallengeSession:
        session = self._sessions.get(session_id)
        if not session:
            raise SessionNotFoundError("Unknown session_id")
        return session

    def end_session(self, session_id: str) -> bool:
        return self._sessions.pop(session_id, None) is not None

    # ---------- Topics ----------
    def predefined_topics(self) -> list[str]:
        return self.providers.topics.predefined_topics()

    async def suggest_topic(self, difficulty: str) -> str:
        if difficulty not in DIFFICULTIES:
            raise ValidationError(f"Difficulty must be one of {', '.join(DIFFICULTIES)}.")
        return await self.providers.topics.suggest_topic(difficulty)
