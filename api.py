from __future__ import annotations
from functools import lru_cache
from typing import Dict, List, Literal, Optional

from fastapi import Depends, FastAPI, HTTPException, Response
from pydantic import BaseModel, Field

from config import configure_logging, get_settings
from engine import ChallengeEngine, ChallengeSession
from errors import (
    CodeCrafterError, ProviderError, SessionBusyError, SessionNotFoundError, ValidationError,
)
from openrouter_client import OpenRouterClient
from providers import Providers

# ---------- Pydantic IO models ----------
class ConfigIn(BaseModel):
    difficulty: Optional[str] = Field(None, examples=["Beginner"])
    topic: Optional[str] = Field(None, examples=["Algorithms: Bubble Sort"])
    type_preference: Optional[str] = Field(None, examples=["coding"])

class ViewIn(BaseModel):
    view: Literal["coding", "conceptual"]

class DraftIn(BaseModel):
    text: str

class SubmitIn(BaseModel):
    text: Optional[str] = None

class SuggestTopicIn(BaseModel):
    difficulty: str = Field(..., examples=["Intermediate"])

class TopicsOut(BaseModel):
    topics: List[str]

class SuggestTopicOut(BaseModel):
    topic: str

class ConfigOut(BaseModel):
    difficulty: Optional[str] = None
    topic: Optional[str] = None
    type_preference: Optional[str] = None
    complete: bool

class ChallengeOut(BaseModel):
    realized_type: str
    active_view: Optional[str] = None
    available_views: List[str]
    question: Optional[str] = None
    # Only present once the hint was requested
    hint: Optional[str] = None

class GradingOut(BaseModel):
    score: int
    passed: bool
    feedback: str
    view: Optional[str] = None

class SolutionOut(BaseModel):
    solution: str
    explanation: Optional[str] = None
    view: Optional[str] = None

class PhasesOut(BaseModel):
    fetching_challenge: bool
    submitting_grading: bool
    fetching_solution: bool
    fetching_hint: bool

class ErrorsOut(BaseModel):
    generation: Optional[str] = None
    grading: Optional[str] = None
    solution: Optional[str] = None
    hint: Optional[str] = None

class SessionStateOut(BaseModel):
    session_id: str
    status: str
    config: ConfigOut
    challenge: Optional[ChallengeOut] = None
    draft: str
    attempt_count: int
    grading: Optional[GradingOut] = None
    solution: Optional[SolutionOut] = None
    phases: PhasesOut
    errors: ErrorsOut
    controls: Dict[str, bool]

# ---------- App ----------
app = FastAPI(title="CodeCrafter API", version="1.0.0")


@lru_cache(maxsize=1)
def get_engine() -> ChallengeEngine:
    settings = get_settings()
    configure_logging(settings.log_level)
    client = OpenRouterClient(settings=settings)
    return ChallengeEngine(Providers(client, temperature=settings.temperature))


def _http_error(e: CodeCrafterError) -> HTTPException:
    if isinstance(e, SessionNotFoundError):
        return HTTPException(status_code=404, detail="Session not found")
    if isinstance(e, SessionBusyError):
        return HTTPException(status_code=409, detail=str(e))
    if isinstance(e, ValidationError):
        return HTTPException(status_code=400, detail=str(e))
    if isinstance(e, ProviderError):
        # Upstream LLM failure (bad gateway)
        return HTTPException(status_code=502, detail=str(e))
    return HTTPException(status_code=500, detail=str(e))


def _require(engine: ChallengeEngine, session_id: str) -> ChallengeSession:
    try:
        return engine.require_session(session_id)
    except SessionNotFoundError as e:
        raise _http_error(e)


def _to_state_out(session: ChallengeSession) -> SessionStateOut:
    st = session.state
    challenge = None
    if st.challenge is not None:
        challenge = ChallengeOut(
            realized_type=st.challenge.realized_type,
            active_view=st.active_view,
            available_views=list(st.challenge.views),
            question=st.current_question,
            hint=st.current_hint if st.hint_revealed else None,
        )
    grading = None
    if st.grading is not None:
        grading = GradingOut(score=st.grading.score, passed=st.grading.passed,
                             feedback=st.grading.feedback, view=st.grading.view)
    solution = None
    if st.solution is not None:
        solution = SolutionOut(solution=st.solution.solution,
                               explanation=st.solution.explanation, view=st.solution.view)
    return SessionStateOut(
        session_id=st.session_id,
        status=st.status,
        config=ConfigOut(
            difficulty=st.config.difficulty,
            topic=st.config.topic,
            type_preference=st.config.type_preference,
            complete=st.config.is_complete,
        ),
        challenge=challenge,
        draft=st.draft,
        attempt_count=st.attempt_count,
        grading=grading,
        solution=solution,
        phases=PhasesOut(
            fetching_challenge=st.fetching_challenge,
            submitting_grading=st.submitting_grading,
            fetching_solution=st.fetching_solution,
            fetching_hint=st.fetching_hint,
        ),
        errors=ErrorsOut(
            generation=st.generation_error,
            grading=st.grading_error,
            solution=st.solution_error,
            hint=st.hint_error,
        ),
        controls=session.controls(),
    )


@app.get("/v1/codecrafter/topics", response_model=TopicsOut)
async def list_topics(engine: ChallengeEngine = Depends(get_engine)):
    return TopicsOut(topics=engine.predefined_topics())

@app.post("/v1/codecrafter/topics/suggest", response_model=SuggestTopicOut)
async def suggest_topic(payload: SuggestTopicIn, engine: ChallengeEngine = Depends(get_engine)):
    try:
        topic = await engine.suggest_topic(payload.difficulty)
    except CodeCrafterError as e:
        raise _http_error(e)
    return SuggestTopicOut(topic=topic)

@app.post("/v1/codecrafter/sessions", response_model=SessionStateOut)
async def start_session(payload: Optional[ConfigIn] = None, engine: ChallengeEngine = Depends(get_engine)):
    payload = payload or ConfigIn()
    try:
        session = await engine.start_session(
            difficulty=payload.difficulty, topic=payload.topic, type_preference=payload.type_preference,
        )
    except CodeCrafterError as e:
        raise _http_error(e)
    return _to_state_out(session)

@app.get("/v1/codecrafter/sessions/{session_id}", response_model=SessionStateOut)
async def get_state(session_id: str, engine: ChallengeEngine = Depends(get_engine)):
    return _to_state_out(_require(engine, session_id))

@app.delete("/v1/codecrafter/sessions/{session_id}", status_code=204)
async def end_session(session_id: str, engine: ChallengeEngine = Depends(get_engine)):
    if not engine.end_session(session_id):
        raise HTTPException(404, "Session not found")
    return Response(status_code=204)

@app.put("/v1/codecrafter/sessions/{session_id}/config", response_model=SessionStateOut)
async def change_config(session_id: str, payload: ConfigIn, engine: ChallengeEngine = Depends(get_engine)):
    session = _require(engine, session_id)
    try:
        await session.select(
            difficulty=payload.difficulty, topic=payload.topic, type_preference=payload.type_preference,
        )
    except CodeCrafterError as e:
        raise _http_error(e)
    return _to_state_out(session)

@app.post("/v1/codecrafter/sessions/{session_id}/restart", response_model=SessionStateOut)
async def restart(session_id: str, engine: ChallengeEngine = Depends(get_engine)):
    session = _require(engine, session_id)
    try:
        await session.restart()
    except CodeCrafterError as e:
        raise _http_error(e)
    return _to_state_out(session)

@app.post("/v1/codecrafter/sessions/{session_id}/view", response_model=SessionStateOut)
async def switch_view(session_id: str, payload: ViewIn, engine: ChallengeEngine = Depends(get_engine)):
    session = _require(engine, session_id)
    try:
        session.switch_view(payload.view)
    except CodeCrafterError as e:
        raise _http_error(e)
    return _to_state_out(session)

@app.put("/v1/codecrafter/sessions/{session_id}/draft", response_model=SessionStateOut)
async def update_draft(session_id: str, payload: DraftIn, engine: ChallengeEngine = Depends(get_engine)):
    session = _require(engine, session_id)
    try:
        session.update_draft(payload.text)
    except CodeCrafterError as e:
        raise _http_error(e)
    return _to_state_out(session)

@app.post("/v1/codecrafter/sessions/{session_id}/submit", response_model=SessionStateOut)
async def submit(session_id: str, payload: Optional[SubmitIn] = None, engine: ChallengeEngine = Depends(get_engine)):
    session = _require(engine, session_id)
    try:
        await session.submit(text=payload.text if payload else None)
    except CodeCrafterError as e:
        raise _http_error(e)
    return _to_state_out(session)

@app.post("/v1/codecrafter/sessions/{session_id}/hint", response_model=SessionStateOut)
async def reveal_hint(session_id: str, engine: ChallengeEngine = Depends(get_engine)):
    session = _require(engine, session_id)
    try:
        await session.reveal_hint()
    except CodeCrafterError as e:
        raise _http_error(e)
    return _to_state_out(session)

@app.post("/v1/codecrafter/sessions/{session_id}/solution", response_model=SessionStateOut)
async def reveal_solution(session_id: str, engine: ChallengeEngine = Depends(get_engine)):
    session = _require(engine, session_id)
    try:
        await session.reveal_solution()
    except CodeCrafterError as e:
        raise _http_error(e)
    return _to_state_out(session)
