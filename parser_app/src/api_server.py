"""
FastAPI server for the FitLog Parser App
Provides endpoints for parsing spoken descriptions, asking history questions,
listing templates and downloading a backup
"""

import logging
import threading
from datetime import datetime
from collections import OrderedDict
from typing import List, Optional, Tuple
from uuid import uuid4

from fastapi import Depends, FastAPI, HTTPException, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from shared.database import test_connection
from shared.domain import MealSession, WorkoutSession

from parser_app.config.settings import settings
from parser_app.agents import template_matcher
from parser_app.agents.batch import BatchSaveResult, save_meals, save_workouts
from parser_app.agents.chat_session import HistoryChat, MealHistoryChat, WorkoutHistoryChat
from parser_app.agents.errors import (
    ConfigurationError,
    FitLogError,
    MalformedResponseError,
    RateLimitedError,
    RecordValidationError,
    ServiceError,
    TransportError,
)
from parser_app.src.backup import BackupDocument, InvalidBackupError, export_backup
from parser_app.src.container import Components, build_components


logger = logging.getLogger(__name__)


# Pydantic models for API requests/responses
class ParseRequest(BaseModel):
    text: str
    save: bool = False
    shared_date: Optional[datetime] = None


class SaveSummary(BaseModel):
    saved: int
    failed: int
    message: str

    @classmethod
    def from_result(cls, result: BatchSaveResult) -> "SaveSummary":
        return cls(saved=len(result.saved), failed=len(result.failed), message=result.message)


class WorkoutParseResponse(BaseModel):
    workouts: List[WorkoutSession]
    save: Optional[SaveSummary] = None


class MealParseResponse(BaseModel):
    meals: List[MealSession]
    save: Optional[SaveSummary] = None


class QueryRequest(BaseModel):
    question: str
    session_id: Optional[str] = None


class QueryResponse(BaseModel):
    session_id: str
    answer: str


# FastAPI app
app = FastAPI(
    title="FitLog Parser API",
    description="Turn spoken workout and meal descriptions into structured records",
    version=settings.version,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --------- Error mapping ---------

_STATUS_BY_ERROR = [
    (RecordValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (InvalidBackupError, status.HTTP_400_BAD_REQUEST),
    (ConfigurationError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (RateLimitedError, status.HTTP_429_TOO_MANY_REQUESTS),
    (TransportError, status.HTTP_504_GATEWAY_TIMEOUT),
    (MalformedResponseError, status.HTTP_502_BAD_GATEWAY),
    (ServiceError, status.HTTP_502_BAD_GATEWAY),
]


def status_for(error: FitLogError) -> int:
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


@app.exception_handler(FitLogError)
async def fitlog_error_handler(request: Request, exc: FitLogError):
    code = status_for(exc)
    logger.warning(f"⚠️ {request.method} {request.url.path} -> {code} {type(exc).__name__}: {exc.message}")
    return JSONResponse(
        status_code=code,
        content={"error": type(exc).__name__, "message": exc.message, "retryable": exc.retryable},
    )


# --------- Components and chat sessions ---------

_components: Optional[Components] = None
_components_lock = threading.Lock()


def get_components() -> Components:
    global _components
    with _components_lock:
        if _components is None:
            _components = build_components()
        return _components


class ChatSessions:
    """History chats keyed by (kind, session id), least recently used evicted first"""

    def __init__(self, max_sessions: int | None = None):
        self.max_sessions = max_sessions or settings.max_chat_sessions
        self._chats: "OrderedDict[Tuple[str, str], HistoryChat]" = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._chats)

    def get(self, kind: str, session_id: str, components: Components) -> HistoryChat:
        with self._lock:
            chat = self._chats.get((kind, session_id))
            if chat is None:
                factory, repository = (
                    (MealHistoryChat, components.meals) if kind == "meals" else (WorkoutHistoryChat, components.workouts)
                )
                chat = factory(components.service, repository, window=components.settings.conversation_window)
                self._chats[(kind, session_id)] = chat
                while len(self._chats) > self.max_sessions:
                    (old_kind, old_id), _ = self._chats.popitem(last=False)
                    logger.info(f"🧹 Evicted chat session {old_kind}/{old_id}")
            else:
                self._chats.move_to_end((kind, session_id))
            return chat

    def drop(self, session_id: str) -> int:
        with self._lock:
            keys = [key for key in self._chats if key[1] == session_id]
            for key in keys:
                del self._chats[key]
            return len(keys)

    def clear(self) -> None:
        with self._lock:
            self._chats.clear()


sessions = ChatSessions()


def _ask(kind: str, request: QueryRequest, components: Components) -> QueryResponse:
    session_id = request.session_id or uuid4().hex
    chat = sessions.get(kind, session_id, components)
    reply = chat.ask(request.question)
    if reply is None:
        raise RecordValidationError("Please enter a question", field="question")
    if chat.last_error is not None:
        raise chat.last_error
    return QueryResponse(session_id=session_id, answer=reply.content)


# --------- Endpoints ---------

@app.get("/")
async def root():
    """Root endpoint with API information"""
    return {
        "service": "FitLog Parser API",
        "version": settings.version,
        "status": "running",
    }


@app.get("/health")
def health_check(components: Components = Depends(get_components)):
    """Health check endpoint"""
    if not test_connection(components.engine):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Health check failed: database unavailable",
        )
    return {
        "status": "healthy",
        "timestamp": datetime.now().isoformat(),
        "database": "connected",
        "llm_configured": bool(components.credentials.get_api_key()),
    }


@app.post("/workouts/parse", response_model=WorkoutParseResponse)
def parse_workouts(request: ParseRequest, components: Components = Depends(get_components)):
    """Parse a workout description; optionally save the result"""
    workouts = components.service.log_workouts(request.text, components.workouts)
    summary = None
    if request.save and workouts:
        summary = SaveSummary.from_result(save_workouts(components.workouts, workouts, request.shared_date))
    return WorkoutParseResponse(workouts=workouts, save=summary)


@app.post("/meals/parse", response_model=MealParseResponse)
def parse_meals(request: ParseRequest, components: Components = Depends(get_components)):
    """Parse a meal description; optionally save the result"""
    meals = components.service.log_meals(request.text, components.meals)
    summary = None
    if request.save and meals:
        summary = SaveSummary.from_result(save_meals(components.meals, meals, request.shared_date))
    return MealParseResponse(meals=meals, save=summary)


@app.post("/workouts/query", response_model=QueryResponse)
def query_workouts(request: QueryRequest, components: Components = Depends(get_components)):
    return _ask("workouts", request, components)


@app.post("/meals/query", response_model=QueryResponse)
def query_meals(request: QueryRequest, components: Components = Depends(get_components)):
    return _ask("meals", request, components)


@app.delete("/sessions/{session_id}")
async def delete_session(session_id: str):
    """Forget a chat session's conversation"""
    if not sessions.drop(session_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found")
    return {"message": "Session cleared", "session_id": session_id}


@app.get("/templates/workouts", response_model=List[WorkoutSession])
def workout_templates(
    match: Optional[str] = Query(None, description="Only templates referenced by this text"),
    components: Components = Depends(get_components),
):
    found = components.workouts.fetch_templates()
    return template_matcher.match(found, match) if match is not None else found


@app.get("/templates/meals", response_model=List[MealSession])
def meal_templates(
    match: Optional[str] = Query(None, description="Only templates referenced by this text"),
    components: Components = Depends(get_components),
):
    found = components.meals.fetch_templates()
    return template_matcher.match(found, match) if match is not None else found


@app.get("/backup", response_model=BackupDocument)
def download_backup(components: Components = Depends(get_components)):
    """Every workout and meal, templates included"""
    return export_backup(components.workouts, components.meals)
