from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .errors import LobbyError, SessionNotFound
from .events import event_store
from .game import controller
from .logger import setup_logging
from .models import PlayerIdentity
from .schemas import (
    AnswerIn,
    CreateOrJoinIn,
    JoinOut,
    PlayerActionIn,
    PublicSessionOut,
    ReadyIn,
)
from .utils import generate_connection_id


@asynccontextmanager
async def lifespan(_: FastAPI):
    setup_logging(settings)
    yield


app = FastAPI(title="quizroom API", lifespan=lifespan)

origins = [o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()]
origin_regex = settings.CORS_ORIGIN_REGEX or None

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins or ["*"],
    allow_origin_regex=origin_regex,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _http_error(exc: LobbyError) -> HTTPException:
    status = 404 if isinstance(exc, SessionNotFound) else 400
    return HTTPException(status_code=status, detail=str(exc))


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.post("/api/session", response_model=JoinOut)
async def create_or_join(payload: CreateOrJoinIn):
    identity = PlayerIdentity(id=payload.player_id, name=payload.name, avatar=payload.avatar)
    connection_id = payload.connection_id or generate_connection_id()
    try:
        snapshot = await controller.create_or_join(identity, connection_id, payload.code)
    except LobbyError as exc:
        raise _http_error(exc) from exc
    return {"connectionId": connection_id, "session": snapshot}


@app.get("/api/session/{code}", response_model=PublicSessionOut)
async def get_session(code: str):
    try:
        return await controller.snapshot(code)
    except LobbyError as exc:
        raise _http_error(exc) from exc


@app.post("/api/session/{code}/ready")
async def set_ready(code: str, payload: ReadyIn):
    try:
        ok = await controller.set_ready(code, payload.player_id, payload.is_ready)
    except LobbyError as exc:
        raise _http_error(exc) from exc
    return {"ok": ok}


@app.post("/api/session/{code}/start")
async def start(code: str, payload: PlayerActionIn):
    try:
        ok = await controller.start_game(code, payload.player_id)
    except LobbyError as exc:
        raise _http_error(exc) from exc
    return {"ok": ok}


@app.post("/api/session/{code}/answer")
async def answer(code: str, payload: AnswerIn):
    try:
        ok = await controller.submit_answer(code, payload.player_id, payload.answer)
    except LobbyError as exc:
        raise _http_error(exc) from exc
    return {"accepted": ok}


@app.post("/api/session/{code}/disconnect")
async def disconnect(code: str, payload: PlayerActionIn):
    try:
        ok = await controller.disconnect(code, payload.player_id)
    except LobbyError as exc:
        raise _http_error(exc) from exc
    return {"ok": ok}


@app.get("/api/session/{code}/events")
async def list_session_events(code: str, after: int | None = None, limit: int = 200):
    events = event_store.session_events(code.upper(), after=after, limit=limit)
    latest_seq = events[-1]["seq"] if events else after
    return {"events": events, "latest_seq": latest_seq}


@app.get("/api/connection/{connection_id}/events")
async def list_connection_events(connection_id: str, after: int | None = None, limit: int = 200):
    events = event_store.connection_events(connection_id, after=after, limit=limit)
    latest_seq = events[-1]["seq"] if events else after
    return {"events": events, "latest_seq": latest_seq}
