"""
FastAPI Drill API for the Opening Drill Trainer

Endpoints:
  GET /families  - List opening families
  GET /families/search?q=...  - Filter by name, ECO code or variation
  GET /families/{name}  - Family with its variations
  GET /families/{name}/tree  - Compiled book tree
  POST /sessions  - Start a practice session
  GET /sessions/{id}  - Session state
  POST /sessions/{id}/move  - Submit a player move (409 once the session has failed)
  GET /sessions/{id}/hint  - Squares holding a book move
  POST /sessions/{id}/restart  - Restart, optionally with new family/color/variation
  DELETE /sessions/{id}  - Discard a session

Run with: uvicorn api.main:app (from the trainer directory)
"""

import os
import sys
import time
import uuid
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from fastapi import FastAPI, HTTPException, Query
from pydantic import BaseModel

from book import get_book
from catalog import color_name, get_catalog, parse_color
from export import tree_to_dict
from models import OpeningFamily
from session import OPPONENT_DELAY, PracticeSession, SessionPhase

app = FastAPI(title="Opening Drill Trainer API", version="1.0.0")

SESSION_TTL = float(os.environ.get("TRAINER_SESSION_TTL", "3600"))  # seconds
MAX_SESSIONS = int(os.environ.get("TRAINER_MAX_SESSIONS", "1000"))


class SessionRequest(BaseModel):
    family: str
    color: str | None = None  # "white" / "black"; defaults to the family's color
    variation: int | None = None


class MoveRequest(BaseModel):
    move: str  # SAN ("Nf3") or UCI ("g1f3")


class RestartRequest(BaseModel):
    family: str | None = None
    color: str | None = None
    variation: int | None = None


class SessionRegistry:
    """
    Live sessions of this process, keyed by session id.

    Sessions untouched for ttl seconds are closed and dropped whenever a new
    one is created. Past max_sessions the least recently used go first.
    """

    def __init__(
        self,
        scheduler=None,
        opponent_delay: float = OPPONENT_DELAY,
        ttl: float = SESSION_TTL,
        max_sessions: int = MAX_SESSIONS,
        clock=time.monotonic,
    ):
        self.scheduler = scheduler
        self.opponent_delay = opponent_delay
        self.ttl = ttl
        self.max_sessions = max_sessions
        self.clock = clock
        self.sessions: dict[str, PracticeSession] = {}
        self.last_used: dict[str, float] = {}

    def create(self, family: OpeningFamily, color, variation_index: int | None) -> tuple[str, PracticeSession]:
        self.evict()
        session = PracticeSession(
            family,
            color,
            variation_index,
            scheduler=self.scheduler,
            opponent_delay=self.opponent_delay,
        )
        session_id = uuid.uuid4().hex
        self.sessions[session_id] = session
        self.last_used[session_id] = self.clock()
        session.start()
        return session_id, session

    def get(self, session_id: str) -> PracticeSession:
        session = self.sessions[session_id]
        self.last_used[session_id] = self.clock()
        return session

    def remove(self, session_id: str) -> None:
        session = self.sessions.pop(session_id)
        del self.last_used[session_id]
        session.close()

    def evict(self) -> int:
        """Drop expired sessions, then the oldest until there is room for one more."""
        now = self.clock()
        expired = [sid for sid, used in self.last_used.items() if now - used > self.ttl]
        by_age = sorted((sid for sid in self.last_used if sid not in expired), key=self.last_used.get)
        overflow = len(by_age) - self.max_sessions + 1
        if overflow > 0:
            expired += by_age[:overflow]
        for session_id in expired:
            self.remove(session_id)
        return len(expired)


_registry = SessionRegistry()


def get_registry() -> SessionRegistry:
    return _registry


def family_summary(family: OpeningFamily) -> dict:
    return {
        "name": family.name,
        "eco_code": family.eco_code,
        "description": family.description,
        "default_color": color_name(family.default_color),
        "variation_count": len(family.variations),
    }


def find_family(name: str) -> OpeningFamily:
    try:
        return get_catalog().find(name)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Opening family '{name}' not found")


def find_session(session_id: str) -> PracticeSession:
    try:
        return get_registry().get(session_id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Session '{session_id}' not found")


def check_variation(family: OpeningFamily, variation: int | None) -> None:
    if variation is not None and not 0 <= variation < len(family.variations):
        raise HTTPException(
            status_code=400,
            detail=f"Variation {variation} out of range for {family.name} ({len(family.variations)} variations)",
        )


def to_color(name: str | None):
    if name is None:
        return None
    try:
        return parse_color(name)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.get("/families")
def list_families():
    return [family_summary(f) for f in get_catalog().families]


@app.get("/families/search")
def search_families(q: str = Query(..., min_length=1), limit: int = Query(20, le=100)):
    """Substring search over family name, ECO code and variation names."""
    return [family_summary(f) for f in get_catalog().search(q)[:limit]]


@app.get("/families/{name}")
def get_family(name: str):
    family = find_family(name)
    out = family_summary(family)
    out["variations"] = [
        {"index": i, "name": v.name, "moves": list(v.moves), "explanation": v.explanation}
        for i, v in enumerate(family.variations)
    ]
    return out


@app.get("/families/{name}/tree")
def get_family_tree(name: str, variation: int | None = Query(None)):
    family = find_family(name)
    check_variation(family, variation)
    return tree_to_dict(get_book(family, variation))


# Session endpoints are async: sessions are only touched from the event loop thread.
@app.post("/sessions")
async def create_session(body: SessionRequest):
    family = find_family(body.family)
    check_variation(family, body.variation)
    color = to_color(body.color)
    session_id, session = get_registry().create(family, color, body.variation)
    return {"session_id": session_id, **session.snapshot()}


@app.get("/sessions/{session_id}")
async def get_session(session_id: str):
    session = find_session(session_id)
    return {"session_id": session_id, **session.snapshot()}


@app.post("/sessions/{session_id}/move")
async def submit_move(session_id: str, body: MoveRequest):
    session = find_session(session_id)
    if session.phase is SessionPhase.FAILED:
        raise HTTPException(status_code=409, detail=session.state.error)
    outcome = session.player_move(body.move)
    return {"session_id": session_id, "outcome": outcome.value, **session.snapshot()}


@app.get("/sessions/{session_id}/hint")
async def get_hint(session_id: str):
    session = find_session(session_id)
    squares = session.show_hint()
    return {
        "session_id": session_id,
        "squares": sorted(squares),
        "explanation": session.state.current_explanation,
    }


@app.post("/sessions/{session_id}/restart")
async def restart_session(session_id: str, body: RestartRequest | None = None):
    session = find_session(session_id)
    body = body or RestartRequest()
    color = to_color(body.color)

    if body.family is not None or body.variation is not None:
        family = find_family(body.family) if body.family is not None else session.family
        check_variation(family, body.variation)
        session.change_family(family, body.variation, color)
    elif color is not None:
        session.change_color(color)
    else:
        session.restart()
    return {"session_id": session_id, **session.snapshot()}


@app.delete("/sessions/{session_id}")
async def delete_session(session_id: str):
    find_session(session_id)
    get_registry().remove(session_id)
    return {"session_id": session_id, "deleted": True}


@app.get("/health")
def health():
    return {"status": "ok"}
