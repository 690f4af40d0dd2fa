"""FastAPI application: item storage, grading and attempt statistics."""
from __future__ import annotations

import asyncio
import logging
import math
import random

logging.basicConfig(level=logging.INFO, format="%(name)s | %(message)s")

from fastapi import FastAPI, HTTPException, Request

from assessment_engine.config import Settings, load_settings, save_settings
from assessment_engine.db import Database
from assessment_engine.item_model import FIXED_KINDS, MINIMUMS, create_default, validate
from assessment_engine.models import ALL_KINDS, EXERCISE_KINDS, QUIZ_KINDS, AttemptResult, Item
from assessment_engine.session import AttemptSession
from assessment_engine.stores.base import AttemptSink
from assessment_engine.stores.http_sink import HttpAttemptSink

app = FastAPI(title="Assessment Engine")

_log = logging.getLogger("assessment_engine.api")

# Global state (initialized in startup)
_db: Database | None = None
_settings: Settings | None = None


def get_db() -> Database:
    assert _db is not None
    return _db


def get_settings() -> Settings:
    assert _settings is not None
    return _settings


def _get_sink() -> AttemptSink | None:
    s = get_settings()
    if not s.record_attempts or s.attempt_sink == "none":
        return None
    if s.attempt_sink == "db":
        return get_db()
    if s.attempt_sink == "http":
        return HttpAttemptSink(s.attempt_sink_url, timeout=s.http_timeout)
    raise ValueError(f"Unknown attempt sink: {s.attempt_sink}")


def _load_or_404(item_id: str) -> Item:
    item = get_db().load_item(item_id)
    if item is None:
        raise HTTPException(404, "Item not found")
    return item


def _parse_item(body: dict) -> Item:
    try:
        return Item.from_dict(body)
    except (ValueError, TypeError, AttributeError) as e:
        raise HTTPException(400, f"Malformed item: {e}")


@app.on_event("startup")
async def startup():
    global _db, _settings
    if _db is not None:
        return  # Already initialized (e.g. by tests)
    _settings = load_settings()
    _db = Database(_settings.db_full_path)
    _log.info("Using database %s", _settings.db_full_path)


@app.on_event("shutdown")
async def shutdown():
    if _db:
        _db.close()


# ── API: Kinds ────────────────────────────────────────────────────────────

@app.get("/api/kinds")
async def api_kinds():
    def describe(kind: str) -> dict:
        return {"kind": kind, "minimums": MINIMUMS[kind], "fixed": kind in FIXED_KINDS}

    return {
        "quiz": [describe(k) for k in QUIZ_KINDS],
        "exercise": [describe(k) for k in EXERCISE_KINDS],
    }


# ── API: Items ────────────────────────────────────────────────────────────

@app.get("/api/items")
async def api_list_items(kind: str | None = None):
    return get_db().list_items(kind)


@app.post("/api/items")
async def api_create_item(request: Request):
    body = await request.json() if await request.body() else {}
    s = get_settings()
    if any(k in body for k in ("options", "items", "dragItems", "leftItems")):
        item = _parse_item(body)
    else:
        kind = body.get("kind", s.default_kind)
        if kind not in ALL_KINDS:
            raise HTTPException(400, f"Unknown kind: {kind}")
        item = create_default(kind, max_points=body.get("maxPoints", s.default_max_points))
        if body.get("prompt"):
            item.prompt = body["prompt"]
    problems = validate(item)
    if problems:
        raise HTTPException(400, {"problems": problems})
    get_db().save_item(item)
    _log.info("Created %s item %s", item.kind, item.id)
    return item.to_dict()


@app.get("/api/items/{item_id}")
async def api_get_item(item_id: str):
    return _load_or_404(item_id).to_dict()


@app.put("/api/items/{item_id}")
async def api_update_item(item_id: str, request: Request):
    _load_or_404(item_id)
    body = await request.json()
    body["id"] = item_id
    item = _parse_item(body)
    problems = validate(item)
    if problems:
        raise HTTPException(400, {"problems": problems})
    get_db().save_item(item)
    return item.to_dict()


@app.delete("/api/items/{item_id}")
async def api_delete_item(item_id: str):
    if not get_db().delete_item(item_id):
        raise HTTPException(404, "Item not found")
    return {"deleted": item_id}


# ── API: Grading ──────────────────────────────────────────────────────────

@app.post("/api/items/{item_id}/grade")
async def api_grade(item_id: str, request: Request):
    item = _load_or_404(item_id)
    body = await request.json()
    selections = body.get("selections", {})
    if not isinstance(selections, dict):
        raise HTTPException(400, "Field 'selections' must be an object")
    s = get_settings()

    session = AttemptSession(
        item,
        show_feedback=s.show_feedback,
        rng=random.Random(s.shuffle_seed) if s.shuffle_seed is not None else None,
        sink=_get_sink(),
        user_id=body.get("user_id"),
        lesson_id=body.get("lesson_id"),
    )
    try:
        session.apply_selections(selections)
    except (AttributeError, TypeError) as e:
        raise HTTPException(400, f"Malformed selections: {e}")
    # The sink may block on network I/O
    outcome = await asyncio.to_thread(session.submit, body.get("time_spent"))
    if not outcome.ok:
        raise HTTPException(400, str(outcome.error))

    grade = outcome.grade
    return {
        "item_id": item.id,
        "score": grade.earned,
        "max_score": grade.max_points,
        "correct_count": grade.correct_count,
        "total_units": grade.total_units,
        "feedback": [f.to_dict() for f in grade.feedback],
        "explanation": item.explanation if s.show_feedback else None,
        "warnings": [str(w) for w in outcome.warnings],
        "time_spent": outcome.result.time_spent,
    }


# ── API: Attempts & statistics ────────────────────────────────────────────

REQUIRED_ATTEMPT_FIELDS = ("item_id", "user_id", "score", "max_score", "selections", "total_units")


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@app.post("/api/attempts")
async def api_record_attempt(request: Request):
    body = await request.json()
    for name in REQUIRED_ATTEMPT_FIELDS:
        if body.get(name) is None:
            raise HTTPException(400, f"Field '{name}' is required")
    for name in ("score", "max_score", "total_units"):
        if not _is_number(body[name]):
            raise HTTPException(400, f"Field '{name}' must be a number")
    if not isinstance(body["selections"], dict):
        raise HTTPException(400, "Field 'selections' must be an object")
    if body["max_score"] <= 0:
        raise HTTPException(400, "Field 'max_score' must be positive")

    if body.get("correct_count") is None:
        ratio = body["score"] / body["max_score"]
        body["correct_count"] = math.floor(ratio * body["total_units"] + 0.5)

    try:
        result = AttemptResult.from_dict(body)
    except TypeError as e:
        raise HTTPException(400, f"Malformed attempt: {e}")
    get_db().record_attempt(result)
    return {"success": True, "data": result.to_dict()}


@app.get("/api/attempts")
async def api_list_attempts(
    user_id: str | None = None,
    item_id: str | None = None,
    lesson_id: str | None = None,
    limit: int = 10,
):
    return get_db().list_attempts(user_id=user_id, item_id=item_id, lesson_id=lesson_id, limit=limit)


@app.get("/api/items/{item_id}/statistics")
async def api_item_statistics(item_id: str):
    _load_or_404(item_id)
    return get_db().get_item_statistics(item_id)


@app.get("/api/items/{item_id}/leaderboard")
async def api_item_leaderboard(item_id: str, limit: int | None = None):
    _load_or_404(item_id)
    return get_db().get_leaderboard(item_id, limit or get_settings().leaderboard_size)


@app.get("/api/stats")
async def api_stats():
    return get_db().get_stats()


# ── API: Settings ─────────────────────────────────────────────────────────

@app.get("/api/settings")
async def api_get_settings():
    return get_settings().to_dict()


@app.put("/api/settings")
async def api_update_settings(request: Request):
    body = await request.json()
    s = get_settings()
    known = {f.name for f in Settings.__dataclass_fields__.values()}
    for k, v in body.items():
        if k in known:
            setattr(s, k, v)
    save_settings(s)
    return s.to_dict()
