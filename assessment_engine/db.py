from __future__ import annotations

import json
import sqlite3
from datetime import datetime, timezone
from pathlib import Path

from assessment_engine.models import AttemptResult, Item
from assessment_engine.stores.base import AttemptSink, ItemStore

SCHEMA = """
CREATE TABLE IF NOT EXISTS items (
    id TEXT PRIMARY KEY,
    kind TEXT NOT NULL,
    prompt TEXT,
    title TEXT,
    max_points REAL NOT NULL DEFAULT 1,
    payload_json TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS attempts (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    item_id TEXT NOT NULL,
    user_id TEXT,
    lesson_id TEXT,
    score REAL NOT NULL,
    max_score REAL NOT NULL,
    correct_count INTEGER NOT NULL DEFAULT 0,
    total_units INTEGER NOT NULL DEFAULT 1,
    selections_json TEXT NOT NULL DEFAULT '{}',
    time_spent REAL,
    submitted_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_attempts_item ON attempts(item_id);
CREATE INDEX IF NOT EXISTS idx_attempts_user ON attempts(user_id);
"""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class Database(ItemStore, AttemptSink):
    def __init__(self, db_path: Path):
        self.db_path = db_path
        self.conn = sqlite3.connect(str(db_path), check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA journal_mode=WAL")
        self._init_schema()

    def _init_schema(self) -> None:
        self.conn.executescript(SCHEMA)
        self.conn.commit()

    def close(self) -> None:
        self.conn.close()

    # ── Items ─────────────────────────────────────────────────────────────

    def save_item(self, item: Item) -> str:
        now = _now()
        self.conn.execute(
            "INSERT INTO items (id, kind, prompt, title, max_points, payload_json, created_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?) "
            "ON CONFLICT(id) DO UPDATE SET kind=excluded.kind, prompt=excluded.prompt, "
            "title=excluded.title, max_points=excluded.max_points, "
            "payload_json=excluded.payload_json, updated_at=excluded.updated_at",
            (
                item.id,
                item.kind,
                item.prompt,
                item.title,
                item.max_points,
                json.dumps(item.to_dict()),
                now,
                now,
            ),
        )
        self.conn.commit()
        return item.id

    def load_item(self, item_id: str) -> Item | None:
        row = self.conn.execute(
            "SELECT payload_json FROM items WHERE id = ?", (item_id,)
        ).fetchone()
        return Item.from_dict(json.loads(row[0])) if row else None

    def list_items(self, kind: str | None = None) -> list[dict]:
        """Item summaries, most recently updated first."""
        sql = "SELECT id, kind, prompt, title, max_points, created_at, updated_at FROM items"
        params: tuple = ()
        if kind:
            sql += " WHERE kind = ?"
            params = (kind,)
        rows = self.conn.execute(sql + " ORDER BY updated_at DESC", params).fetchall()
        return [dict(r) for r in rows]

    def get_item_count(self) -> int:
        row = self.conn.execute("SELECT COUNT(*) FROM items").fetchone()
        return row[0]

    def delete_item(self, item_id: str) -> bool:
        """Delete an item and its attempts.  Returns False if it did not exist."""
        cur = self.conn.execute("DELETE FROM items WHERE id = ?", (item_id,))
        self.conn.execute("DELETE FROM attempts WHERE item_id = ?", (item_id,))
        self.conn.commit()
        return cur.rowcount > 0

    # ── Attempts ──────────────────────────────────────────────────────────

    def record_attempt(self, result: AttemptResult) -> None:
        self.conn.execute(
            "INSERT INTO attempts (item_id, user_id, lesson_id, score, max_score, "
            "correct_count, total_units, selections_json, time_spent, submitted_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                result.item_id,
                result.user_id,
                result.lesson_id,
                result.score,
                result.max_score,
                result.correct_count,
                result.total_units,
                json.dumps(result.selections),
                result.time_spent,
                result.submitted_at or _now(),
            ),
        )
        self.conn.commit()

    def list_attempts(
        self,
        user_id: str | None = None,
        item_id: str | None = None,
        lesson_id: str | None = None,
        limit: int = 10,
    ) -> list[dict]:
        """Recorded attempts, newest first, optionally filtered."""
        clauses = []
        params: list = []
        for column, value in (("user_id", user_id), ("item_id", item_id), ("lesson_id", lesson_id)):
            if value is not None:
                clauses.append(f"{column} = ?")
                params.append(value)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        rows = self.conn.execute(
            f"SELECT * FROM attempts {where} ORDER BY submitted_at DESC, id DESC LIMIT ?",
            (*params, limit),
        ).fetchall()
        attempts = []
        for r in rows:
            d = dict(r)
            d["selections"] = json.loads(d.pop("selections_json") or "{}")
            attempts.append(d)
        return attempts

    def get_item_statistics(self, item_id: str) -> dict:
        row = self.conn.execute("""
            SELECT COUNT(*) AS attempts,
                   COUNT(DISTINCT user_id) AS users,
                   AVG(score) AS average_score,
                   MAX(score) AS best_score,
                   AVG(score * 100.0 / max_score) AS average_percent,
                   SUM(CASE WHEN score >= max_score THEN 1 ELSE 0 END) AS perfect
            FROM attempts WHERE item_id = ?
        """, (item_id,)).fetchone()
        return {
            "item_id": item_id,
            "attempts": row["attempts"],
            "users": row["users"],
            "average_score": round(row["average_score"] or 0, 2),
            "best_score": row["best_score"] or 0,
            "average_percent": round(row["average_percent"] or 0, 1),
            "perfect": row["perfect"] or 0,
        }

    def get_leaderboard(self, item_id: str, limit: int = 10) -> list[dict]:
        """Best score per user for an item, highest first; ties go to the earliest."""
        rows = self.conn.execute("""
            SELECT user_id, MAX(score) AS best_score, max_score,
                   COUNT(*) AS attempts, MIN(submitted_at) AS first_attempt
            FROM attempts
            WHERE item_id = ? AND user_id IS NOT NULL
            GROUP BY user_id
            ORDER BY best_score DESC, first_attempt ASC
            LIMIT ?
        """, (item_id, limit)).fetchall()
        return [dict(r) for r in rows]

    # ── Stats ─────────────────────────────────────────────────────────────

    def get_stats(self) -> dict:
        totals = self.conn.execute("""
            SELECT COUNT(*) AS total_attempts,
                   COUNT(DISTINCT user_id) AS total_users,
                   SUM(score) AS earned,
                   SUM(max_score) AS possible
            FROM attempts
        """).fetchone()
        by_kind = self.conn.execute(
            "SELECT kind, COUNT(*) AS n FROM items GROUP BY kind ORDER BY kind"
        ).fetchall()
        possible = totals["possible"] or 0
        return {
            "total_items": self.get_item_count(),
            "items_by_kind": {r["kind"]: r["n"] for r in by_kind},
            "total_attempts": totals["total_attempts"],
            "total_users": totals["total_users"],
            "score_rate": round((totals["earned"] or 0) / possible * 100, 1) if possible else 0,
        }
