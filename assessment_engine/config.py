from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path

CONFIG_PATH = Path(__file__).resolve().parent.parent / "config.json"

DEFAULTS = {
    "db_path": "assessments.db",
    "default_kind": "multiple-choice",
    "default_max_points": 1,
    "show_feedback": True,
    "record_attempts": True,
    "attempt_sink": "db",
    "attempt_sink_url": "",
    "http_timeout": 10.0,
    "shuffle_seed": None,
    "leaderboard_size": 10,
}


@dataclass
class Settings:
    db_path: str = DEFAULTS["db_path"]
    default_kind: str = DEFAULTS["default_kind"]
    default_max_points: float = DEFAULTS["default_max_points"]
    show_feedback: bool = DEFAULTS["show_feedback"]
    record_attempts: bool = DEFAULTS["record_attempts"]
    attempt_sink: str = DEFAULTS["attempt_sink"]  # db | http | none
    attempt_sink_url: str = DEFAULTS["attempt_sink_url"]
    http_timeout: float = DEFAULTS["http_timeout"]
    shuffle_seed: int | None = DEFAULTS["shuffle_seed"]
    leaderboard_size: int = DEFAULTS["leaderboard_size"]

    @property
    def project_root(self) -> Path:
        return Path(__file__).resolve().parent.parent

    @property
    def db_full_path(self) -> Path:
        return self.project_root / self.db_path

    def to_dict(self) -> dict:
        return {
            "db_path": self.db_path,
            "default_kind": self.default_kind,
            "default_max_points": self.default_max_points,
            "show_feedback": self.show_feedback,
            "record_attempts": self.record_attempts,
            "attempt_sink": self.attempt_sink,
            "attempt_sink_url": self.attempt_sink_url,
            "http_timeout": self.http_timeout,
            "shuffle_seed": self.shuffle_seed,
            "leaderboard_size": self.leaderboard_size,
        }


def load_settings() -> Settings:
    if CONFIG_PATH.exists():
        raw = json.loads(CONFIG_PATH.read_text())
        known = {f.name for f in Settings.__dataclass_fields__.values()}
        filtered = {k: v for k, v in raw.items() if k in known}
        return Settings(**filtered)
    return Settings()


def save_settings(settings: Settings) -> None:
    CONFIG_PATH.write_text(json.dumps(settings.to_dict(), indent=4) + "\n")
