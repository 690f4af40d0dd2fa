"""CLI entry point for assessment-engine.

Usage:
  python -m assessment_engine serve [--port PORT] [--host HOST]
  python -m assessment_engine stop
  python -m assessment_engine restart [--port PORT]
  python -m assessment_engine status
  python -m assessment_engine new KIND [--out FILE]
  python -m assessment_engine validate FILE
  python -m assessment_engine grade ITEM_FILE SELECTIONS_FILE
  python -m assessment_engine import FILE
  python -m assessment_engine export ITEM_ID [--out FILE]
  python -m assessment_engine stats
"""
from __future__ import annotations

import json
import os
import signal
import sys
from pathlib import Path

PID_FILE = Path(__file__).resolve().parent.parent / ".server.pid"
DEFAULT_PORT = 8770
SHUTDOWN_GRACE = 5

COMMANDS = ("serve", "stop", "restart", "status", "new", "validate", "grade", "import", "export", "stats")


def main(argv: list[str] | None = None):
    args = sys.argv[1:] if argv is None else argv
    command = args[0] if args else "serve"

    if command == "serve":
        _serve(args[1:])
    elif command == "stop":
        _stop()
    elif command == "restart":
        _restart(args[1:])
    elif command == "status":
        _status()
    elif command == "new":
        _new(args[1:])
    elif command == "validate":
        _validate(args[1:])
    elif command == "grade":
        _grade(args[1:])
    elif command == "import":
        _import(args[1:])
    elif command == "export":
        _export(args[1:])
    elif command == "stats":
        _stats()
    else:
        print(f"Unknown command: {command}")
        print(f"Commands: {', '.join(COMMANDS)}")
        sys.exit(1)


def _parse_flag(args: list[str], name: str, default: str | None) -> str | None:
    for i, a in enumerate(args):
        if a == name and i + 1 < len(args):
            return args[i + 1]
    return default


def _positional(args: list[str], count: int, usage: str) -> list[str]:
    values = []
    skip = False
    for a in args:
        if skip:
            skip = False
            continue
        if a.startswith("--"):
            skip = True
            continue
        values.append(a)
    if len(values) < count:
        print(f"Usage: python -m assessment_engine {usage}")
        sys.exit(1)
    return values[:count]


def _read_json(path: str) -> dict:
    p = Path(path)
    if not p.exists():
        print(f"File not found: {p}")
        sys.exit(1)
    return json.loads(p.read_text())


def _write_output(data: dict, out: str | None) -> None:
    text = json.dumps(data, indent=2, ensure_ascii=False)
    if out:
        Path(out).write_text(text + "\n")
        print(f"Wrote {out}")
    else:
        print(text)


# ── Server ────────────────────────────────────────────────────────────────

def _server_pid() -> int | None:
    """PID of the recorded server if that process is still alive.

    A PID file left behind by a crashed server is deleted.
    """
    try:
        pid = int(PID_FILE.read_text().strip())
    except (FileNotFoundError, ValueError):
        PID_FILE.unlink(missing_ok=True)
        return None
    try:
        os.kill(pid, 0)
    except (ProcessLookupError, PermissionError):
        PID_FILE.unlink(missing_ok=True)
        return None
    return pid


def _stop() -> bool:
    pid = _server_pid()
    if pid is None:
        print("No assessment server is running.")
        return False
    PID_FILE.unlink(missing_ok=True)
    try:
        os.kill(pid, signal.SIGTERM)
    except ProcessLookupError:
        print(f"Server PID {pid} had already exited.")
        return False
    print(f"Sent SIGTERM to assessment server (PID {pid}).")
    return True


def _status():
    pid = _server_pid()
    print("No assessment server is running." if pid is None else f"Assessment server running, PID {pid}.")


def _restart(args: list[str]):
    import time

    if _stop():
        # Wait out uvicorn's graceful shutdown
        time.sleep(SHUTDOWN_GRACE)
    _serve(args)


def _serve(args: list[str]):
    import uvicorn

    running = _server_pid()
    if running is not None:
        print(f"An assessment server is already running (PID {running}); stop it first.")
        sys.exit(1)

    host = _parse_flag(args, "--host", "127.0.0.1")
    port = int(_parse_flag(args, "--port", str(DEFAULT_PORT)))
    PID_FILE.write_text(f"{os.getpid()}\n")
    print(f"Assessment Engine listening on http://{host}:{port}  (Ctrl+C to quit)")
    try:
        uvicorn.run("assessment_engine.app:app", host=host, port=port, timeout_graceful_shutdown=SHUTDOWN_GRACE)
    finally:
        PID_FILE.unlink(missing_ok=True)


# ── Items ─────────────────────────────────────────────────────────────────

def _new(args: list[str]):
    from assessment_engine.config import load_settings
    from assessment_engine.item_model import create_default
    from assessment_engine.models import ALL_KINDS

    (kind,) = _positional(args, 1, "new KIND [--out FILE]")
    if kind not in ALL_KINDS:
        print(f"Unknown kind: {kind}")
        print(f"Kinds: {', '.join(ALL_KINDS)}")
        sys.exit(1)
    item = create_default(kind, max_points=load_settings().default_max_points)
    _write_output(item.to_dict(), _parse_flag(args, "--out", None))


def _validate(args: list[str]):
    from assessment_engine.item_model import validate
    from assessment_engine.models import Item

    (path,) = _positional(args, 1, "validate FILE")
    item = Item.from_dict(_read_json(path))
    problems = validate(item)
    if problems:
        print(f"{path}: {len(problems)} problem(s)")
        for p in problems:
            print(f"  - {p}")
        sys.exit(1)
    print(f"{path}: valid {item.kind} item")


def _grade(args: list[str]):
    from assessment_engine.models import Item
    from assessment_engine.session import AttemptSession

    item_path, selections_path = _positional(args, 2, "grade ITEM_FILE SELECTIONS_FILE")
    item = Item.from_dict(_read_json(item_path))
    session = AttemptSession(item)
    session.apply_selections(_read_json(selections_path))
    outcome = session.submit()
    if not outcome.ok:
        print(f"Cannot grade: {outcome.error}")
        sys.exit(1)
    g = outcome.grade
    print(f"Score: {g.earned}/{g.max_points}  ({g.correct_count}/{g.total_units} correct)")
    for f in g.feedback:
        line = f"  [{f.status:9s}] {f.unit_id}"
        if f.expected is not None:
            line += f"  expected={f.expected!r} given={f.given!r}"
        print(line)
    if item.explanation:
        print(f"\n{item.explanation}")


def _import(args: list[str]):
    from assessment_engine.config import load_settings
    from assessment_engine.db import Database
    from assessment_engine.item_model import validate
    from assessment_engine.models import Item

    (path,) = _positional(args, 1, "import FILE")
    raw = _read_json(path)
    entries = raw if isinstance(raw, list) else [raw]

    settings = load_settings()
    db = Database(settings.db_full_path)
    imported = 0
    for entry in entries:
        item = Item.from_dict(entry)
        problems = validate(item)
        if problems:
            print(f"  Skipping {item.id} ({item.kind}): {'; '.join(problems)}")
            continue
        db.save_item(item)
        imported += 1
    print(f"Imported {imported}/{len(entries)} items. Total in DB: {db.get_item_count()}")
    db.close()


def _export(args: list[str]):
    from assessment_engine.config import load_settings
    from assessment_engine.db import Database

    (item_id,) = _positional(args, 1, "export ITEM_ID [--out FILE]")
    db = Database(load_settings().db_full_path)
    item = db.load_item(item_id)
    db.close()
    if item is None:
        print(f"No item with id {item_id}")
        sys.exit(1)
    _write_output(item.to_dict(), _parse_flag(args, "--out", None))


def _stats():
    from assessment_engine.config import load_settings
    from assessment_engine.db import Database

    db = Database(load_settings().db_full_path)
    stats = db.get_stats()

    print("Assessment Engine Stats")
    print("=" * 40)
    print(f"Items:              {stats['total_items']}")
    for kind, n in stats["items_by_kind"].items():
        print(f"  {kind:18s}{n}")
    print(f"Attempts recorded:  {stats['total_attempts']}")
    print(f"Learners:           {stats['total_users']}")
    print(f"Score rate:         {stats['score_rate']}%")
    db.close()


if __name__ == "__main__":
    main()
