# src/stardust/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then runs one command:
- serve: the HTTP API (threaded Werkzeug server),
- export / import: JSON snapshots of the task collection.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from ..cli.bootstrap import create_initial_state, export_tasks, import_tasks
from ..config import Settings, get_settings
from ..core.errors import StardustError
from ..core.state import AppState
from ..logging_setup import setup_logging
from ..web.app import create_app

logger = logging.getLogger(__name__)


def _shutdown(state: AppState) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    # KvStore uses short-lived sqlite connections per call; close is a no-op hook.
    try:
        close = getattr(state.task_store, "close", None)
        if close is not None:
            close()
    except Exception:
        logger.debug("Task store close failed.", exc_info=True)


def cmd_serve(ns: argparse.Namespace, state: AppState) -> int:
    settings = state.settings
    host = ns.host or settings.host
    port = int(ns.port or settings.port)

    app = create_app(state)
    logger.info("Serving %s on http://%s:%s", settings.app_name, host, port)
    app.run(host=host, port=port, threaded=True, use_reloader=False)
    return 0


def cmd_export(ns: argparse.Namespace, state: AppState) -> int:
    out = Path(ns.out).expanduser().resolve()
    tasks = export_tasks(state, out)
    print(f"Exported {len(tasks)} task(s) to: {out}")
    return 0


def cmd_import(ns: argparse.Namespace, state: AppState) -> int:
    src = Path(ns.file).expanduser().resolve()
    tasks = import_tasks(state, src)
    print(f"Imported {len(tasks)} task(s) from: {src}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="stardust",
        description="Stardust: a small task-list backend (Flask + SQLite).",
    )
    p.add_argument(
        "--db",
        help="Path to the tasks SQLite DB (default: <data_dir>/tasks.sqlite3 or STARDUST_TASKS_DB_PATH)",
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    s = sub.add_parser("serve", help="Run the HTTP API.")
    s.add_argument("--host", help="Bind address (default: STARDUST_HOST or 127.0.0.1).")
    s.add_argument("--port", type=int, help="Port (default: STARDUST_PORT or 8000).")
    s.set_defaults(func=cmd_serve)

    s = sub.add_parser("export", help="Export all tasks to a JSON file.")
    s.add_argument("--out", required=True, help="Output JSON file path.")
    s.set_defaults(func=cmd_export)

    s = sub.add_parser("import", help="Replace all tasks with the contents of a JSON file.")
    s.add_argument("file", help="JSON array of tasks (e.g. from `stardust export`).")
    s.set_defaults(func=cmd_import)

    return p


def main(argv: Optional[list[str]] = None, *, settings: Settings | None = None) -> int:
    ns = build_parser().parse_args(argv)

    if settings is None:
        settings = get_settings()
    if ns.db:
        settings = settings.with_overrides(tasks_db_path=Path(ns.db).expanduser().resolve())

    level_name = str(settings.log_level).upper()
    console_level = getattr(logging, level_name, logging.INFO)
    setup_logging(log_dir=settings.data_dir, console_level=console_level)

    logger.info("Starting %s (%s)...", settings.app_name, ns.cmd)
    state = create_initial_state(settings=settings)

    try:
        return int(ns.func(ns, state))
    except StardustError as exc:
        logger.error("%s failed: %s", ns.cmd, exc.message)
        print(f"Error: {exc.message}", file=sys.stderr)
        return 1
    finally:
        _shutdown(state)
        logger.info("Bye.")


if __name__ == "__main__":
    sys.exit(main())
