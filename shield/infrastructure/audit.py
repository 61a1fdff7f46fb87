"""Append-only audit log for block / unblock decisions.

Writes newline-delimited JSON entries to `logs/audit.log`.
Thread-safe via a module-level lock (suitable for single-process workers).
"""
import json
import logging
import threading
from datetime import datetime, timezone
from pathlib import Path

_LOCK = threading.Lock()

ROOT = Path(__file__).resolve().parent.parent.parent
LOG_DIR = ROOT / "logs"
LOG_FILE = LOG_DIR / "audit.log"

logger = logging.getLogger("shield.audit")


def _ensure_dir():
    LOG_DIR.mkdir(parents=True, exist_ok=True)


def log_event(action: str, identifier: str, identifier_type: str | None = None, payload: dict | None = None) -> None:
    _ensure_dir()
    entry = {
        "ts": datetime.now(timezone.utc).isoformat(),
        "action": action,
        "identifier": identifier,
        "type": identifier_type,
        "payload": payload or {},
    }
    with _LOCK:
        with open(LOG_FILE, "a", encoding="utf-8") as f:
            f.write(json.dumps(entry, ensure_ascii=False, default=str) + "\n")


def try_log_event(action: str, identifier: str, identifier_type: str | None = None, payload: dict | None = None) -> None:
    """log_event that never raises. The audit trail must not fail a request."""
    try:
        log_event(action, identifier, identifier_type, payload)
    except OSError as exc:
        logger.error("Audit write failed for %s (%s): %s", action, identifier, exc)
