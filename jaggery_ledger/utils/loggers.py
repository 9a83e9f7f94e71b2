"""
utils/loggers.py

Purpose
-------
Console logging for the app plus an append-only, JSON-lines event log for
ledger mutations (lots, payments, pick lines, packing, settings).

Public API
----------
- get_logger(name) -> logging.Logger
- get_ledger_logger(file_path=None, level=INFO) -> logging.Logger
- log_event(logger, op, phase, message, extra: dict = {})
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional

from ..config import LOG_DIR
from ..constants import LEDGER_LOG_FILE

__all__ = ["get_logger", "get_ledger_logger", "log_event"]

_LEDGER_LOGGER_NAME = "ledger"


def get_logger(name="jaggery_ledger"):
    logger = logging.getLogger(name)
    if not logger.handlers:
        logger.setLevel(logging.INFO)
        ch = logging.StreamHandler()
        ch.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s"))
        logger.addHandler(ch)
    return logger


def get_ledger_logger(file_path: Optional[str] = None, level: int = logging.INFO) -> logging.Logger:
    """
    Return the `ledger` logger writing JSON-lines to logs/ledger.log by default.
    Reuses the same logger (no duplicate handlers) across calls.

    Args:
        file_path: Optional custom path to the log file.
        level: Logging level (default INFO).
    """
    logger = logging.getLogger(_LEDGER_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    if logger.handlers:
        return logger

    log_file = Path(file_path) if file_path else LOG_DIR / LEDGER_LOG_FILE
    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(str(log_file), mode="a", encoding="utf-8", delay=True)
    except OSError:
        # read-only install location: stderr only
        sh = logging.StreamHandler()
        sh.setLevel(level)
        sh.setFormatter(_JsonLineFormatter())
        logger.addHandler(sh)
        return logger

    fh.setLevel(level)
    fh.setFormatter(_JsonLineFormatter())
    logger.addHandler(fh)

    # Mirror WARNING+ to stderr
    sh = logging.StreamHandler()
    sh.setLevel(logging.WARNING)
    sh.setFormatter(_JsonLineFormatter())
    logger.addHandler(sh)

    return logger


class _JsonLineFormatter(logging.Formatter):
    """
    Minimal JSON-lines formatter:
      {"ts":"2025-09-16T12:00:01.123Z","level":"INFO","name":"ledger","msg":"...","extra":{...}}
    """
    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload = {
            "ts": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z",
            "level": record.levelname,
            "name": record.name,
            "msg": record.getMessage(),
        }
        if hasattr(record, "extra_payload") and isinstance(record.extra_payload, dict):
            payload["extra"] = record.extra_payload
        return json.dumps(payload, ensure_ascii=False, default=str)


def log_event(
    logger: logging.Logger,
    op: str,
    phase: str,
    message: str,
    extra: Dict[str, object] | None = None,
    level: int = logging.INFO,
) -> None:
    """
    Log a structured ledger event.

    Args:
        logger: Any logger; the JSON formatter picks up the payload when attached.
        op: Operation name, e.g. "lot", "packing", "purchase_payment".
        phase: Phase within the operation, e.g. "created", "confirmed", "rejected".
        message: Human-readable short message.
        extra: Optional additional key/values (ids, quantities, amounts).
        level: Logging level (default INFO).
    """
    extra_payload = {"op": op, "phase": phase}
    if extra:
        for k, v in extra.items():
            if k not in extra_payload:
                extra_payload[k] = v

    logger.log(level, message, extra={"extra_payload": extra_payload})
