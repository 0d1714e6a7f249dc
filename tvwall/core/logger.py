# tvwall/core/logger.py
from __future__ import annotations

"""
TV Wall — Logging (Loguru)
--------------------------
- Pretty console logs by default; optional JSON logs via `LOG_JSON=1`
- Request correlation: supports `request_id` (from RequestIDMiddleware)
- Intercepts stdlib `tvwall.*` and uvicorn/fastapi/starlette logs into Loguru
- Optional file sink with rotation

Env
---
LOG_LEVEL=INFO|DEBUG|WARNING|ERROR (default: INFO)
LOG_JSON=1 (enable JSON logs; pretty logs otherwise)
LOG_TO_FILE=1 (write LOG_DIR/LOG_FILE with rotation; default: 0)
LOG_DIR=logs
LOG_FILE=tvwall.log
LOG_ROTATION=10 MB
APP_DEBUG=1 (enables backtrace/diagnose in console sink)
"""

import inspect
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict

from dotenv import load_dotenv
from loguru import logger

# ─────────────────────────────────────────────────────────────
# ⚙️ Env
# ─────────────────────────────────────────────────────────────
load_dotenv()

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_JSON = os.getenv("LOG_JSON", "0").lower() in {"1", "true", "yes"}
APP_DEBUG = os.getenv("APP_DEBUG", "0").lower() in {"1", "true", "yes"}

LOG_TO_FILE = os.getenv("LOG_TO_FILE", "0").lower() in {"1", "true", "yes"}
LOG_DIR = Path(os.getenv("LOG_DIR", "logs"))
LOG_FILE = os.getenv("LOG_FILE", "tvwall.log")
LOG_ROTATION = os.getenv("LOG_ROTATION", "10 MB")

logger.remove()


# ─────────────────────────────────────────────────────────────
# 🧾 Formatters
# ─────────────────────────────────────────────────────────────
def _fmt_pretty(record):
    """Colorized single-line formatter with request_id support."""
    record["extra"]["request_id"] = record["extra"].get("request_id", "N/A")
    safe_name = record["name"].replace("<", "[").replace(">", "]")
    safe_func = record["function"].replace("<", "[").replace(">", "]")
    safe_msg = record["message"].replace("{", "{{").replace("}", "}}").replace("<", "\\<")
    return (
        f"<green>{record['time']:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
        f"<level>{record['level']:<8}</level> | "
        f"<cyan>{safe_name}</cyan>:<cyan>{safe_func}</cyan>:<cyan>{record['line']}</cyan> - "
        f"<level>{safe_msg}</level> | request_id={record['extra']['request_id']}\n"
        + ("{exception}" if record["exception"] else "")
    )


def _json_line(record) -> str:
    payload: Dict[str, Any] = {
        "ts": record["time"].timestamp(),
        "time": record["time"].strftime("%Y-%m-%dT%H:%M:%S.%f%z"),
        "level": record["level"].name,
        "logger": record["name"],
        "func": record["function"],
        "line": record["line"],
        "message": record["message"],
        "request_id": record["extra"].get("request_id", "N/A"),
    }
    for k, v in record["extra"].items():
        if k not in payload and k != "serialized":
            payload[k] = v if isinstance(v, (str, int, float, bool, type(None))) else str(v)
    return json.dumps(payload, ensure_ascii=False)


def _fmt_json(record):
    """Structured JSON logs, one object per line."""
    record["extra"]["serialized"] = _json_line(record)
    return "{extra[serialized]}\n"


CONSOLE_FORMAT = _fmt_json if LOG_JSON else _fmt_pretty

# ─────────────────────────────────────────────────────────────
# 📤 Sinks
# ─────────────────────────────────────────────────────────────
logger.add(
    sys.stdout,
    level=LOG_LEVEL,
    format=CONSOLE_FORMAT,
    backtrace=APP_DEBUG,
    diagnose=APP_DEBUG,
)

if LOG_TO_FILE:
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    logger.add(
        str(LOG_DIR / LOG_FILE),
        rotation=LOG_ROTATION,
        level=LOG_LEVEL,
        format=CONSOLE_FORMAT,
        enqueue=True,
        backtrace=False,
        diagnose=False,
    )


# ─────────────────────────────────────────────────────────────
# 🔁 Intercept stdlib logging → Loguru
# ─────────────────────────────────────────────────────────────
class InterceptHandler(logging.Handler):
    """Route standard logging records into Loguru, keeping the caller's location."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = inspect.currentframe(), 0
        while frame is not None and (depth == 0 or frame.f_code.co_filename == logging.__file__):
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


for name in ("tvwall", "uvicorn", "uvicorn.error", "fastapi", "starlette", "apscheduler"):
    std_logger = logging.getLogger(name)
    std_logger.handlers = [InterceptHandler()]
    std_logger.setLevel(LOG_LEVEL)
    std_logger.propagate = False
