import json
import logging
import os
import re
import sys
from datetime import datetime
from logging.handlers import TimedRotatingFileHandler
from typing import Any, Dict, Optional

LOG_REDACT: bool = True

logger_json: Optional[logging.Logger] = None
logger_txt: Optional[logging.Logger] = None


def setup_logging(log_dir: str = "logs", enabled: bool = True, redact: bool = True) -> None:
    """Attach rotating file handlers (JSON events + text) and a console echo.

    Safe to call more than once; handlers are only attached the first time.
    """
    global logger_json, logger_txt, LOG_REDACT
    LOG_REDACT = redact
    if not enabled:
        return

    txt = logging.getLogger("quotedoc")
    if txt.handlers:
        return

    os.makedirs(log_dir, exist_ok=True)

    json_handler = TimedRotatingFileHandler(
        filename=os.path.join(log_dir, "render.jsonl"),
        when="midnight",
        backupCount=7,
        encoding="utf-8",
        utc=True,
    )
    json_handler.setLevel(logging.INFO)
    events = logging.getLogger("quotedoc.events")
    events.setLevel(logging.INFO)
    events.addHandler(json_handler)
    # events carry raw JSON; keep them out of the text log
    events.propagate = False

    txt_handler = TimedRotatingFileHandler(
        filename=os.path.join(log_dir, "render.txt"),
        when="midnight",
        backupCount=7,
        encoding="utf-8",
        utc=True,
    )
    txt_handler.setLevel(logging.INFO)
    txt_formatter = logging.Formatter(
        "[%(asctime)sZ] %(levelname)s %(name)s: %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
    )
    txt_handler.setFormatter(txt_formatter)
    txt.setLevel(logging.INFO)
    txt.addHandler(txt_handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(txt_formatter)
    txt.addHandler(console_handler)

    logger_json = events
    logger_txt = txt


EMAIL_RE = re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}")
PHONE_RE = re.compile(r"\+?\d[\d\-\s().]{7,}\d")


def redact(text: str) -> str:
    if not text or not LOG_REDACT:
        return text or ""
    text = EMAIL_RE.sub("[email redacted]", text)
    text = PHONE_RE.sub("[phone redacted]", text)
    return text


def log_event(event: str, meta: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Write one structured event line; string values are redacted."""
    ts = datetime.utcnow().isoformat(timespec="seconds") + "Z"
    clean = {k: (redact(v) if isinstance(v, str) else v) for k, v in (meta or {}).items()}
    entry = {"ts": ts, "event": event, **clean}
    if logger_json:
        logger_json.info(json.dumps(entry, ensure_ascii=False, default=str))
    if logger_txt:
        quote = clean.get("quote_id") or "-"
        logger_txt.info(f"{event} quote={quote} {clean.get('error') or ''}".rstrip())
    return entry
