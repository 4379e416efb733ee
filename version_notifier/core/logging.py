from __future__ import annotations
import json, logging, sys, time, contextvars
from typing import Any, Dict
from version_notifier.core.config import settings

connection_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "connection_id", default="-"
)


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        base: Dict[str, Any] = {
            "ts": time.strftime(
                "%Y-%m-%dT%H:%M:%S",
                time.gmtime(getattr(record, "created", time.time())),
            ),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "connection_id": getattr(
                record, "connection_id", connection_id_var.get("-")
            ),
        }
        # Add common extras if present
        for k in ("host", "url", "status", "delay", "subscribers", "sink"):
            if hasattr(record, k):
                base[k] = getattr(record, k)
        if record.exc_info:
            base["exc"] = self.formatException(record.exc_info)
        return json.dumps(base, ensure_ascii=False)


def setup_logging() -> None:
    # root -> JSON to stdout
    root = logging.getLogger()
    root.setLevel(
        logging.INFO
        if (settings.LOG_LEVEL or "INFO") == "INFO"
        else logging.getLevelName(settings.LOG_LEVEL.upper())
    )
    # Route uvicorn logs through root JSON handler
    for lg in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        lgr = logging.getLogger(lg)
        lgr.handlers.clear()
        lgr.propagate = True
        lgr.setLevel(root.level)
    # setup_logging may run more than once (app import + server entry point)
    if any(isinstance(h.formatter, JsonFormatter) for h in root.handlers):
        return
    sh = logging.StreamHandler(sys.stdout)
    sh.setFormatter(JsonFormatter())
    root.addHandler(sh)
