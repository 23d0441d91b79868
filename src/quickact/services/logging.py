from __future__ import annotations
import json
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Iterable, Optional
from datetime import datetime, timezone

from quickact.config import const
from quickact.domain import Event
from quickact.ports import EventBus, PathProvider

# по одному событию на каждую строку вывода ребёнка, в лог не пишем
_QUIET_EVENTS = ("proc.output",)


def _json_formatter(record: logging.LogRecord) -> str:
    base = {
        "level": record.levelname,
        "logger": record.name,
        "msg": record.getMessage(),
        "time": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
    }
    if hasattr(record, "extra"):
        try:
            base.update(record.extra)  # type: ignore[attr-defined]
        except (TypeError, ValueError):
            pass
    if record.exc_info:
        base["exc"] = logging.Formatter().formatException(record.exc_info)
    return json.dumps(base, ensure_ascii=False, default=str)


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        return _json_formatter(record)


def setup_logging(paths: PathProvider, level: str = const.DEFAULT_LOG_LEVEL) -> logging.Logger:
    """
    Настройка логов:
      - консоль (stderr)
      - файл {logs_dir}/quickact.log (ротация)
    JSON формат, чтобы легко парсить.
    """
    logs_dir = Path(paths.logs_dir())
    logs_dir.mkdir(parents=True, exist_ok=True)
    logfile = logs_dir / const.LOG_FILE_NAME

    logger = logging.getLogger("quickact")
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    for h in list(logger.handlers):
        h.close()
    logger.handlers.clear()

    stream_h = logging.StreamHandler()
    stream_h.setFormatter(JsonFormatter())
    # консоль занята интерактивом: туда только предупреждения и выше
    stream_h.setLevel(max(logger.level, logging.WARNING))

    file_h = RotatingFileHandler(logfile, maxBytes=5_000_000, backupCount=3, encoding="utf-8")
    file_h.setFormatter(JsonFormatter())
    file_h.setLevel(logger.level)

    logger.addHandler(stream_h)
    logger.addHandler(file_h)
    logger.propagate = False
    logger.info("logging.initialized", extra={"extra": {"logfile": str(logfile)}})
    return logger


def attach_event_logger(bus: EventBus, logger: Optional[logging.Logger] = None, *, skip: Iterable[str] = _QUIET_EVENTS) -> None:
    """
    Подписывает логгер на все события шины (кроме шумных префиксов из skip).
    """
    base_logger = logger or logging.getLogger("quickact.events")
    skip = tuple(skip)

    def _handler(ev: Event) -> None:
        if skip and ev.type.startswith(skip):
            return
        base_logger.info(
            "event",
            extra={
                "extra": {
                    "type": ev.type,
                    "source": ev.source,
                    "ts": ev.ts,
                    "payload": dict(ev.payload),
                }
            },
        )

    bus.subscribe("", _handler)
