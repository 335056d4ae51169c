"""
Structured JSON logging for ShopGate.

Every service receives a ``StructuredLogger`` through its constructor.
Security-relevant calls pass an ``event`` name in ``extra`` (``LOGIN``,
``ACCOUNT_LOCKED``, ``GUARD_REDIRECT`` ...); the formatter lifts it to a
top-level key so the access trail can be filtered without parsing
messages.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, TextIO, Union


class JSONFormatter(logging.Formatter):
    """Formats log records as one JSON object per line.

    Keys: ``timestamp`` (ISO-8601, UTC), ``level``, ``logger_name``,
    ``message``, then ``event`` and ``extra`` when the caller supplied
    them, and ``exception`` when a traceback is attached.
    """

    _STANDARD_ATTRS: frozenset[str] = frozenset(
        logging.LogRecord(
            name="", level=0, pathname="", lineno=0, msg="", args=(), exc_info=None
        ).__dict__.keys()
    ) | {"message", "asctime"}

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Union[str, dict[str, str]]] = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger_name": record.name,
            "message": record.getMessage(),
        }

        event = getattr(record, "event", None)
        if event is not None:
            entry["event"] = str(event)

        extra_fields: dict[str, str] = {
            key: str(value)
            for key, value in record.__dict__.items()
            if key not in self._STANDARD_ATTRS and key != "event"
        }
        if extra_fields:
            entry["extra"] = extra_fields

        if record.exc_info and not record.exc_text:
            record.exc_text = self.formatException(record.exc_info)
        if record.exc_text:
            entry["exception"] = record.exc_text

        return json.dumps(entry, ensure_ascii=False)


class StructuredLogger:
    """Injectable wrapper around a named ``logging.Logger``.

    Handlers are attached once per logger name: a JSON stream handler and,
    when the configured file is writable, a rotating file handler.
    Records still propagate to the root logger.
    """

    def __init__(
        self,
        name: str = "shopgate",
        level: int = logging.INFO,
        stream: Union[TextIO, None] = None,
        log_file: Optional[str] = None,
        max_bytes: Optional[int] = None,
        backup_count: Optional[int] = None,
    ) -> None:
        # Lazy import to avoid circular dependency at module level
        from shopgate.config import get_config
        _cfg = get_config()

        self._logger: logging.Logger = logging.getLogger(name)
        self._logger.setLevel(level)

        if self._logger.handlers:
            return

        formatter = JSONFormatter()

        stream_handler = logging.StreamHandler(stream or sys.stdout)
        stream_handler.setLevel(level)
        stream_handler.setFormatter(formatter)
        self._logger.addHandler(stream_handler)

        resolved_log_file = Path(log_file or _cfg.LOG_FILE)
        try:
            resolved_log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                filename=str(resolved_log_file),
                maxBytes=max_bytes if max_bytes is not None else _cfg.LOG_MAX_BYTES,
                backupCount=backup_count if backup_count is not None else _cfg.LOG_BACKUP_COUNT,
                encoding="utf-8",
            )
        except OSError as exc:
            self._logger.warning(
                "Could not open log file '%s': %s. Logging to console only.",
                resolved_log_file,
                exc,
            )
            return
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        self._logger.addHandler(file_handler)

    @property
    def name(self) -> str:
        return self._logger.name

    def debug(self, msg: str, *args: object, **kwargs: object) -> None:
        self._logger.debug(msg, *args, **kwargs)

    def info(self, msg: str, *args: object, **kwargs: object) -> None:
        self._logger.info(msg, *args, **kwargs)

    def warning(self, msg: str, *args: object, **kwargs: object) -> None:
        self._logger.warning(msg, *args, **kwargs)

    def error(self, msg: str, *args: object, **kwargs: object) -> None:
        self._logger.error(msg, *args, **kwargs)


def get_logger(name: str = "shopgate") -> StructuredLogger:
    """``StructuredLogger`` for *name* with the configured file and level."""
    return StructuredLogger(name=name)
