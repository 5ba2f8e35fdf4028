"""JSON structured logging for lookups.

Loggers returned by ``get_structured_logger`` carry a filter that rewrites
every record they emit into a single JSON object. ``bind_context`` wraps a
logger in an adapter that adds fields (query, search type, plugin id) to
each record it logs; adapters nest, and no logger is created per context.

The package never installs handlers; the application (or the CLI) does.
"""
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, MutableMapping, Optional, Tuple, Union

# Attributes every LogRecord has; anything else came in through ``extra=``
_RECORD_ATTRIBUTES = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}

# Plugin configs carry credentials
REDACTED_KEYS = frozenset({"api_key", "apiKey", "client_secret", "clientSecret", "access_token", "refresh_token"})

_BASE_ATTR = "_lookup_log_base"


def redact(value: Any) -> Any:
    """Replace credential values anywhere in nested dicts and lists."""
    if isinstance(value, dict):
        return {k: "REDACTED" if k in REDACTED_KEYS else redact(v) for k, v in value.items()}
    if isinstance(value, list):
        return [redact(v) for v in value]
    return value


def build_payload(record: logging.LogRecord, base: Dict[str, Any]) -> Dict[str, Any]:
    payload: Dict[str, Any] = dict(base)
    payload.update(
        (k, v) for k, v in vars(record).items() if k not in _RECORD_ATTRIBUTES and not k.startswith("_")
    )
    payload["timestamp"] = datetime.now(timezone.utc).isoformat()
    payload["level"] = record.levelname
    payload["logger"] = record.name
    payload["message"] = record.getMessage()
    if record.exc_info and record.exc_info[1] is not None:
        payload["error_type"] = type(record.exc_info[1]).__name__
        payload["error"] = str(record.exc_info[1])
    return redact(payload)


class JsonContextFilter(logging.Filter):
    """Serialise the record, its extras and the logger's base context as JSON."""

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "_structured", False):
            return True
        emitter = logging.getLogger(record.name)
        payload = build_payload(record, getattr(emitter, _BASE_ATTR, {}))
        record.msg = json.dumps(payload, ensure_ascii=False, default=str)
        record.args = ()
        record._structured = True
        return True


class ContextAdapter(logging.LoggerAdapter):
    """Adds bound fields to every record; per-call ``extra`` wins on conflict."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        kwargs["extra"] = {**self.extra, **(kwargs.get("extra") or {})}
        return msg, kwargs


LoggerLike = Union[logging.Logger, logging.LoggerAdapter]


def bind_context(logger: LoggerLike, context: Dict[str, Any]) -> ContextAdapter:
    """Return an adapter logging through *logger* with *context* added.

    Binding onto an adapter keeps the fields it already carries.
    """
    if isinstance(logger, logging.LoggerAdapter):
        return ContextAdapter(logger.logger, {**(logger.extra or {}), **context})
    return ContextAdapter(logger, dict(context))


def get_structured_logger(
    name: str, *, base_context: Optional[Dict[str, Any]] = None, level: int = logging.NOTSET
) -> logging.Logger:
    """Module logger that emits JSON lines whatever formatter its handlers use.

    The level defaults to NOTSET so the application decides verbosity.
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)
    setattr(logger, _BASE_ATTR, dict(base_context or {}))
    if not any(isinstance(f, JsonContextFilter) for f in logger.filters):
        logger.addFilter(JsonContextFilter())
    return logger
