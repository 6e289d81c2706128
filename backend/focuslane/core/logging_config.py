"""
Logging setup: JSON or text output, request-scoped context, secret redaction

Modules get their logger through ``LoggingConfig.get_logger(__name__)``.
Request handlers add fields (request id, path, user) with
``LoggingConfig.request_scope``; every record logged inside the scope carries them.
"""
import json
import logging
import re
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Pattern, Tuple

from focuslane.core.config import Settings, get_settings

log_context: ContextVar[Dict[str, Any]] = ContextVar("log_context", default={})

# Attributes every LogRecord has; anything else came in through extra=
_STANDARD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}

_PROJECT_ROOT = Path(__file__).resolve().parents[3]


class SensitiveDataFilter(logging.Filter):
    """Redacts credentials and e-mail local parts before a record is emitted"""

    RULES: List[Tuple[Pattern, str]] = [
        (re.compile(r"Bearer\s+[^\s\"',]+", re.IGNORECASE), "Bearer ***"),
        (re.compile(r"\bsk-[A-Za-z0-9_\-]{6,}"), "sk-***"),
        (re.compile(r"((?:access_|refresh_)?token|api[_-]?key|apikey|secret)([\"']?\s*[:=]\s*[\"']?)[^\"'\s&,}]+",
                    re.IGNORECASE), r"\1\2***"),
        (re.compile(r"\b[\w.+-]+@([\w-]+\.[\w.-]+)"), r"***@\1"),
    ]

    def __init__(self, enabled: bool = True):
        super().__init__()
        self.enabled = enabled

    def mask(self, text: str) -> str:
        for pattern, replacement in self.RULES:
            text = pattern.sub(replacement, text)
        return text

    def filter(self, record: logging.LogRecord) -> bool:
        if not self.enabled:
            return True
        if isinstance(record.msg, str):
            record.msg = self.mask(record.msg)
        if isinstance(record.args, tuple):
            record.args = tuple(self.mask(a) if isinstance(a, str) else a for a in record.args)
        for key, value in list(vars(record).items()):
            if key not in _STANDARD_ATTRS and isinstance(value, str):
                setattr(record, key, self.mask(value))
        return True


class ContextualFormatter(logging.Formatter):
    """One JSON object per line: base fields, then request context, then extra="""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "location": f"{record.module}:{record.lineno}",
            "message": record.getMessage(),
        }
        entry.update(log_context.get())

        for key, value in vars(record).items():
            if key in _STANDARD_ATTRS or key in entry:
                continue
            entry[key] = value

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, ensure_ascii=False, default=str)


class LoggingConfig:
    """Process-wide logging configuration"""

    _configured = False
    _level_counts: Dict[str, int] = {name: 0 for name in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")}

    class _CountingHandler(logging.Handler):
        """Counts emitted records per level for the detailed health check"""

        def emit(self, record: logging.LogRecord) -> None:
            counts = LoggingConfig._level_counts
            if record.levelname in counts:
                counts[record.levelname] += 1

    @staticmethod
    def _module_levels(settings: Settings, overrides: Optional[Dict[str, str]]) -> Dict[str, str]:
        levels = {
            "focuslane": settings.log_level,
            "sqlalchemy.engine": "INFO" if settings.log_sqlalchemy else "WARNING",
            "sqlalchemy.pool": "WARNING",
            "httpx": "WARNING",
            "httpcore": "WARNING",
            "uvicorn.error": "INFO",
            "uvicorn.access": "INFO" if settings.log_uvicorn_access else "WARNING",
        }
        if settings.log_module_levels:
            try:
                levels.update(json.loads(settings.log_module_levels))
            except (ValueError, TypeError):
                sys.stderr.write("LOG_MODULE_LEVELS is not a JSON object, ignoring it\n")
        if overrides:
            levels.update(overrides)
        return levels

    @staticmethod
    def _build_handlers(settings: Settings) -> List[logging.Handler]:
        if settings.log_format == "json":
            formatter: logging.Formatter = ContextualFormatter()
        else:
            formatter = logging.Formatter(
                "%(asctime)s %(levelname)-7s %(name)s: %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )

        handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]

        if settings.log_file_enabled:
            path = Path(settings.log_file_path)
            if not path.is_absolute():
                path = _PROJECT_ROOT / path
            path.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(TimedRotatingFileHandler(
                filename=str(path),
                when="midnight",
                backupCount=settings.log_file_retention,
                encoding="utf-8",
            ))

        redactor = SensitiveDataFilter(enabled=not settings.log_sensitive_data)
        for handler in handlers:
            handler.setFormatter(formatter)
            handler.addFilter(redactor)
        return handlers

    @classmethod
    def configure(cls, module_levels: Optional[Dict[str, str]] = None) -> None:
        """Install handlers on the root logger once per process"""
        if cls._configured:
            return

        settings = get_settings()
        root_handlers = cls._build_handlers(settings)
        root_handlers.append(cls._CountingHandler(level=logging.DEBUG))

        logging.basicConfig(level=settings.log_level.upper(), handlers=root_handlers, force=True)
        for name, level in cls._module_levels(settings, module_levels).items():
            logging.getLogger(name).setLevel(level.upper())

        cls._configured = True

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        cls.configure()
        return logging.getLogger(name)

    @classmethod
    def set_context(cls, **fields: Any) -> None:
        """Add fields to the current context until the enclosing scope ends"""
        log_context.set({**log_context.get(), **fields})

    @classmethod
    @contextmanager
    def request_scope(cls, **fields: Any) -> Iterator[None]:
        """Attach fields to every record logged until the block exits"""
        token = log_context.set({**log_context.get(), **fields})
        try:
            yield
        finally:
            log_context.reset(token)

    @classmethod
    def get_metrics(cls) -> Dict[str, int]:
        return dict(cls._level_counts)

    @classmethod
    def reset_metrics(cls) -> None:
        for level in cls._level_counts:
            cls._level_counts[level] = 0


LoggingConfig.configure()
