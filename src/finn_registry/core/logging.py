"""
Structured logging for Finn Registry.

structlog events are handed to the standard library, so the console and
the optional rotating log file share one processor chain. The file is
always written as JSON lines; the console follows ``LoggingConfig.format``.

Session tokens, signed tokens, OAuth codes and API keys are masked before
any formatter renders an event.
"""

from __future__ import annotations

import logging
import logging.handlers
import re
import sys
from pathlib import Path
from typing import Any, Dict, List, MutableMapping, Optional

import structlog
from structlog.types import Processor

from .config import LoggingConfig, get_settings


REDACTED = "[REDACTED]"

# Keys whose values are always credentials
SECRET_KEYS = frozenset({
    "authorization", "code", "state", "cookie", "cookie_state",
    "credential", "key_hash",
})

# Fragments marking compound keys such as access_token or client_secret
SECRET_KEY_PARTS = ("token", "secret", "password", "api_key", "apikey")

_HANDLER_MARK = "_finn_registry_handler"


class CredentialRedactor:
    """
    Processor that masks credential material in an event.

    Values under secret-bearing keys are replaced outright, at any depth.
    Plaintext API keys are recognised by their prefix and masked wherever
    they appear in a string, including the event message itself.
    """

    def __init__(self, api_key_prefix: str = "fn_"):
        self.api_key_pattern = (
            re.compile(re.escape(api_key_prefix) + r"[A-Za-z0-9]{16,}") if api_key_prefix else None
        )
        self.api_key_prefix = api_key_prefix

    def __call__(
        self,
        logger: Any,
        method_name: str,
        event_dict: MutableMapping[str, Any],
    ) -> MutableMapping[str, Any]:
        for key in list(event_dict):
            event_dict[key] = self._redact(key, event_dict[key])
        return event_dict

    @staticmethod
    def is_secret_key(key: str) -> bool:
        lowered = key.lower()
        return lowered in SECRET_KEYS or any(part in lowered for part in SECRET_KEY_PARTS)

    def _redact(self, key: str, value: Any) -> Any:
        if self.is_secret_key(key):
            return REDACTED
        if isinstance(value, dict):
            return {k: self._redact(str(k), v) for k, v in value.items()}
        if isinstance(value, list):
            return [self._redact(key, item) for item in value]
        if isinstance(value, str) and self.api_key_pattern is not None:
            return self.api_key_pattern.sub(self.api_key_prefix + REDACTED, value)
        return value


def _shared_processors(api_key_prefix: str) -> List[Processor]:
    """Processors applied to structlog events and foreign stdlib records alike."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        CredentialRedactor(api_key_prefix),
    ]


def _formatter(fmt: str, shared: List[Processor], colors: bool = False) -> logging.Formatter:
    if fmt == "json":
        renderer: List[Processor] = [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        renderer = [structlog.dev.ConsoleRenderer(colors=colors)]

    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared,
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, *renderer],
    )


def _build_handlers(config: LoggingConfig, shared: List[Processor]) -> List[logging.Handler]:
    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(_formatter(config.format, shared, colors=sys.stdout.isatty()))
    handlers: List[logging.Handler] = [console]

    if config.file_path:
        file_path = Path(config.file_path)
        file_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            filename=file_path,
            maxBytes=config.max_file_size,
            backupCount=config.backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(_formatter("json", shared))
        handlers.append(file_handler)

    return handlers


def setup_logging(config: Optional[LoggingConfig] = None, api_key_prefix: str = "fn_") -> None:
    """
    Configure structlog and the root logger.

    Safe to call repeatedly: handlers installed by an earlier call are
    closed and replaced, other handlers on the root logger are left alone.

    Args:
        config: Logging configuration. If None, uses settings from environment.
        api_key_prefix: Prefix identifying plaintext API keys to mask.
    """
    if config is None:
        config = get_settings().logging

    level = getattr(logging, config.level)
    shared = _shared_processors(api_key_prefix)

    root = logging.getLogger()
    for handler in [h for h in root.handlers if getattr(h, _HANDLER_MARK, False)]:
        root.removeHandler(handler)
        handler.close()
    for handler in _build_handlers(config, shared):
        setattr(handler, _HANDLER_MARK, True)
        root.addHandler(handler)
    root.setLevel(level)

    # GitHub calls are already logged by the HTTP client
    for name in ("httpx", "httpcore"):
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *shared,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str = __name__) -> structlog.stdlib.BoundLogger:
    """Get a structured logger named after the calling module."""
    return structlog.get_logger(name)


def log_request_start(
    logger: structlog.stdlib.BoundLogger,
    method: str,
    path: str,
    client_ip: str,
    user_agent: Optional[str] = None,
) -> None:
    logger.info("Request started", method=method, path=path, client_ip=client_ip, user_agent=user_agent)


def log_request_end(
    logger: structlog.stdlib.BoundLogger,
    method: str,
    path: str,
    status_code: int,
    duration_ms: float,
    authenticated: bool = False,
) -> None:
    logger.info(
        "Request completed",
        method=method,
        path=path,
        status_code=status_code,
        duration_ms=round(duration_ms, 2),
        authenticated=authenticated,
    )


def log_auth_event(
    logger: structlog.stdlib.BoundLogger,
    event_type: str,
    user_id: Optional[str] = None,
    success: bool = True,
    details: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Log a step of the authentication lifecycle.

    ``event_type`` names the step (``session_created``, ``api_key_revoked``,
    ...). Credentials never go in ``details``.
    """
    logger.info(
        "Authentication event",
        event_type=event_type,
        user_id=user_id,
        success=success,
        **(details or {}),
    )


def log_api_call(
    logger: structlog.stdlib.BoundLogger,
    method: str,
    url: str,
    status_code: int,
    duration_ms: float,
) -> None:
    """Log a call to the identity provider."""
    logger.info(
        "Provider call",
        method=method,
        url=url,
        status_code=status_code,
        duration_ms=round(duration_ms, 2),
    )


def log_error(
    logger: structlog.stdlib.BoundLogger,
    error: Exception,
    context: Optional[Dict[str, Any]] = None,
) -> None:
    """Log an unexpected exception with its traceback."""
    logger.error(
        "Unhandled error",
        error_type=type(error).__name__,
        error_message=str(error),
        **(context or {}),
        exc_info=error,
    )


def log_security_event(
    logger: structlog.stdlib.BoundLogger,
    event_type: str,
    severity: str,
    client_ip: str,
    details: Optional[Dict[str, Any]] = None,
) -> None:
    """Log a rejected or suspicious authentication attempt."""
    logger.warning(
        "Security event",
        event_type=event_type,
        severity=severity,
        client_ip=client_ip,
        **(details or {}),
    )


# Configure from the environment on import; the app lifespan reconfigures
setup_logging()
