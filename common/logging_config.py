"""Logging setup shared by the file service and the object store adapters."""

import logging
import os
import re
import sys
from contextvars import ContextVar, Token
from typing import Optional

_request_id: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def bind_request_id(request_id: str) -> Token:
    """Attach a request id to every record logged in the current context."""
    return _request_id.set(request_id)


def reset_request_id(token: Token) -> None:
    _request_id.reset(token)


class RequestContextFilter(logging.Filter):
    """Adds the bound request id (or '-') to each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = _request_id.get() or '-'
        return True


class SensitiveDataFilter(logging.Filter):
    """Masks credentials and download link secrets in log records."""

    PATTERNS = [
        (re.compile(r'((?:password|api[_-]?key|token|secret|access[_-]?key)["\']?\s*[:=]\s*["\']?)([^"\'}\s,]+)',
                    re.IGNORECASE), r'\1***MASKED***'),
        (re.compile(r'(/d/[^/\s]+/)([^/\s?"\']+)'), r'\1***MASKED***'),
    ]

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = self._mask(record.msg)

        if isinstance(record.args, dict):
            record.args = {k: self._mask(v) for k, v in record.args.items()}
        elif isinstance(record.args, tuple):
            record.args = tuple(self._mask(arg) for arg in record.args)

        return True

    def _mask(self, value):
        if not isinstance(value, str):
            return value
        for pattern, replacement in self.PATTERNS:
            value = pattern.sub(replacement, value)
        return value


def _build_formatter(correlation_id: Optional[str] = None) -> logging.Formatter:
    context = correlation_id if correlation_id else '%(request_id)s'
    return logging.Formatter(
        f'%(asctime)s - %(name)s - %(levelname)s - [{context}] - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


def setup_logging(
    component_name: str,
    log_level: Optional[str] = None,
    correlation_id: Optional[str] = None
) -> logging.Logger:
    """
    Configure the logger of a top-level package.

    Args:
        component_name: Package name ('filevault', 'objectstore')
        log_level: DEBUG, INFO, WARNING or ERROR. Defaults to the LOG_LEVEL env var or INFO
        correlation_id: Fixed id printed instead of the per-request id

    Returns:
        Configured logger instance
    """
    if log_level is None:
        log_level = os.getenv('LOG_LEVEL', 'INFO').upper()

    level = getattr(logging, log_level, logging.INFO)

    logger = logging.getLogger(component_name)
    logger.setLevel(level)

    if logger.handlers:
        return logger

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(_build_formatter(correlation_id))
    handler.addFilter(RequestContextFilter())
    handler.addFilter(SensitiveDataFilter())

    logger.addHandler(handler)
    logger.propagate = False

    return logger


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
