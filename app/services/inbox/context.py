"""Structured logging context for webhook ingestion."""

from __future__ import annotations

import contextlib
import contextvars
import functools
import logging
import uuid

from app.logging import get_logger

trace_id: contextvars.ContextVar[str] = contextvars.ContextVar("inbox_trace_id", default="")


def set_trace_id(value: str | None = None) -> str:
    if not value:
        value = uuid.uuid4().hex[:12]
    trace_id.set(value)
    return value


def get_trace_id() -> str:
    return trace_id.get()


@contextlib.contextmanager
def trace_scope(value: str | None = None):
    """Bind a trace id for the block; an enclosing id is kept when none is given."""
    token = trace_id.set(value or get_trace_id() or uuid.uuid4().hex[:12])
    try:
        yield trace_id.get()
    finally:
        trace_id.reset(token)


class InboxLoggerAdapter(logging.LoggerAdapter):
    def process(self, msg, kwargs):
        extra = kwargs.get("extra") or {}
        if "trace_id" not in extra:
            tid = get_trace_id()
            if tid:
                extra["trace_id"] = tid
        kwargs["extra"] = extra
        return msg, kwargs


def get_inbox_logger(name: str) -> logging.LoggerAdapter:
    return InboxLoggerAdapter(get_logger(name), {})


def with_inbox_context(func):
    """Run ``func`` with a trace id, reusing a ``trace_id`` kwarg when given."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        token = trace_id.set(kwargs.get("trace_id") or uuid.uuid4().hex[:12])
        try:
            return func(*args, **kwargs)
        finally:
            trace_id.reset(token)

    return wrapper
