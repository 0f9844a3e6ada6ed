"""Tests for the inbox error taxonomy and logging context."""

import logging

from fastapi import HTTPException

from app.services.inbox.context import (
    get_inbox_logger,
    get_trace_id,
    set_trace_id,
    trace_scope,
    with_inbox_context,
)
from app.services.inbox.errors import InboxExternalError, InboxValidationError, WorkspaceResolutionError


def test_inbox_error_to_http_exception():
    exc = InboxValidationError("invalid_json", "Bad")
    http_exc = exc.to_http_exception()
    assert isinstance(http_exc, HTTPException)
    assert http_exc.status_code == 400
    assert http_exc.detail == "Bad"


def test_error_string_carries_code():
    exc = WorkspaceResolutionError("workspace_unresolved", "No channel")
    assert str(exc) == "workspace_unresolved: No channel"
    assert exc.status_code == 422
    assert exc.retryable is False


def test_external_error_can_be_retryable():
    exc = InboxExternalError("automation_webhook_failed", "timeout", retryable=True)
    assert exc.status_code == 502
    assert exc.retryable is True


def test_inbox_logger_injects_trace_id():
    set_trace_id("abc12345")
    logger = get_inbox_logger("test")
    _msg, kwargs = logger.process("message", {"extra": {}})
    assert kwargs["extra"]["trace_id"] == "abc12345"
    assert isinstance(logger.logger, logging.Logger)


def test_with_inbox_context_scopes_trace_id():
    set_trace_id("outer")

    @with_inbox_context
    def work(trace_id=None):
        return get_trace_id()

    assert work(trace_id="inner-1") == "inner-1"
    assert get_trace_id() == "outer"
    assert work()


def test_trace_scope_restores_enclosing_trace_id():
    set_trace_id("outer")

    with trace_scope("inner-2") as tid:
        assert tid == "inner-2"
        assert get_trace_id() == "inner-2"
    assert get_trace_id() == "outer"

    with trace_scope() as tid:
        assert tid == "outer"
    assert get_trace_id() == "outer"
