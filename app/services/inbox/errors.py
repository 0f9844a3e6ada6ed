"""Error taxonomy for webhook ingestion and automations."""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import HTTPException


@dataclass(frozen=True)
class InboxError(Exception):
    code: str
    detail: str
    status_code: int = 400
    retryable: bool = False

    def __str__(self) -> str:
        return f"{self.code}: {self.detail}"

    def to_http_exception(self) -> HTTPException:
        return HTTPException(status_code=self.status_code, detail=self.detail)


class InboxValidationError(InboxError):
    def __init__(self, code: str, detail: str):
        super().__init__(code=code, detail=detail, status_code=400, retryable=False)


class InboxAuthError(InboxError):
    def __init__(self, code: str, detail: str):
        super().__init__(code=code, detail=detail, status_code=401, retryable=False)


class WorkspaceResolutionError(InboxError):
    def __init__(self, code: str, detail: str):
        super().__init__(code=code, detail=detail, status_code=422, retryable=False)


class InboxExternalError(InboxError):
    def __init__(self, code: str, detail: str, status_code: int = 502, retryable: bool = False):
        super().__init__(code=code, detail=detail, status_code=status_code, retryable=retryable)

