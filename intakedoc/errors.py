from __future__ import annotations

from typing import Any


class AssemblyError(Exception):
    """Structured generation failure surfaced to the caller as a single error."""

    kind = 'assembly_error'
    retryable = False

    def __init__(
        self,
        message: str,
        *,
        cause: BaseException | None = None,
        stage: str | None = None,
        page: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.cause = cause
        self.stage = stage
        self.page = page

    def with_context(self, *, stage: str | None = None, page: str | None = None) -> 'AssemblyError':
        if stage and not self.stage:
            self.stage = stage
        if page and not self.page:
            self.page = page
        return self

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            'error': 'Failed to generate PDF',
            'kind': self.kind,
            'message': self.message,
            'retryable': self.retryable,
            'stage': self.stage,
            'page': self.page,
        }
        if self.cause is not None:
            payload['details'] = f'{type(self.cause).__name__}: {self.cause}'
        return payload

    def __str__(self) -> str:
        parts = [self.message]
        if self.stage:
            parts.append(f'stage={self.stage}')
        if self.page:
            parts.append(f'page={self.page}')
        return ' | '.join(parts)


class MissingAssetError(AssemblyError):
    kind = 'missing_asset'


class RenderTimeoutError(AssemblyError):
    kind = 'render_timeout'
    retryable = True


class RenderProcessError(AssemblyError):
    kind = 'render_process'
    retryable = True


class MergeError(AssemblyError):
    kind = 'merge_failure'


class InvalidSubmissionError(AssemblyError):
    kind = 'invalid_submission'

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        payload['error'] = 'Invalid application submission'
        return payload
