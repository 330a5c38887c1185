"""Exceptions raised while grading submissions."""

import re
from typing import Optional

RETRYABLE_STATUS_CODES = frozenset({429, 503})

_STATUS_IN_MESSAGE = re.compile(r"\b(429|503)\b")


class GradingClientError(Exception):
    """A single grading attempt failed."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class TransientApiError(GradingClientError):
    """Provider signalled rate limiting or temporary unavailability."""


class PermanentApiError(GradingClientError):
    """Provider or parsing error that retrying will not fix."""


class SchemaViolationError(PermanentApiError):
    """Model output did not match the grading response schema."""


class FatalRunError(Exception):
    """A context document could not be read; the whole run is aborted."""


def status_code_of(exc: BaseException) -> Optional[int]:
    """HTTP status code carried by a provider exception, if any."""
    status_code = getattr(exc, "status_code", None)
    if isinstance(status_code, int):
        return status_code
    match = _STATUS_IN_MESSAGE.search(str(exc))
    if match:
        return int(match.group(1))
    return None


def is_retryable(exc: BaseException, retry_schema_violations: bool = False) -> bool:
    """Only rate limiting (429) and service unavailability (503) are retried."""
    if isinstance(exc, TransientApiError):
        return True
    if isinstance(exc, SchemaViolationError):
        return retry_schema_violations
    if isinstance(exc, PermanentApiError):
        return False
    return status_code_of(exc) in RETRYABLE_STATUS_CODES


def classify(exc: BaseException, retry_schema_violations: bool = False) -> GradingClientError:
    """Map an arbitrary exception onto TransientApiError or PermanentApiError."""
    status_code = status_code_of(exc)
    if is_retryable(exc, retry_schema_violations):
        if isinstance(exc, TransientApiError):
            return exc
        return TransientApiError(str(exc), status_code)
    if isinstance(exc, PermanentApiError):
        return exc
    return PermanentApiError(str(exc), status_code)
