"""
function_wrapper/adapter/exceptions.py

WHAT THIS FILE IS FOR
---------------------
Error taxonomy of the function wrapper.

Every failure the wrapper can report derives from `WrapperError`, so the
invocation driver can turn any of them into an exit code and an error line
with a single `except WrapperError`.

FATAL VS NON-FATAL
------------------
- Input errors (usage, context, event, handler reference) abort before the
  handler runs.
- Normalization errors (body read, encode, decode) abort the invocation.
- ClassifiedStatusError is raised by nobody: it is *carried* by a
  NormalizationOutcome so the response can still be emitted.
- Coercion errors are caught inside the normalizer and downgraded to
  warnings.
"""

from __future__ import annotations

from typing import Any, Optional


class WrapperError(Exception):
    """Base class for every error reported by the wrapper."""


class UsageError(WrapperError):
    """Raised when the command line does not carry context and event."""


class InvalidContextError(WrapperError):
    """Raised when the context argument is not a valid context object."""


class InvalidEventError(WrapperError):
    """Raised when the event argument cannot be decoded into the handler's event type."""


class HandlerLoadError(WrapperError):
    """Raised when a handler reference cannot be imported or is not callable."""

    def __init__(self, reference: str, reason: str):
        self.reference = reference
        self.reason = reason
        super().__init__(f"Cannot load handler {reference!r}: {reason}")


class HandlerSignatureError(WrapperError):
    """Raised when a handler's parameters do not fit the (ctx, event) contract."""


class HandlerExecutionError(WrapperError):
    """Raised when the handler itself raised."""

    def __init__(self, cause: BaseException):
        self.cause = cause
        super().__init__(f"Handler failed: {type(cause).__name__}: {cause}")


class BodyReadError(WrapperError):
    """Raised when a transport response body cannot be drained."""


class EncodingError(WrapperError):
    """Raised when a structured handler result cannot be JSON-encoded."""


class DecodingError(WrapperError):
    """Raised when encoded handler output cannot be decoded back into a mapping."""


class ClassifiedStatusError(WrapperError):
    """The handler ran but reported an error status code."""

    def __init__(self, status_code: int, body: Optional[str]):
        self.status_code = status_code
        self.body = body
        super().__init__(body if body else f"status code {status_code}")


class CoercionError(WrapperError):
    """Base class for value coercion failures."""

    def __init__(self, value: Any, message: str):
        self.value = value
        super().__init__(message)


class NotConvertibleError(CoercionError):
    """Raised when a value's type cannot be converted to an integer."""


class IntOverflowError(CoercionError):
    """Raised when a value does not fit the native signed integer range."""
