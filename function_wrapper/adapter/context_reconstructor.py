"""
function_wrapper/adapter/context_reconstructor.py

Builds the InvocationContext handed to the handler from the context
argument of the command line, and binds its identifiers to the log context
for the duration of one invocation.
"""

from __future__ import annotations

import json
from contextlib import contextmanager
from typing import Iterator

import structlog
from pydantic import ValidationError

from function_wrapper.adapter.exceptions import InvalidContextError
from schemas.context_schema import InvocationContext

logger = structlog.get_logger(__name__)

# Context fields that are safe to attach to every log line (api_key is not).
_LOGGED_FIELDS = ("activation_id", "function_name", "request_id")


def reconstruct_context(raw: str) -> InvocationContext:
    """
    Parse the context JSON object.

    - missing fields default to ""
    - unknown fields are dropped

    Raises:
        InvalidContextError: not JSON, not an object, or a non-string field value.
    """
    try:
        data = json.loads(raw)
    except ValueError as exc:
        raise InvalidContextError(f"Invalid context argument: {exc}") from exc

    if not isinstance(data, dict):
        raise InvalidContextError(f"Invalid context argument: expected a JSON object, got {type(data).__name__}")

    try:
        return InvocationContext.model_validate(data)
    except ValidationError as exc:
        fields = sorted({".".join(str(x) for x in err.get("loc", [])) for err in exc.errors()})
        raise InvalidContextError(f"Invalid context argument: non-string value for {', '.join(fields)}") from exc


@contextmanager
def bind_invocation_context(ctx: InvocationContext) -> Iterator[InvocationContext]:
    """Attach the invocation identifiers to structlog contextvars while the block runs."""
    values = {name: getattr(ctx, name) for name in _LOGGED_FIELDS if getattr(ctx, name)}
    structlog.contextvars.bind_contextvars(**values)
    try:
        yield ctx
    finally:
        structlog.contextvars.unbind_contextvars(*values.keys())
