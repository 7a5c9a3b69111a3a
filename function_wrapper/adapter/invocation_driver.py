"""
function_wrapper/adapter/invocation_driver.py

WHAT THIS FILE IS FOR
---------------------
This module runs one function invocation end to end:

    decode event -> reconstruct context -> call handler
      -> normalize result -> emit response

CALL FLOW CONTEXT
-----------------
invoke.py (command line)
  -> InvocationDriver.run(context_json, event_json)  -> InvocationResult
  -> emit(result, settings, stdout, stderr)

ERROR HANDLING RULES
--------------------
- Input errors (bad context / event / handler signature) stop before the
  handler is called; there is no response.
- An exception raised by the handler becomes a HandlerExecutionError
  result; it never escapes the driver.
- Normalization errors (body read / encode / decode) stop the invocation;
  there is no response.
- A classified error status keeps the response: it is emitted together with
  the error.
Every failure maps to exit code 1.

OUTPUT
------
framed (default):
    success -> delimiter-framed JSON response on stdout
    failure -> "- <message>" on stderr, then the framed response (if any)
               on stderr
unframed:
    success -> body text on stdout
    failure -> "ERR: <message>" on stderr
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Optional, TextIO

import structlog

from function_wrapper.adapter.context_reconstructor import bind_invocation_context, reconstruct_context
from function_wrapper.adapter.event_decoder import decode_event
from function_wrapper.adapter.exceptions import (
    ClassifiedStatusError,
    HandlerExecutionError,
    WrapperError,
)
from function_wrapper.adapter.handler_loader import inspect_handler
from function_wrapper.adapter.output_framing import frame_response
from function_wrapper.adapter.result_normalizer import NormalizationOutcome, normalize_result
from function_wrapper.utils.settings import Settings
from schemas.response_schema import CanonicalResponse

logger = structlog.get_logger(__name__)

ERROR_PREFIX_FRAMED = "- "
ERROR_PREFIX_UNFRAMED = "ERR: "


@dataclass
class InvocationResult:
    response: Optional[CanonicalResponse]
    error: Optional[WrapperError] = None
    outcome: Optional[NormalizationOutcome] = None

    @property
    def exit_code(self) -> int:
        return 0 if self.error is None else 1


class InvocationDriver:
    """
    Runs a handler against one (context, event) pair.

    The driver owns no state across invocations; a new run() call starts
    from scratch.
    """

    def __init__(self, handler: Callable[..., Any], settings: Settings):
        self.handler = handler
        self.settings = settings
        self.policy = settings.policy()

    def run(self, context_json: str, event_json: str) -> InvocationResult:
        try:
            signature = inspect_handler(self.handler)
            event = decode_event(event_json, signature.event_type)
            ctx = reconstruct_context(context_json)
        except WrapperError as exc:
            logger.error("invocation_rejected", error_type=type(exc).__name__, error=str(exc))
            return InvocationResult(response=None, error=exc)

        with bind_invocation_context(ctx):
            logger.info(
                "handler_invoking",
                handler=getattr(self.handler, "__qualname__", repr(self.handler)),
                takes_event=signature.takes_event,
                takes_context=signature.context_index is not None,
            )

            try:
                raw_result = signature.invoke(ctx, event)
            except Exception as exc:  # noqa: BLE001
                logger.error("handler_failed", error_type=type(exc).__name__, error=str(exc), exc_info=True)
                return InvocationResult(response=None, error=HandlerExecutionError(exc))

            try:
                outcome = normalize_result(raw_result, self.policy)
            except WrapperError as exc:
                logger.error("result_normalization_failed", error_type=type(exc).__name__, error=str(exc))
                return InvocationResult(response=None, error=exc)

            response = outcome.response
            if outcome.error is not None and not self.policy.include_body_on_error:
                response = response.model_copy(update={"body": None})

            logger.info(
                "handler_completed",
                status_code=response.status_code,
                classification=outcome.classification,
                warning_count=len(outcome.warnings),
            )
            return InvocationResult(response=response, error=outcome.error, outcome=outcome)


def _error_message(error: WrapperError, include_body: bool) -> str:
    if isinstance(error, ClassifiedStatusError) and not include_body:
        return f"status code {error.status_code}"
    return str(error)


def emit(result: InvocationResult, settings: Settings, stdout: TextIO, stderr: TextIO) -> int:
    """Write the invocation result in the configured output format; return the exit code."""
    policy = settings.policy()

    if policy.framed:
        if result.error is None:
            stdout.write(frame_response(result.response, settings.start_delimiter, settings.end_delimiter))
        else:
            stderr.write(ERROR_PREFIX_FRAMED + _error_message(result.error, policy.include_body_on_error) + "\n")
            if result.response is not None:
                stderr.write(frame_response(result.response, settings.start_delimiter, settings.end_delimiter))
    else:
        if result.error is None:
            text = result.response.body_text() if result.response is not None else None
            stdout.write((text or "") + "\n")
        else:
            stderr.write(ERROR_PREFIX_UNFRAMED + _error_message(result.error, policy.include_body_on_error) + "\n")

    stdout.flush()
    stderr.flush()
    return result.exit_code
