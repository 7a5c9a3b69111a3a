"""
function_wrapper/adapter/host_bridge.py

WHAT THIS FILE IS FOR
---------------------
Host-side counterpart of the wrapper. The platform calls
`invoke_wrapped_function(event, context)`; this module runs the wrapper
executable as a subprocess with both values as JSON arguments and turns its
framed output back into a CanonicalResponse.

CALL FLOW CONTEXT
-----------------
platform -> invoke_wrapped_function(event, context)
    -> subprocess: <host_command> CONTEXT_JSON EVENT_JSON
         (START_DELIMITER / END_DELIMITER exported to the child)
    -> extract_framed_response(stdout)       exit code 0
    -> extract_framed_response(stderr)       non-zero exit (error responses
                                             are framed on stderr)

FALLBACK RESPONSES
------------------
- no framed block in the output  -> 500 "No valid JSON response found"
- event / context not JSON-serializable,
  process could not run / failed
  without a framed response      -> 500 "Execution failed"
Both carry Content-Type: text/plain.
"""

from __future__ import annotations

import json
import os
import subprocess
from typing import Any, Dict, Mapping, Optional, Sequence, Union

import structlog
from pydantic import ValidationError

from function_wrapper.adapter.output_framing import extract_framed_response
from function_wrapper.utils.settings import Settings, get_settings
from schemas.context_schema import InvocationContext
from schemas.response_schema import CanonicalResponse

logger = structlog.get_logger(__name__)

NO_RESPONSE_BODY = "No valid JSON response found"
EXECUTION_FAILED_BODY = "Execution failed"


def _plain_error(body: str) -> CanonicalResponse:
    return CanonicalResponse(body=body, status_code=500, headers={"Content-Type": "text/plain"})


def _response_from_payload(payload: Dict[str, Any]) -> Optional[CanonicalResponse]:
    try:
        return CanonicalResponse.model_validate(
            {
                "body": payload.get("body"),
                "statusCode": payload.get("statusCode", 202),
                "headers": payload.get("headers") or {},
            }
        )
    except ValidationError as exc:
        logger.warning("framed_response_invalid", errors=exc.errors())
        return None


def invoke_wrapped_function(
    event: Any,
    context: Union[InvocationContext, Mapping[str, Any], None] = None,
    *,
    settings: Optional[Settings] = None,
    command: Optional[Sequence[str]] = None,
) -> CanonicalResponse:
    """
    Run the wrapper executable for one invocation and return its response.

    Never raises for wrapper failures; they are mapped to 500 responses.
    """
    settings = settings or get_settings()
    argv = list(command or settings.host_command)

    if isinstance(context, InvocationContext):
        context_payload: Any = context.model_dump()
    else:
        context_payload = dict(context or {})

    try:
        context_json = json.dumps(context_payload)
        event_json = json.dumps(event)
    except (TypeError, ValueError) as exc:
        logger.error("invocation_args_not_serializable", error=str(exc))
        return _plain_error(EXECUTION_FAILED_BODY)

    logger.info("function_invoked", cwd=os.getcwd(), command=argv[0] if argv else None)
    logger.debug("function_invocation_args", context=context_json, event=event_json)

    env = {
        **os.environ,
        "START_DELIMITER": settings.start_delimiter,
        "END_DELIMITER": settings.end_delimiter,
    }

    try:
        completed = subprocess.run(
            [*argv, context_json, event_json],
            capture_output=True,
            text=True,
            env=env,
            timeout=settings.host_timeout_seconds,
            check=False,
        )
    except (OSError, subprocess.SubprocessError) as exc:
        logger.error("execution_failed", error=str(exc))
        return _plain_error(EXECUTION_FAILED_BODY)

    if completed.stderr:
        logger.info("wrapped_function_stderr", output=completed.stderr)
    logger.info("wrapped_function_stdout", output=completed.stdout, returncode=completed.returncode)

    source = completed.stdout if completed.returncode == 0 else completed.stderr
    payload = extract_framed_response(source, settings.start_delimiter, settings.end_delimiter)

    if payload is None:
        if completed.returncode != 0:
            logger.error("execution_failed", returncode=completed.returncode)
            return _plain_error(EXECUTION_FAILED_BODY)
        logger.warning("framed_response_missing")
        return _plain_error(NO_RESPONSE_BODY)

    response = _response_from_payload(payload)
    if response is None:
        return _plain_error(NO_RESPONSE_BODY)

    logger.info("framed_response_extracted", status_code=response.status_code)
    return response
