# tests/test_invocation_driver.py
from __future__ import annotations

import io
import json
from typing import Any, Dict

import pytest
from pydantic import BaseModel

from function_wrapper.adapter.exceptions import (
    ClassifiedStatusError,
    DecodingError,
    HandlerExecutionError,
    HandlerSignatureError,
    InvalidContextError,
    InvalidEventError,
)
from function_wrapper.adapter.handler_result import TransportResponse
from function_wrapper.adapter.invocation_driver import InvocationDriver, InvocationResult, emit
from function_wrapper.utils.settings import DEFAULT_END_DELIMITER, DEFAULT_START_DELIMITER, Settings
from schemas.context_schema import InvocationContext
from schemas.response_schema import CanonicalResponse

CONTEXT_JSON = json.dumps({"activation_id": "a-1", "request_id": "r-1", "function_name": "fn"})


class CustomInput(BaseModel):
    text: str
    integer: int


def _settings(**overrides: Any) -> Settings:
    return Settings.model_validate(overrides)


def _emit(result: InvocationResult, settings: Settings) -> tuple[int, str, str]:
    out, err = io.StringIO(), io.StringIO()
    code = emit(result, settings, out, err)
    return code, out.getvalue(), err.getvalue()


def _framed_payload(text: str) -> Dict[str, Any]:
    start = text.index(DEFAULT_START_DELIMITER) + len(DEFAULT_START_DELIMITER)
    end = text.index(DEFAULT_END_DELIMITER)
    return json.loads(text[start:end])


# ------------------------------------------------------------------ #
# run()
# ------------------------------------------------------------------ #
def test_run_passes_context_and_typed_event_to_handler() -> None:
    seen: Dict[str, Any] = {}

    def handler(ctx: InvocationContext, event: CustomInput) -> Dict[str, Any]:
        seen["ctx"] = ctx
        seen["event"] = event
        return {"body": f"{event.text}-{event.integer}", "statusCode": 200}

    result = InvocationDriver(handler, _settings()).run(CONTEXT_JSON, '{"text": "hi", "integer": 2}')

    assert result.exit_code == 0
    assert result.error is None
    assert result.response is not None
    assert result.response.to_wire() == {"body": "hi-2", "statusCode": 200}
    assert seen["ctx"].request_id == "r-1"
    assert seen["event"] == CustomInput(text="hi", integer=2)


def test_run_gives_raw_bytes_to_unannotated_event() -> None:
    def handler(ctx, event):  # noqa: ANN001
        return event

    result = InvocationDriver(handler, _settings()).run(CONTEXT_JSON, '{"raw": true}')
    assert result.response is not None
    assert result.response.body == '{"raw": true}'
    assert result.response.status_code == 202


def test_run_rejects_invalid_event_before_calling_handler() -> None:
    calls: list[Any] = []

    def handler(event: CustomInput) -> None:
        calls.append(event)

    result = InvocationDriver(handler, _settings()).run(CONTEXT_JSON, '{"text": 1}')

    assert isinstance(result.error, InvalidEventError)
    assert result.response is None
    assert result.exit_code == 1
    assert calls == []


def test_run_rejects_invalid_context_before_calling_handler() -> None:
    calls: list[Any] = []

    def handler() -> None:
        calls.append(True)

    result = InvocationDriver(handler, _settings()).run("[]", "{}")
    assert isinstance(result.error, InvalidContextError)
    assert calls == []


def test_run_rejects_bad_handler_signature() -> None:
    def handler(a: int, b: int) -> int:
        return a + b

    result = InvocationDriver(handler, _settings()).run(CONTEXT_JSON, "{}")
    assert isinstance(result.error, HandlerSignatureError)


def test_handler_exception_becomes_error_result() -> None:
    def handler() -> None:
        raise RuntimeError("boom")

    result = InvocationDriver(handler, _settings()).run(CONTEXT_JSON, "{}")

    assert isinstance(result.error, HandlerExecutionError)
    assert isinstance(result.error.cause, RuntimeError)
    assert "boom" in str(result.error)
    assert result.response is None
    assert result.exit_code == 1


def test_normalization_failure_is_terminal() -> None:
    def handler() -> Any:
        return {"body": "x", "headers": "not json"}

    result = InvocationDriver(handler, _settings()).run(CONTEXT_JSON, "{}")
    assert isinstance(result.error, DecodingError)
    assert result.response is None


def test_failing_body_close_does_not_escape_the_driver() -> None:
    class _Body:
        def read(self) -> bytes:
            return b"done"

        def close(self) -> None:
            raise OSError("close failed")

    def handler() -> TransportResponse:
        return TransportResponse(status_code=200, body=_Body())

    result = InvocationDriver(handler, _settings()).run(CONTEXT_JSON, "{}")

    assert result.exit_code == 0
    assert result.response is not None
    assert result.response.to_wire() == {"body": "done", "statusCode": 200}


def test_classified_error_keeps_response() -> None:
    def handler() -> TransportResponse:
        return TransportResponse(status_code=404, body=io.BytesIO(b"not found"))

    result = InvocationDriver(handler, _settings()).run(CONTEXT_JSON, "{}")

    assert isinstance(result.error, ClassifiedStatusError)
    assert result.response is not None
    assert result.response.body == "not found"
    assert result.response.status_code == 404
    assert result.exit_code == 1


def test_classified_error_drops_body_when_policy_says_so() -> None:
    def handler() -> Dict[str, Any]:
        return {"body": "secret diagnostics", "statusCode": 500}

    result = InvocationDriver(handler, _settings(include_body_on_error=False)).run(CONTEXT_JSON, "{}")

    assert result.response is not None
    assert result.response.body is None
    assert result.response.status_code == 500
    # the normalization outcome still has it
    assert result.outcome is not None and result.outcome.response.body == "secret diagnostics"


# ------------------------------------------------------------------ #
# emit()
# ------------------------------------------------------------------ #
def test_emit_framed_success_goes_to_stdout() -> None:
    result = InvocationResult(response=CanonicalResponse(body="hi", status_code=201))
    code, out, err = _emit(result, _settings())

    assert code == 0
    assert err == ""
    assert out.startswith(DEFAULT_START_DELIMITER + "\n")
    assert out.rstrip("\n").endswith(DEFAULT_END_DELIMITER)
    assert _framed_payload(out) == {"body": "hi", "statusCode": 201}


def test_emit_framed_classified_error_goes_to_stderr_with_response() -> None:
    response = CanonicalResponse(body="not found", status_code=404)
    result = InvocationResult(response=response, error=ClassifiedStatusError(404, "not found"))
    code, out, err = _emit(result, _settings())

    assert code == 1
    assert out == ""
    assert err.splitlines()[0] == "- not found"
    assert _framed_payload(err) == {"body": "not found", "statusCode": 404}


def test_emit_framed_fatal_error_has_no_framed_block() -> None:
    result = InvocationResult(response=None, error=InvalidEventError("Invalid event argument: bad"))
    code, out, err = _emit(result, _settings())

    assert code == 1
    assert out == ""
    assert err == "- Invalid event argument: bad\n"


def test_emit_uses_configured_delimiters() -> None:
    settings = _settings(start_delimiter="--start--", end_delimiter="--end--")
    _, out, _ = _emit(InvocationResult(response=CanonicalResponse(body="x")), settings)
    assert out.splitlines()[0] == "--start--"
    assert out.splitlines()[-1] == "--end--"


def test_emit_unframed_success_prints_body_only() -> None:
    settings = _settings(framed=False)
    code, out, err = _emit(InvocationResult(response=CanonicalResponse(body="hello")), settings)
    assert code == 0
    assert out == "hello\n"
    assert err == ""


def test_emit_unframed_error_prints_prefixed_line() -> None:
    settings = _settings(framed=False)
    result = InvocationResult(
        response=CanonicalResponse(body="not found", status_code=404),
        error=ClassifiedStatusError(404, "not found"),
    )
    code, out, err = _emit(result, settings)

    assert code == 1
    assert out == ""
    assert err == "ERR: not found\n"


def test_emit_unframed_error_without_body_reports_status_code() -> None:
    settings = _settings(framed=False, include_body_on_error=False)
    result = InvocationResult(
        response=CanonicalResponse(status_code=500),
        error=ClassifiedStatusError(500, "secret diagnostics"),
    )
    _, _, err = _emit(result, settings)
    assert err == "ERR: status code 500\n"


@pytest.mark.parametrize("framed", [True, False])
def test_run_then_emit_end_to_end(framed: bool) -> None:
    def handler(ctx: InvocationContext) -> str:
        return f"hello {ctx.function_name}"

    settings = _settings(framed=framed)
    result = InvocationDriver(handler, settings).run(CONTEXT_JSON, "{}")
    code, out, _ = _emit(result, settings)

    assert code == 0
    if framed:
        assert _framed_payload(out) == {"body": "hello fn", "statusCode": 202}
    else:
        assert out == "hello fn\n"
