# tests/test_invoke_cli.py
from __future__ import annotations

import io
import json
import sys
from pathlib import Path
from typing import Any, Dict, Iterator, List, Tuple

import pytest

import invoke
from function_wrapper.utils.settings import DEFAULT_END_DELIMITER, DEFAULT_START_DELIMITER, Settings

FIXTURES_DIR = Path(__file__).resolve().parent / "fixtures"

CTX_ARGS = {
    "activation_id": "12345",
    "api_host": "api.example.com",
    "api_key": "your_api_key",
    "function_name": "your_function_name",
    "function_version": "1.0",
    "namespace": "your_namespace",
    "request_id": "request_123",
}

EVENT_ARGS = {"text": "Test Event", "boolean": True, "integer": 123}


@pytest.fixture(autouse=True)
def _isolate_sys_path(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    monkeypatch.setattr(sys, "path", list(sys.path))
    yield
    sys.modules.pop("sample_handlers", None)


def _run(args: List[str], **settings: Any) -> Tuple[int, str, str]:
    out, err = io.StringIO(), io.StringIO()
    code = invoke.main(
        ["--app-dir", str(FIXTURES_DIR), *args],
        settings=Settings.model_validate({"log_level": "CRITICAL", **settings}),
        stdout=out,
        stderr=err,
    )
    return code, out.getvalue(), err.getvalue()


def _framed(text: str) -> Dict[str, Any]:
    start = text.index(DEFAULT_START_DELIMITER) + len(DEFAULT_START_DELIMITER)
    return json.loads(text[start : text.index(DEFAULT_END_DELIMITER)])


def test_not_enough_arguments() -> None:
    code, out, err = _run(["--handler", "sample_handlers:hello", "{}"])
    assert code == 1
    assert out == ""
    assert err == "Not enough arguments provided\n"


def test_event_as_bytes_with_context() -> None:
    code, out, err = _run(["--handler", "sample_handlers:event_bytes", json.dumps(CTX_ARGS), json.dumps(EVENT_ARGS)])

    assert code == 0, err
    payload = _framed(out)
    assert payload["statusCode"] == 200
    assert payload["headers"] == {"Content-Type": "text/html"}
    assert payload["body"].startswith("Executed successfully with ctx: ")
    assert '"request_id":"request_123"' in payload["body"]
    assert json.dumps(EVENT_ARGS) in payload["body"]


def test_event_as_struct_with_context() -> None:
    code, out, _ = _run(["--handler", "sample_handlers:event_struct", json.dumps(CTX_ARGS), json.dumps(EVENT_ARGS)])

    assert code == 0
    payload = _framed(out)
    assert payload["statusCode"] == 200
    assert '"text":"Test Event"' in payload["body"]
    assert '"integer":123' in payload["body"]


def test_event_as_struct_without_context() -> None:
    code, out, _ = _run(
        ["--handler", "sample_handlers:event_struct_no_ctx", json.dumps(CTX_ARGS), json.dumps(EVENT_ARGS)]
    )

    assert code == 0
    assert _framed(out)["body"].startswith("Executed successfully with ctx: , event: ")


def test_invalid_struct_event_fails_before_handler() -> None:
    code, out, err = _run(["--handler", "sample_handlers:event_struct", json.dumps(CTX_ARGS), "{oops"])

    assert code == 1
    assert out == ""
    assert err.startswith("- Invalid event argument")


def test_error_status_is_framed_on_stderr() -> None:
    code, out, err = _run(["--handler", "sample_handlers:not_found", "{}", "{}"])

    assert code == 1
    assert out == ""
    assert err.splitlines()[0] == "- not found"
    assert _framed(err) == {"body": "not found", "statusCode": 404}


def test_handler_exception_reports_and_exits_non_zero() -> None:
    code, out, err = _run(["--handler", "sample_handlers:explode", "{}", '{"a": 1}'])

    assert code == 1
    assert out == ""
    assert err.startswith("- Handler failed: ValueError: cannot handle ['a']")


def test_unknown_option_is_a_usage_error() -> None:
    code, out, err = _run(["--verbose", "{}", "{}"])
    assert code == 1
    assert out == ""
    assert "unrecognized arguments: --verbose" in err


def test_unknown_handler_reference() -> None:
    code, _, err = _run(["--handler", "sample_handlers:nope", "{}", "{}"])
    assert code == 1
    assert "Cannot load handler 'sample_handlers:nope'" in err


def test_handler_reference_defaults_to_settings() -> None:
    code, out, _ = _run(["{}", "{}"], handler="sample_handlers:hello")
    assert code == 0
    assert _framed(out) == {"body": "hello", "statusCode": 202}


def test_unframed_output() -> None:
    code, out, _ = _run(["--handler", "sample_handlers:hello", "{}", "{}"], framed=False)
    assert code == 0
    assert out == "hello\n"

    code, out, err = _run(["--handler", "sample_handlers:not_found", "{}", "{}"], framed=False)
    assert code == 1
    assert out == ""
    assert err == "ERR: not found\n"
