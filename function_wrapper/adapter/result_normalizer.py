"""
function_wrapper/adapter/result_normalizer.py

WHAT THIS FILE IS FOR
---------------------
This module maps whatever a handler returned onto the canonical
{body, statusCode, headers} response, and classifies the outcome as
success / error / unclassified.

DISPATCH (in priority order)
----------------------------
1) AbsentResult      -> statusCode 202, no body
2) BytesResult       -> body = UTF-8 text, statusCode = policy.bytes_status_code
3) TextResult        -> body = text, statusCode 202
4) TransportResult   -> body stream drained and closed, status + headers copied
                        (repeated header values joined with ", ")
5) StructuredResult  -> JSON round trip into a mapping, then the optional
                        `body`, `statusCode` and `headers` keys are applied

ERROR HANDLING RULES
--------------------
- Body read / JSON encode / JSON decode failures are fatal and raised
  (BodyReadError / EncodingError / DecodingError).
- A bad `statusCode` value or a bad header entry is NOT fatal: it is logged,
  recorded in `NormalizationOutcome.warnings`, and the default is kept.
- An error status code never discards the response: the outcome carries both
  the response and a ClassifiedStatusError whose payload is the body text.

WHAT THIS FILE IS NOT FOR
-------------------------
This module MUST NOT:
- Call the handler
- Print or frame the response
- Decide exit codes
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

import structlog
from pydantic_core import PydanticSerializationError, to_jsonable_python

from function_wrapper.adapter.exceptions import (
    BodyReadError,
    ClassifiedStatusError,
    CoercionError,
    DecodingError,
    EncodingError,
)
from function_wrapper.adapter.handler_result import (
    AbsentResult,
    BodyStream,
    BytesResult,
    StructuredResult,
    TextResult,
    TransportResponse,
    TransportResult,
    to_handler_result,
)
from function_wrapper.adapter.status_normalizer import Classification, classify_status, is_failure
from function_wrapper.utils.value_coercion import coerce_to_int, coerce_to_string
from schemas.policy_schema import AdapterPolicy
from schemas.response_schema import DEFAULT_STATUS_CODE, CanonicalResponse

logger = structlog.get_logger(__name__)

_MIN_STATUS_CODE = 100
_MAX_STATUS_CODE = 599


@dataclass
class NormalizationOutcome:
    response: CanonicalResponse
    classification: Classification
    error: Optional[ClassifiedStatusError] = None
    warnings: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None


def normalize_result(result: Any, policy: Optional[AdapterPolicy] = None) -> NormalizationOutcome:
    """
    Normalize a handler result (raw value or HandlerResult variant).

    Raises:
        BodyReadError, EncodingError, DecodingError
    """
    policy = policy or AdapterPolicy()
    variant = to_handler_result(result)

    if isinstance(variant, AbsentResult):
        return _finish(CanonicalResponse(status_code=DEFAULT_STATUS_CODE), policy, [])

    if isinstance(variant, BytesResult):
        response = CanonicalResponse(
            body=variant.data.decode("utf-8", errors="replace"),
            status_code=policy.bytes_status_code,
        )
        return _finish(response, policy, [])

    if isinstance(variant, TextResult):
        return _finish(CanonicalResponse(body=variant.text, status_code=DEFAULT_STATUS_CODE), policy, [])

    if isinstance(variant, TransportResult):
        return _normalize_transport(variant.response, policy)

    if isinstance(variant, StructuredResult):
        return _normalize_structured(variant.value, policy)

    raise TypeError(f"Unsupported handler result variant: {type(variant).__name__}")


# ------------------------------------------------------------------ #
# Transport responses
# ------------------------------------------------------------------ #
def flatten_headers(headers: Iterable[Tuple[str, str]]) -> Dict[str, str]:
    """Collapse (name, value) pairs into one value per name, joined with ", "."""
    flat: Dict[str, str] = {}
    for name, value in headers:
        flat[name] = f"{flat[name]}, {value}" if name in flat else value
    return flat


def _normalize_transport(resp: TransportResponse, policy: AdapterPolicy) -> NormalizationOutcome:
    stream = resp.body
    try:
        try:
            raw = stream.read()
        except Exception as exc:  # noqa: BLE001
            logger.error("transport_body_read_failed", status_code=resp.status_code, error=str(exc))
            raise BodyReadError(f"Failed to read response body: {exc}") from exc

        text = raw if isinstance(raw, str) else bytes(raw).decode("utf-8", errors="replace")

        warnings: List[str] = []
        response = CanonicalResponse(body=text, headers=flatten_headers(resp.headers))
        _apply_status_code(response, resp.status_code, warnings)
        return _finish(response, policy, warnings)
    finally:
        _close_quietly(stream, resp.status_code)


def _close_quietly(stream: BodyStream, status_code: int) -> None:
    # A failing close never replaces the outcome or the read error.
    try:
        stream.close()
    except Exception as exc:  # noqa: BLE001
        logger.warning("transport_body_close_failed", status_code=status_code, error=str(exc))


# ------------------------------------------------------------------ #
# Structured values
# ------------------------------------------------------------------ #
def _encode_structured(value: Any) -> str:
    # Models, dataclasses and datetimes are converted at any depth.
    try:
        jsonable = to_jsonable_python(value, by_alias=True)
        return json.dumps(jsonable, separators=(",", ":"), ensure_ascii=False, allow_nan=False)
    except (PydanticSerializationError, TypeError, ValueError) as exc:
        logger.error("structured_result_encode_failed", type=type(value).__name__, error=str(exc))
        raise EncodingError(f"Cannot encode handler result of type {type(value).__name__}: {exc}") from exc


def _decode_mapping(encoded: str) -> Dict[str, Any]:
    try:
        decoded = json.loads(encoded)
    except ValueError as exc:
        raise DecodingError(f"Cannot decode handler result: {exc}") from exc
    if not isinstance(decoded, dict):
        logger.error("structured_result_not_mapping", type=type(decoded).__name__)
        raise DecodingError(f"Cannot decode handler result of JSON type {type(decoded).__name__} into a mapping")
    return decoded


def _normalize_structured(value: Any, policy: AdapterPolicy) -> NormalizationOutcome:
    encoded = _encode_structured(value)
    mapping = _decode_mapping(encoded)

    warnings: List[str] = []
    response = CanonicalResponse(body=encoded, status_code=DEFAULT_STATUS_CODE)

    if "body" in mapping:
        body = mapping["body"]
        response.body = None if body is None else coerce_to_string(body)

    if "statusCode" in mapping:
        raw_code = mapping["statusCode"]
        try:
            _apply_status_code(response, coerce_to_int(raw_code), warnings)
        except CoercionError as exc:
            _warn(warnings, "status_code_not_convertible", f"statusCode {raw_code!r} ignored: {exc}")

    if "headers" in mapping:
        response.headers = _headers_from_field(mapping["headers"], warnings)

    return _finish(response, policy, warnings)


def _headers_from_field(headers: Any, warnings: List[str]) -> Dict[str, str]:
    if isinstance(headers, str):
        try:
            decoded = json.loads(headers)
        except ValueError as exc:
            raise DecodingError(f"Cannot decode headers string: {exc}") from exc
        if not isinstance(decoded, dict) or not all(isinstance(v, str) for v in decoded.values()):
            raise DecodingError("Headers string does not decode into a mapping of strings")
        return decoded

    if isinstance(headers, dict):
        out: Dict[str, str] = {}
        for name, value in headers.items():
            if isinstance(value, str):
                out[name] = value
            else:
                _warn(warnings, "header_value_not_string", f"Header value is not a string: {name} {value!r}")
        return out

    _warn(warnings, "headers_unhandled_type", f"Unhandled type for headers: {type(headers).__name__}")
    return {}


# ------------------------------------------------------------------ #
# Shared helpers
# ------------------------------------------------------------------ #
def _warn(warnings: List[str], event: str, message: str) -> None:
    logger.warning(event, detail=message)
    warnings.append(message)


def _apply_status_code(response: CanonicalResponse, status_code: int, warnings: List[str]) -> None:
    if not _MIN_STATUS_CODE <= status_code <= _MAX_STATUS_CODE:
        _warn(
            warnings,
            "status_code_out_of_range",
            f"statusCode {status_code} is not a valid HTTP status; keeping {response.status_code}",
        )
        return
    response.status_code = status_code


def _finish(response: CanonicalResponse, policy: AdapterPolicy, warnings: List[str]) -> NormalizationOutcome:
    classification = classify_status(response.status_code)
    if classification == "unclassified":
        _warn(warnings, "status_code_unclassified", f"statusCode {response.status_code} is neither 2xx nor 4xx/5xx")

    error: Optional[ClassifiedStatusError] = None
    if is_failure(classification, unclassified_is_error=policy.unclassified_is_error):
        error = ClassifiedStatusError(response.status_code, response.body_text())
        logger.info("handler_result_classified_error", status_code=response.status_code)

    return NormalizationOutcome(
        response=response,
        classification=classification,
        error=error,
        warnings=warnings,
    )
