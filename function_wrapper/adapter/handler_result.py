"""
function_wrapper/adapter/handler_result.py

WHAT THIS FILE IS FOR
---------------------
Handlers may return almost anything. This module turns that dynamic value
into a *closed* set of result variants, once, at the handler boundary:

    AbsentResult       handler returned None
    BytesResult        bytes / bytearray / memoryview
    TextResult         str
    TransportResult    an HTTP response object (status, headers, body stream)
    StructuredResult   anything else (dict, list, dataclass, pydantic model...)

The result normalizer only ever sees these variants.

TRANSPORT RESPONSES
-------------------
`TransportResponse` is the wrapper's own view of an HTTP response: a status
code, the headers as an ordered list of (name, value) pairs (a name may
repeat), and a body stream exposing read() / close(). `requests.Response`
and `httpx.Response` are adapted to it automatically, so a handler can
return the response of an outbound call unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, List, Protocol, Tuple, Union

import httpx
import requests


class BodyStream(Protocol):
    def read(self) -> bytes: ...

    def close(self) -> None: ...


class _CallbackBody:
    """Body stream backed by a reader and a closer callback."""

    def __init__(self, reader: Callable[[], bytes], closer: Callable[[], None]):
        self._reader = reader
        self._closer = closer

    def read(self) -> bytes:
        return self._reader()

    def close(self) -> None:
        self._closer()


@dataclass
class TransportResponse:
    status_code: int
    body: BodyStream
    headers: List[Tuple[str, str]] = field(default_factory=list)

    @classmethod
    def from_requests(cls, resp: requests.Response) -> "TransportResponse":
        # requests already joins repeated header values with ", "
        return cls(
            status_code=resp.status_code,
            headers=list(resp.headers.items()),
            body=_CallbackBody(lambda: resp.content, resp.close),
        )

    @classmethod
    def from_httpx(cls, resp: httpx.Response) -> "TransportResponse":
        return cls(
            status_code=resp.status_code,
            headers=list(resp.headers.multi_items()),
            body=_CallbackBody(resp.read, resp.close),
        )


@dataclass(frozen=True)
class AbsentResult:
    pass


@dataclass(frozen=True)
class BytesResult:
    data: bytes


@dataclass(frozen=True)
class TextResult:
    text: str


@dataclass(frozen=True)
class TransportResult:
    response: TransportResponse


@dataclass(frozen=True)
class StructuredResult:
    value: Any


HandlerResult = Union[AbsentResult, BytesResult, TextResult, TransportResult, StructuredResult]

_VARIANTS = (AbsentResult, BytesResult, TextResult, TransportResult, StructuredResult)


def to_handler_result(value: Any) -> HandlerResult:
    """Map a handler's raw return value onto its result variant."""
    if isinstance(value, _VARIANTS):
        return value
    if value is None:
        return AbsentResult()
    if isinstance(value, (bytes, bytearray, memoryview)):
        return BytesResult(bytes(value))
    if isinstance(value, str):
        return TextResult(value)
    if isinstance(value, TransportResponse):
        return TransportResult(value)
    if isinstance(value, requests.Response):
        return TransportResult(TransportResponse.from_requests(value))
    if isinstance(value, httpx.Response):
        return TransportResult(TransportResponse.from_httpx(value))
    return StructuredResult(value)
