"""
function_wrapper/adapter/event_decoder.py

Turns the event argument into the value the handler declared it wants.

- bytes (or no declaration): the argument text verbatim, UTF-8 encoded,
  without any JSON parsing
- any other type: parsed and validated with a pydantic TypeAdapter
  (models, dataclasses, TypedDicts, dict, Any...)
"""

from __future__ import annotations

import inspect
from typing import Any

from pydantic import TypeAdapter, ValidationError

from function_wrapper.adapter.exceptions import InvalidEventError


def decode_event(raw: str, target: Any = bytes) -> Any:
    """
    Decode the event argument into `target`.

    Raises:
        InvalidEventError: the text is not valid JSON for `target`.
    """
    if target is bytes or target is inspect.Parameter.empty or target is None:
        return raw.encode("utf-8")

    try:
        adapter = TypeAdapter(target)
    except Exception as exc:  # noqa: BLE001
        raise InvalidEventError(f"Unsupported event type {target!r}: {exc}") from exc

    try:
        return adapter.validate_json(raw)
    except ValidationError as exc:
        raise InvalidEventError(f"Invalid event argument: {exc.error_count()} error(s): {exc.errors()[0]['msg']}") from exc
