"""
function_wrapper/adapter/status_normalizer.py

WHAT THIS FILE IS FOR
---------------------
This module defines the *single canonical rule* for classifying the
status code of a normalized handler response.

CLASSIFICATION RULE
-------------------
- 200 <= code < 300  -> "success"
- 400 <= code < 600  -> "error"
- anything else      -> "unclassified" (1xx, 3xx)

Unclassified codes are never reported as "success". Whether they are
surfaced as failures is an explicit policy decision
(AdapterPolicy.unclassified_is_error), taken by the caller via
`is_failure()`.

WHAT THIS FILE IS NOT FOR
-------------------------
This module MUST NOT:
- Inspect response bodies
- Decide or coerce status codes
- Log, raise, or handle exceptions

It performs **pure, deterministic mapping only**.
"""

from __future__ import annotations

from typing import Literal

Classification = Literal["success", "error", "unclassified"]


def is_success_status(status_code: int) -> bool:
    return 200 <= status_code < 300


def is_error_status(status_code: int) -> bool:
    return 400 <= status_code < 600


def classify_status(status_code: int) -> Classification:
    """
    Wrapper contract:
      - 2xx      -> "success"
      - 4xx, 5xx -> "error"
      - other    -> "unclassified"
    """
    if is_success_status(status_code):
        return "success"
    if is_error_status(status_code):
        return "error"
    return "unclassified"


def is_failure(classification: Classification, *, unclassified_is_error: bool = False) -> bool:
    if classification == "error":
        return True
    if classification == "unclassified":
        return unclassified_is_error
    return False
