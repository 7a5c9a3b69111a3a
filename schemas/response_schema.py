# -------------------------------------------------------------------
# schemas/response_schema.py
#
# WHAT THIS FILE IS FOR
# --------------------
# The canonical response every handler result is normalized into.
#
# NAMING CONVENTION (IMPORTANT)
# -----------------------------
# Fields use snake_case in Python. The wire name of status_code is
# `statusCode` (the platform's output contract), produced by alias at
# serialization time via `to_wire()`.
#
# Absent fields are omitted from the wire form:
#   - body None        -> no "body" key
#   - headers empty    -> no "headers" key
#
# INVARIANT
# ---------
# status_code is always a valid HTTP status code (100-599).
# -------------------------------------------------------------------

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from function_wrapper.utils.value_coercion import coerce_to_string

DEFAULT_STATUS_CODE = 202


class CanonicalResponse(BaseModel):
    """
    Normalized {body, statusCode, headers} triple emitted by the wrapper.
    """

    model_config = ConfigDict(populate_by_name=True)

    body: Optional[Any] = None
    status_code: int = Field(DEFAULT_STATUS_CODE, alias="statusCode", ge=100, le=599)
    headers: Dict[str, str] = Field(default_factory=dict)

    def to_wire(self) -> Dict[str, Any]:
        """Return the JSON-ready dict with wire names and empty fields dropped."""
        payload: Dict[str, Any] = {}
        if self.body is not None:
            payload["body"] = self.body
        payload["statusCode"] = self.status_code
        if self.headers:
            payload["headers"] = dict(self.headers)
        return payload

    def body_text(self) -> Optional[str]:
        """Body as display text (structured bodies are JSON-encoded)."""
        if self.body is None:
            return None
        if isinstance(self.body, str):
            return self.body
        return coerce_to_string(self.body)
