# -------------------------------------------------------------------
# schemas/context_schema.py
#
# WHAT THIS FILE IS FOR
# --------------------
# The invocation context handed to every handler.
#
# The platform passes the context as a JSON object with a fixed set of
# keys. This schema holds exactly those seven keys as named, immutable
# string fields:
#
#   activation_id, api_host, api_key, function_name,
#   function_version, namespace, request_id
#
# Rules:
#   - missing keys default to "" (never an error)
#   - unknown keys are dropped, never exposed to the handler
#   - values must already be strings (strict mode, no coercion)
#   - the object is frozen once built
# -------------------------------------------------------------------

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class InvocationContext(BaseModel):
    """
    Context values of a single function invocation.
    """

    model_config = ConfigDict(frozen=True, extra="ignore", strict=True)

    activation_id: str = ""
    api_host: str = ""
    api_key: str = ""
    function_name: str = ""
    function_version: str = ""
    namespace: str = ""
    request_id: str = ""
