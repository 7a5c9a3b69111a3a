# -------------------------------------------------------------------
# schemas/policy_schema.py
#
# WHAT THIS FILE IS FOR
# --------------------
# The wrapper historically existed in several near-identical variants
# that differed only in output policy. This schema names those
# differences explicitly so a single normalizer and a single driver
# can serve every variant:
#
#   - framed:                 print the JSON response between delimiter
#                             lines (True) or print the bare body (False)
#   - bytes_status_code:      status code applied to raw bytes results
#   - include_body_on_error:  keep or drop the body in an emitted error
#                             response
#   - unclassified_is_error:  how codes outside 2xx / 4xx-5xx are treated
#
# The policy is built from Settings (see function_wrapper/utils/settings.py)
# and is immutable for the duration of an invocation.
# -------------------------------------------------------------------

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class AdapterPolicy(BaseModel):
    """
    Output policy of the result normalizer and invocation driver.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    framed: bool = Field(
        default=True,
        description="Emit the JSON response between start/end delimiter lines.",
    )

    bytes_status_code: Literal[200, 202] = Field(
        default=202,
        description="Status code used when the handler returns raw bytes.",
    )

    include_body_on_error: bool = Field(
        default=True,
        description="Keep the response body when the outcome is classified as an error.",
    )

    unclassified_is_error: bool = Field(
        default=False,
        description=(
            "If true, status codes outside 2xx and 4xx/5xx (1xx, 3xx) are reported "
            "as errors. Otherwise they are emitted as-is with a warning."
        ),
    )
