"""
function_wrapper/adapter/output_framing.py

Delimiter framing of the emitted response.

The wrapper may print arbitrary log text around the response, so the host
locates the response by its framing:

    <start delimiter>
    { ...indented JSON... }
    <end delimiter>

`frame_response` writes that block; `extract_framed_response` finds the
first such block in captured output and decodes it.
"""

from __future__ import annotations

import json
import re
from typing import Any, Dict, Optional

from function_wrapper.utils.settings import DEFAULT_END_DELIMITER, DEFAULT_START_DELIMITER
from schemas.response_schema import CanonicalResponse


def frame_response(
    response: Optional[CanonicalResponse],
    start_delimiter: str = DEFAULT_START_DELIMITER,
    end_delimiter: str = DEFAULT_END_DELIMITER,
) -> str:
    payload = response.to_wire() if response is not None else None
    body = json.dumps(payload, indent=2, ensure_ascii=False)
    return f"{start_delimiter}\n{body}\n{end_delimiter}\n"


def extract_framed_response(
    output: str,
    start_delimiter: str = DEFAULT_START_DELIMITER,
    end_delimiter: str = DEFAULT_END_DELIMITER,
) -> Optional[Dict[str, Any]]:
    """
    Return the decoded JSON object of the first framed block, or None when no
    block exists or its content is not a JSON object.
    """
    pattern = re.compile(rf"{re.escape(start_delimiter)}\r?\n(.*?)\r?\n{re.escape(end_delimiter)}", re.DOTALL)
    match = pattern.search(output)
    if not match or not match.group(1):
        return None

    try:
        decoded = json.loads(match.group(1))
    except ValueError:
        return None
    return decoded if isinstance(decoded, dict) else None
