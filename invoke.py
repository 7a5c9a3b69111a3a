"""
invoke.py

WHAT THIS FILE IS FOR
---------------------
Command-line entrypoint of the function wrapper:

    function-wrapper [--handler MODULE:ATTR] [--app-dir DIR] CONTEXT_JSON EVENT_JSON

It is responsible for:
- Reading the two positional arguments (context JSON, event JSON)
- Loading settings and configuring logging (stderr only)
- Importing the handler
- Running the InvocationDriver and emitting its result
- Returning the process exit code (0 success, 1 any failure)

It must NOT contain normalization or decoding logic; those live in
function_wrapper/adapter/*.
"""

from __future__ import annotations

import argparse
import os
import sys
from typing import NoReturn, Optional, Sequence, TextIO

import structlog

from function_wrapper.adapter.exceptions import UsageError, WrapperError
from function_wrapper.adapter.handler_loader import load_handler
from function_wrapper.adapter.invocation_driver import InvocationDriver, InvocationResult, emit
from function_wrapper.utils.logging_config import configure_logging
from function_wrapper.utils.settings import Settings, get_settings

logger = structlog.get_logger(__name__)


class _ArgumentParser(argparse.ArgumentParser):
    """Reports bad options as a UsageError instead of exiting with status 2."""

    def error(self, message: str) -> NoReturn:
        raise UsageError(message)


def _build_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog="function-wrapper",
        description="Invoke a function handler with a JSON context and event and print its normalized response.",
    )
    parser.add_argument(
        "--handler",
        default=None,
        help="Handler reference as 'module:attribute' (default: the 'handler' setting).",
    )
    parser.add_argument(
        "--app-dir",
        default=".",
        help="Directory prepended to the module search path before importing the handler (default: '.').",
    )
    parser.add_argument("args", nargs="*", metavar="ARG", help="CONTEXT_JSON EVENT_JSON")
    return parser


def main(
    argv: Optional[Sequence[str]] = None,
    *,
    settings: Optional[Settings] = None,
    stdout: Optional[TextIO] = None,
    stderr: Optional[TextIO] = None,
) -> int:
    out = stdout or sys.stdout
    err = stderr or sys.stderr
    settings = settings or get_settings()
    configure_logging(settings.log_level, stream=err)

    try:
        ns = _build_parser().parse_args(list(sys.argv[1:] if argv is None else argv))
        if len(ns.args) < 2:
            raise UsageError("Not enough arguments provided")
    except UsageError as exc:
        err.write(f"{exc}\n")
        return 1

    context_json, event_json = ns.args[0], ns.args[1]
    reference = ns.handler or settings.handler

    app_dir = os.path.abspath(ns.app_dir)
    if app_dir not in sys.path:
        sys.path.insert(0, app_dir)

    try:
        handler = load_handler(reference)
    except WrapperError as exc:
        logger.error("handler_load_failed", handler=reference, error=str(exc))
        return emit(InvocationResult(response=None, error=exc), settings, out, err)

    result = InvocationDriver(handler, settings).run(context_json, event_json)
    return emit(result, settings, out, err)


if __name__ == "__main__":
    sys.exit(main())
