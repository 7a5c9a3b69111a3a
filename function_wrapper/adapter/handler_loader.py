"""
function_wrapper/adapter/handler_loader.py

WHAT THIS FILE IS FOR
---------------------
Locates the user handler and works out how to call it.

A handler is any callable with at most two parameters:

    def main(): ...
    def main(event): ...
    def main(ctx): ...
    def main(ctx, event): ...
    def main(event: Order, context: InvocationContext): ...

- The context parameter is the one annotated InvocationContext, or named
  `ctx` / `context`. It may come first or second.
- The other parameter is the event. Its annotation is the decode target for
  the event argument; an unannotated event receives the raw bytes.
- Two parameters where neither is the context is rejected.

WHAT THIS FILE IS NOT FOR
-------------------------
It does not decode the event or build the context; the invocation driver
does that with the decode target this module reports.
"""

from __future__ import annotations

import importlib
import inspect
import typing
from dataclasses import dataclass
from typing import Any, Callable, Optional

from function_wrapper.adapter.exceptions import HandlerLoadError, HandlerSignatureError
from schemas.context_schema import InvocationContext

_CONTEXT_NAMES = {"ctx", "context"}


@dataclass(frozen=True)
class HandlerSignature:
    func: Callable[..., Any]
    context_index: Optional[int]
    event_index: Optional[int]
    event_type: Any = bytes

    @property
    def takes_event(self) -> bool:
        return self.event_index is not None

    def invoke(self, ctx: InvocationContext, event: Any) -> Any:
        args: list[Any] = [None] * (int(self.context_index is not None) + int(self.event_index is not None))
        if self.context_index is not None:
            args[self.context_index] = ctx
        if self.event_index is not None:
            args[self.event_index] = event
        return self.func(*args)


def load_handler(reference: str) -> Callable[..., Any]:
    """
    Import a handler from a "package.module:attribute" reference.

    Raises:
        HandlerLoadError
    """
    module_name, sep, attr_path = reference.partition(":")
    if not sep or not module_name or not attr_path:
        raise HandlerLoadError(reference, "expected 'module:attribute'")

    try:
        target: Any = importlib.import_module(module_name)
    except ImportError as exc:
        raise HandlerLoadError(reference, f"module import failed: {exc}") from exc

    for part in attr_path.split("."):
        try:
            target = getattr(target, part)
        except AttributeError as exc:
            raise HandlerLoadError(reference, f"attribute {part!r} not found") from exc

    if not callable(target):
        raise HandlerLoadError(reference, "target is not callable")
    return target


def _is_context_param(param: inspect.Parameter, annotation: Any) -> bool:
    if annotation is InvocationContext:
        return True
    return annotation is inspect.Parameter.empty and param.name in _CONTEXT_NAMES


def inspect_handler(func: Callable[..., Any]) -> HandlerSignature:
    """
    Work out the context / event positions and the event decode target.

    Raises:
        HandlerSignatureError
    """
    try:
        sig = inspect.signature(func)
    except (TypeError, ValueError) as exc:
        raise HandlerSignatureError(f"Cannot inspect handler signature: {exc}") from exc

    try:
        hints = typing.get_type_hints(func)
    except Exception:  # noqa: BLE001
        hints = {}

    params = [
        p
        for p in sig.parameters.values()
        if p.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)
        and p.default is inspect.Parameter.empty
    ]
    extra_required = [
        p
        for p in sig.parameters.values()
        if p.kind is inspect.Parameter.KEYWORD_ONLY and p.default is inspect.Parameter.empty
    ]
    if extra_required:
        raise HandlerSignatureError(
            f"Handler has required keyword-only parameters: {', '.join(p.name for p in extra_required)}"
        )

    if len(params) > 2:
        raise HandlerSignatureError(
            "Handler has wrong numbers of parameters. It can, at most, have one context "
            "parameter and one event parameter."
        )

    annotations = [hints.get(p.name, p.annotation) for p in params]
    context_positions = [i for i, (p, a) in enumerate(zip(params, annotations)) if _is_context_param(p, a)]

    if len(params) == 2 and not context_positions:
        raise HandlerSignatureError("Handler takes two parameters but none of them is the context")
    if len(context_positions) > 1:
        raise HandlerSignatureError("Handler declares more than one context parameter")

    context_index = context_positions[0] if context_positions else None
    event_index = next((i for i in range(len(params)) if i != context_index), None)

    event_type: Any = bytes
    if event_index is not None:
        annotation = annotations[event_index]
        event_type = bytes if annotation is inspect.Parameter.empty else annotation

    return HandlerSignature(
        func=func,
        context_index=context_index,
        event_index=event_index,
        event_type=event_type,
    )
