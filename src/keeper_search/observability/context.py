"""Context propagation for log/trace correlation across async boundaries."""

from __future__ import annotations

from contextvars import ContextVar
from uuid import uuid4


# Per-task context: trace_id, span_id and optional provider id
trace_context: ContextVar[dict | None] = ContextVar("keeper_search_trace_context", default=None)


def generate_trace_id() -> str:
    return uuid4().hex


def generate_span_id() -> str:
    return uuid4().hex[:16]


def get_trace_context() -> dict:
    """Get current trace context, creating one on first access."""
    ctx = trace_context.get()
    if ctx is None or not ctx.get("trace_id"):
        ctx = {"trace_id": generate_trace_id(), "span_id": generate_span_id()}
        trace_context.set(ctx)
    return ctx


def set_trace_context(trace_id: str, span_id: str, **extra: object) -> None:
    trace_context.set({"trace_id": trace_id, "span_id": span_id, **extra})


def update_span_id(span_id: str, **extra: object) -> None:
    """Replace span_id (and merge extra keys) while preserving trace_id."""
    ctx = get_trace_context()
    trace_context.set({**ctx, "span_id": span_id, **extra})
