from __future__ import annotations

import uuid
from contextvars import ContextVar

TRACE_HEADER = "X-Trace-Id"

_trace_id_var: ContextVar[str | None] = ContextVar("shellgate_trace_id", default=None)


def bind_trace_id(candidate: str | None) -> str:
    """Adopt the caller's trace id, or mint one, for the current context."""
    trace_id = (candidate or "").strip() or str(uuid.uuid4())
    _trace_id_var.set(trace_id)
    return trace_id


def current_trace_id() -> str | None:
    return _trace_id_var.get()
