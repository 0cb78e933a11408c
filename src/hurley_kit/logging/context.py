"""Context variables for structured logging."""

from contextvars import ContextVar
from typing import Dict, Optional

_service: ContextVar[str] = ContextVar("service", default="")
_component: ContextVar[str] = ContextVar("component", default="")
_trace_id: ContextVar[str] = ContextVar("trace_id", default="")
_request_id: ContextVar[str] = ContextVar("request_id", default="")


def set_log_context(
    service: Optional[str] = None,
    component: Optional[str] = None,
    trace_id: Optional[str] = None,
    request_id: Optional[str] = None,
) -> None:
    if service is not None:
        _service.set(service)
    if component is not None:
        _component.set(component)
    if trace_id is not None:
        _trace_id.set(trace_id)
    if request_id is not None:
        _request_id.set(request_id)


def get_log_context() -> Dict[str, str]:
    return {
        "service": _service.get(),
        "component": _component.get(),
        "trace_id": _trace_id.get(),
        "request_id": _request_id.get(),
    }


def clear_log_context() -> None:
    _service.set("")
    _component.set("")
    _trace_id.set("")
    _request_id.set("")
