"""
Structured JSON logging for the Ceph RGW exporter.

Every event carries the top-level logger namespace as ``service`` and, when
set, the ``request_id`` of the HTTP request or the ``pass_id`` of the
refresh pass it belongs to.
"""

import logging
import sys
import uuid
from contextvars import ContextVar
from typing import Any, Dict, Optional

import structlog

request_id_var: ContextVar[Optional[str]] = ContextVar('request_id', default=None)
pass_id_var: ContextVar[Optional[str]] = ContextVar('pass_id', default=None)


def configure_logging(service_name: str, log_level: str = "info") -> None:
    """Route structlog through stdlib logging and render JSON to stdout."""
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            add_service_context,
            add_correlation_context,
            structlog.processors.JSONRenderer()
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
    )


def add_service_context(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    # "rgw_exporter.builder" -> service "rgw_exporter"
    logger_name = event_dict.get("logger", "")
    if "." in logger_name:
        event_dict["service"] = logger_name.split(".", 1)[0]
    return event_dict


def add_correlation_context(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    for key, var in (("request_id", request_id_var), ("pass_id", pass_id_var)):
        value = var.get()
        if value:
            event_dict[key] = value
    return event_dict


def set_request_id(request_id: Optional[str] = None) -> str:
    """Bind the current HTTP request's id, generating one if the client sent none."""
    request_id = request_id or str(uuid.uuid4())
    request_id_var.set(request_id)
    return request_id


def set_pass_id(pass_id: Optional[str] = None) -> str:
    """Bind a short id to the refresh pass running in this context."""
    pass_id = pass_id or uuid.uuid4().hex[:12]
    pass_id_var.set(pass_id)
    return pass_id


def get_logger(name: str) -> structlog.BoundLogger:
    return structlog.get_logger(name)
