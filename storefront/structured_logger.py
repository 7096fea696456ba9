"""
Structured JSON logger for storefront operations.

Each entry is one line of JSON: timestamp, level, logger, event_type,
message and an optional context object. Customer PII never reaches the
log: params go through redact() first.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Dict, Any, Optional

from storefront.config import get_config


SENSITIVE_KEYS = ("email", "phone", "address", "secret", "token", "key", "password")


def redact(data: Any) -> Any:
    """
    Mask values whose key looks sensitive. Recurses into dicts and lists.
    """
    if isinstance(data, dict):
        redacted = {}
        for key, value in data.items():
            if any(s in str(key).lower() for s in SENSITIVE_KEYS):
                redacted[key] = "[REDACTED]"
            else:
                redacted[key] = redact(value)
        return redacted
    if isinstance(data, list):
        return [redact(item) for item in data]
    return data


class StructuredLogger:
    """Writes one JSON object per operation event to stdout."""

    def __init__(self, name: str = "storefront", log_level: str = "INFO"):
        self.name = name
        level = getattr(logging, log_level.upper(), logging.INFO)
        self.logger = logging.getLogger(name)
        self.logger.setLevel(level)

        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(level)
        handler.setFormatter(logging.Formatter('%(message)s'))

        self.logger.handlers = []
        self.logger.addHandler(handler)
        self.logger.propagate = False

    def emit(self, level: int, event_type: str, message: str, context: Dict[str, Any]):
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": logging.getLevelName(level),
            "logger": self.name,
            "event_type": event_type,
            "message": message,
            "context": context,
        }
        # default=str keeps Decimal / datetime values from breaking the line
        self.logger.log(level, json.dumps(entry, default=str))

    def log_request(
        self,
        operation: str,
        request_id: str,
        session_id: Optional[str] = None,
        params: Optional[Dict[str, Any]] = None
    ):
        """Start of a service operation."""
        context = {
            "request_id": request_id,
            "operation": operation,
            "params": redact(params or {}),
        }
        if session_id:
            context["session_id"] = session_id
        self.emit(logging.INFO, "request", operation, context)

    def log_response(self, operation: str, request_id: str, status: str, latency_ms: float):
        """Outcome of a service operation: OK or the error code."""
        context = {
            "request_id": request_id,
            "operation": operation,
            "status": status,
            "latency_ms": round(latency_ms, 2),
        }
        self.emit(logging.INFO, "response", f"{status} for {operation}", context)

    def log_error(
        self,
        error_type: str,
        error_message: str,
        request_id: Optional[str] = None,
        stack_trace: Optional[str] = None
    ):
        """The detailed error, never the user-facing one."""
        context = {"error_type": error_type, "error_message": error_message}
        if request_id:
            context["request_id"] = request_id
        if stack_trace:
            context["stack_trace"] = stack_trace
        self.emit(logging.ERROR, "error", f"{error_type}: {error_message}", context)


structured_logger = StructuredLogger("storefront", log_level=get_config().log_level)
log_request = structured_logger.log_request
log_response = structured_logger.log_response
log_error = structured_logger.log_error
