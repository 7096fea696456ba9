"""
Per-operation bookkeeping shared by the service modules:
request logging, latency metrics, and translating storage failures into
user-safe errors.
"""

import contextvars
import time
import traceback
import uuid
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.errors import StorefrontError, UpstreamFailure, ValidationFailed
from storefront.metrics import record_request_metrics
from storefront.structured_logger import log_request, log_response, log_error

# Set by the HTTP middleware so service logs carry the same id as X-Request-ID
current_request_id: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "current_request_id", default=None
)

STORAGE_UNAVAILABLE = "Storage is temporarily unavailable. Please try again."

# Upper bound of the INTEGER columns ids, prices and quantities are stored in
MAX_DB_INT = 2**31 - 1


def new_request_id() -> str:
    return str(uuid.uuid4())


@contextmanager
def track_operation(
    operation: str,
    session_id: Optional[str] = None,
    params: Optional[Dict[str, Any]] = None,
) -> Iterator[str]:
    """
    Wrap one service call: logs request/response, records latency, and logs
    unexpected exceptions with a stack trace before re-raising them.

    Yields the request id.
    """
    request_id = current_request_id.get() or new_request_id()
    start_time = time.time()
    log_request(operation, request_id, session_id=session_id, params=params)

    status = "OK"
    is_error = False
    try:
        yield request_id
    except StorefrontError as e:
        status = e.code.value
        is_error = e.status_code >= 500
        raise
    except Exception as e:
        status = "ERROR"
        is_error = True
        log_error(type(e).__name__, str(e), request_id=request_id, stack_trace=traceback.format_exc())
        raise
    finally:
        latency_ms = (time.time() - start_time) * 1000
        record_request_metrics(operation, latency_ms, is_error=is_error)
        log_response(operation, request_id, status, latency_ms)


def require_db(db: Optional[Session]) -> Session:
    """get_db yields None when no database is configured."""
    if db is None:
        raise UpstreamFailure("Database not configured", status_code=503)
    return db


@contextmanager
def storage_errors(db: Session, action: str) -> Iterator[None]:
    """
    Roll back and raise UpstreamFailure on any SQLAlchemy error.
    The detailed error is logged; the client sees a generic message.
    """
    try:
        yield
    except SQLAlchemyError as e:
        db.rollback()
        log_error(
            "StorageError",
            f"{action}: {e}",
            request_id=current_request_id.get(),
            stack_trace=traceback.format_exc(),
        )
        raise UpstreamFailure(STORAGE_UNAVAILABLE, details={"action": action}) from e


def parse_id(raw: Any, label: str = "ID") -> int:
    """
    Numeric path/query id -> int. Non-numeric or out-of-range input is a
    validation error, kept distinct from "not found".
    """
    if isinstance(raw, bool):
        raise ValidationFailed(f"Invalid {label}", details={"value": raw})
    try:
        value = int(str(raw).strip())
    except (TypeError, ValueError):
        raise ValidationFailed(f"Invalid {label}", details={"value": raw})
    if value <= 0 or value > MAX_DB_INT:
        raise ValidationFailed(f"Invalid {label}", details={"value": raw})
    return value
