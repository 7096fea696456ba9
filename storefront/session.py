"""
Session identity.

A session id is an opaque string that scopes cart and order lookups for an
anonymous browser. It is NOT a credential. Precedence:

1. X-Session-ID header
2. Authorization: Bearer <token>
3. a freshly minted token: session_<epoch-ms>_<9 base36 chars>

Nothing is persisted here; the client stores the token and resends it.
"""

import secrets
import string
import time
from typing import Optional

from fastapi import Header, Response

from storefront.errors import ValidationFailed

SESSION_HEADER = "X-Session-ID"
# Width of the session_id columns on carts and orders
MAX_SESSION_ID_LENGTH = 128
_BASE36 = string.digits + string.ascii_lowercase


def mint_session_id() -> str:
    """New token, e.g. session_1760659200000_k3j9x0a1b"""
    suffix = "".join(secrets.choice(_BASE36) for _ in range(9))
    return f"session_{int(time.time() * 1000)}_{suffix}"


def resolve_session_id(
    session_header: Optional[str] = None,
    authorization: Optional[str] = None,
) -> str:
    """
    Pick the session id from the headers, minting one when neither carries it.

    Raises:
        ValidationFailed: the supplied token is longer than MAX_SESSION_ID_LENGTH
    """
    if session_header and session_header.strip():
        return _checked(session_header.strip())
    if authorization:
        scheme, _, token = authorization.strip().partition(" ")
        if scheme.lower() == "bearer" and token.strip():
            return _checked(token.strip())
    return mint_session_id()


def _checked(session_id: str) -> str:
    if len(session_id) > MAX_SESSION_ID_LENGTH:
        raise ValidationFailed(
            f"Session ID must be at most {MAX_SESSION_ID_LENGTH} characters",
            details={"length": len(session_id)},
        )
    return session_id


def get_session_id(
    response: Response,
    x_session_id: Optional[str] = Header(None),
    authorization: Optional[str] = Header(None),
) -> str:
    """
    FastAPI dependency. Echoes the resolved id back in X-Session-ID so a
    client can keep a server-minted token.
    """
    session_id = resolve_session_id(x_session_id, authorization)
    response.headers[SESSION_HEADER] = session_id
    return session_id
