"""
FastAPI Authentication Dependencies for the collaboration services

Authentication itself happens upstream (gateway / session issuer). These
dependencies only turn the forwarded identity headers into an explicit
Principal that every access check and state transition receives as an
argument.
"""

import logging
import os
from typing import Dict, Optional

from fastapi import Header, HTTPException, Request, WebSocket, status
from pydantic import BaseModel

logger = logging.getLogger(__name__)

# Internal service authentication
INTERNAL_SERVICE_SECRET = os.getenv(
    "INTERNAL_SERVICE_SECRET",
    "dev-internal-secret-change-in-production"
)

INTERNAL_SERVICE_USER = "internal-service"


class Principal(BaseModel):
    """The acting identity, passed explicitly into every operation"""
    user_id: str
    is_system: bool = False

    @classmethod
    def system(cls) -> "Principal":
        return cls(user_id=INTERNAL_SERVICE_USER, is_system=True)


async def require_principal(
    request: Request,
    user_id: Optional[str] = Header(None, alias="user-id"),
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
    x_internal_service: Optional[str] = Header(None, alias="X-Internal-Service"),
    x_internal_service_secret: Optional[str] = Header(None, alias="X-Internal-Service-Secret"),
) -> Principal:
    """
    Resolve the principal for a request.

    Priority:
    1. Internal service (X-Internal-Service + X-Internal-Service-Secret)
    2. User id (user-id or X-User-Id)

    Raises:
        HTTPException 401: no identity forwarded
    """
    if x_internal_service == "true" and x_internal_service_secret:
        if x_internal_service_secret == INTERNAL_SERVICE_SECRET:
            logger.debug(f"Internal service request to {request.url.path}")
            return Principal.system()
        client_host = request.client.host if request.client else "unknown"
        logger.warning(f"Invalid internal service secret from {client_host}")

    user_id_value = user_id or x_user_id
    if user_id_value:
        return Principal(user_id=user_id_value)

    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="User authentication required"
    )


async def require_system_principal(
    x_internal_service: Optional[str] = Header(None, alias="X-Internal-Service"),
    x_internal_service_secret: Optional[str] = Header(None, alias="X-Internal-Service-Secret"),
) -> Principal:
    """Only internal callers (schedulers, sweeps) may use the route"""
    if x_internal_service == "true" and x_internal_service_secret == INTERNAL_SERVICE_SECRET:
        return Principal.system()
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="Internal service credentials required"
    )


def websocket_principal(websocket: WebSocket) -> Optional[Principal]:
    """Principal for a websocket handshake (header or ?user_id= query)"""
    user_id = (
        websocket.headers.get("x-user-id")
        or websocket.headers.get("user-id")
        or websocket.query_params.get("user_id")
    )
    return Principal(user_id=user_id) if user_id else None


def is_internal_service_request(principal: Principal) -> bool:
    return principal.is_system


def principal_headers(principal: Principal) -> Dict[str, str]:
    """Headers forwarding a principal to another collaboration service"""
    if principal.is_system:
        return {
            "X-Internal-Service": "true",
            "X-Internal-Service-Secret": INTERNAL_SERVICE_SECRET,
        }
    return {"X-User-Id": principal.user_id}


__all__ = [
    "Principal",
    "INTERNAL_SERVICE_USER",
    "require_principal",
    "require_system_principal",
    "websocket_principal",
    "is_internal_service_request",
    "principal_headers",
]
