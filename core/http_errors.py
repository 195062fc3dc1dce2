"""
HTTP mapping for operation results

Used by every FastAPI surface: failed OperationResults become HTTPExceptions
with the status from ERROR_STATUS_CODES, TransportError becomes 503.
"""

import logging

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse

from core.results import OperationResult, TransportError

logger = logging.getLogger(__name__)


def raise_for_result(result: OperationResult):
    """Return the result value or raise the matching HTTPException"""
    if result.success:
        return result.value
    raise HTTPException(
        status_code=result.status_code,
        detail={"error": result.error.value if result.error else None, "message": result.message},
    )


async def transport_error_handler(request: Request, exc: TransportError):
    logger.error(f"Transport failure on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": str(exc), "retryable": True},
        headers={"Retry-After": "1"},
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(TransportError, transport_error_handler)
