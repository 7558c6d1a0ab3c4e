"""API error handling and response helpers."""

import logging
from typing import Any, Dict

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from rentledger.services.errors import SettlementError

logger = logging.getLogger(__name__)


def error_response(error: SettlementError) -> Dict[str, Any]:
    """Create a standardized error response."""
    return {
        "error": {
            "code": error.code,
            "message": error.message,
        }
    }


async def settlement_error_handler(request: Request, exc: SettlementError) -> JSONResponse:
    """Answer a SettlementError with its status and a JSON error body."""
    if exc.http_status >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.code}: {exc.message}")
    else:
        logger.warning(f"{request.method} {request.url.path} rejected: {exc.code}: {exc.message}")
    return JSONResponse(status_code=exc.http_status, content=error_response(exc))


def register_error_handlers(app: FastAPI) -> None:
    """Install the SettlementError handler on an app."""
    app.add_exception_handler(SettlementError, settlement_error_handler)


__all__ = ["error_response", "register_error_handlers", "settlement_error_handler"]
