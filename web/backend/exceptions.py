#!/usr/bin/env python3
"""
Error handlers for the web application.

Maps the funnel error taxonomy onto HTTP status codes with a consistent
JSON body: {"success": false, "error": ..., "type": ...}.
"""

import logging
from typing import Dict, Type

from fastapi import Request, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from core.errors import (
    ConfigurationError,
    DownstreamError,
    FunnelError,
    InstanceNotFound,
    InvalidTransition,
    TokenError,
    ValidationError,
)

logger = logging.getLogger(__name__)

STATUS_CODES: Dict[Type[FunnelError], int] = {
    ValidationError: 400,
    InstanceNotFound: 404,
    InvalidTransition: 409,
    DownstreamError: 502,
    ConfigurationError: 500,
}


def status_code_for(exc: FunnelError) -> int:
    if isinstance(exc, TokenError):
        return 400 if exc.reason == TokenError.MISSING else 409
    for exc_type, status_code in STATUS_CODES.items():
        if isinstance(exc, exc_type):
            return status_code
    return 500


async def funnel_exception_handler(
    request: Request,
    exc: FunnelError
) -> JSONResponse:
    """
    Handle domain exceptions.

    Args:
        request: The FastAPI request.
        exc: The funnel exception.

    Returns:
        JSONResponse with error details.
    """
    status_code = status_code_for(exc)
    if status_code >= 500:
        logger.error(f"Service error in {request.url.path}: {exc}", exc_info=True)
    else:
        logger.info(f"Rejected request to {request.url.path}: {exc}")

    content = {
        "success": False,
        "error": str(exc),
        "type": exc.__class__.__name__
    }
    if isinstance(exc, TokenError):
        content["reason"] = exc.reason

    return JSONResponse(status_code=status_code, content=content)


async def request_validation_handler(
    request: Request,
    exc: RequestValidationError
) -> JSONResponse:
    """Malformed JSON or parameters are client errors like any other intake error."""
    return JSONResponse(
        status_code=400,
        content={
            "success": False,
            "error": "Malformed request",
            "type": "ValidationError",
            "details": jsonable_errors(exc)
        }
    )


def jsonable_errors(exc: RequestValidationError) -> list:
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")}
        for err in exc.errors()
    ]


async def http_exception_handler(
    request: Request,
    exc: HTTPException
) -> JSONResponse:
    """
    Handle FastAPI HTTP exceptions with consistent format.
    """
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error": exc.detail,
            "type": "HTTPException"
        }
    )


async def general_exception_handler(
    request: Request,
    exc: Exception
) -> JSONResponse:
    """
    Handle unexpected exceptions.
    """
    logger.exception(f"Unexpected error in {request.url.path}")

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal server error",
            "type": "InternalError"
        }
    )
