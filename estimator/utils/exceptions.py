"""
HTTP Exception helpers to reduce code duplication in routes.

Usage:
    from estimator.utils.exceptions import raise_unauthorized, raise_bad_request

    raise_unauthorized("Invalid JWT")
    raise_bad_request("Invalid items payload.")

Errors are rendered as {"error": detail}, the shape estimate clients read.
"""

from typing import NoReturn

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse


def raise_unauthorized(detail: str = "Unauthorized") -> NoReturn:
    """Raise HTTP 401 Unauthorized with WWW-Authenticate header."""
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def raise_bad_request(detail: str) -> NoReturn:
    """Raise HTTP 400 Bad Request."""
    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail=detail,
    )


def raise_bad_gateway(detail: str) -> NoReturn:
    """Raise HTTP 502 Bad Gateway."""
    raise HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail=detail,
    )


def raise_internal_error(detail: str = "Internal server error") -> NoReturn:
    """Raise HTTP 500 Internal Server Error."""
    raise HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=detail,
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Render HTTPException as {"error": detail}."""
    return JSONResponse(
        {"error": str(exc.detail)},
        status_code=exc.status_code,
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Render body validation failures with the same messages clients already know."""
    if any("items" in error.get("loc", ()) for error in exc.errors()):
        message = "Invalid items payload."
    else:
        message = "Invalid JSON payload."
    return JSONResponse({"error": message}, status_code=status.HTTP_400_BAD_REQUEST)
