"""Shared error helpers for HTTP APIs."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from marmalade_api.errors import (
    InputError,
    LoadError,
    MarmaladeError,
    PackageSyntaxError,
    PermissionsError,
)
from .responses import render

LOGGER = logging.getLogger(__name__)

_STATUS_BY_ERROR: tuple[tuple[type[MarmaladeError], int], ...] = (
    (PackageSyntaxError, status.HTTP_400_BAD_REQUEST),
    (InputError, status.HTTP_400_BAD_REQUEST),
    (PermissionsError, status.HTTP_403_FORBIDDEN),
    (LoadError, status.HTTP_404_NOT_FOUND),
)


def error_payload(message: str) -> dict[str, Any]:
    return {"message": message}


def status_for(exc: MarmaladeError) -> int:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def http_error(status_code: int, message: str) -> HTTPException:
    return HTTPException(status_code=status_code, detail=message)


def bad_request(message: str) -> HTTPException:
    return http_error(status.HTTP_400_BAD_REQUEST, message)


def not_found(message: str) -> HTTPException:
    return http_error(status.HTTP_404_NOT_FOUND, message)


def required_parameter(name: str) -> HTTPException:
    return bad_request(f'Required parameter "{name}" not given')


async def _registry_error(request: Request, exc: MarmaladeError) -> Response:
    status_code = status_for(exc)
    LOGGER.info("HTTP Error %s: %s", status_code, exc.message)
    return render(request, error_payload(exc.message), status_code=status_code)


async def _http_error(request: Request, exc: StarletteHTTPException) -> Response:
    LOGGER.info("HTTP Error %s: %s", exc.status_code, exc.detail)
    return render(
        request,
        error_payload(str(exc.detail)),
        status_code=exc.status_code,
        headers=getattr(exc, "headers", None),
    )


async def _validation_error(request: Request, exc: RequestValidationError) -> Response:
    errors = exc.errors()
    message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    return render(request, error_payload(message), status_code=status.HTTP_400_BAD_REQUEST)


async def _unexpected_error(request: Request, exc: Exception) -> Response:
    LOGGER.error("Unhandled error for %s %s", request.method, request.url.path, exc_info=exc)
    return render(
        request,
        error_payload("Internal server error"),
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(MarmaladeError, _registry_error)
    app.add_exception_handler(StarletteHTTPException, _http_error)
    app.add_exception_handler(RequestValidationError, _validation_error)
    app.add_exception_handler(Exception, _unexpected_error)


__all__ = [
    "bad_request",
    "error_payload",
    "http_error",
    "install_error_handlers",
    "not_found",
    "required_parameter",
    "status_for",
]
