"""
Domain errors for the update panel and their HTTP mapping.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class PanelError(Exception):
    """Base class for errors surfaced to API callers."""
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInput(PanelError):
    status_code = 400


class Unauthorized(PanelError):
    status_code = 403


class NotFound(PanelError):
    status_code = 404


class StorageFailure(PanelError):
    status_code = 500


async def _panel_error_handler(request: Request, exc: PanelError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(PanelError, _panel_error_handler)
