# app/errors.py
# Domain errors raised by the services and their HTTP translation.
from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse


class SiteBuilderError(Exception):
    """Base class. `str(err)` is the human-readable message shown inline by forms."""

    status_code: int = 400

    def __init__(self, message: str = ""):
        self.message = message or self.__class__.__name__
        super().__init__(self.message)

    @property
    def kind(self) -> str:
        return self.__class__.__name__


class Unauthenticated(SiteBuilderError):
    status_code = 401


class Unauthorized(SiteBuilderError):
    status_code = 403


class NotFound(SiteBuilderError):
    status_code = 404


class Conflict(SiteBuilderError):
    status_code = 409


class InvalidInput(SiteBuilderError):
    status_code = 400


class Forbidden(SiteBuilderError):
    """Operation refused regardless of ownership (e.g. deleting a protected block)."""

    status_code = 403


def error_payload(err: SiteBuilderError) -> dict:
    return {"error": err.kind, "detail": err.message}


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(SiteBuilderError)
    async def handle_site_builder_error(request: Request, err: SiteBuilderError):
        return JSONResponse(status_code=err.status_code, content=error_payload(err))
