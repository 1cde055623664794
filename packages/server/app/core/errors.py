"""
Problem-style error responses.

Every failure leaves the API as ``{"title", "detail", "status"}`` (plus a
field-level ``errors`` map for validation failures), whatever raised it.
"""

from __future__ import annotations

from collections import defaultdict
from http import HTTPStatus
from typing import Any, Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

log = structlog.get_logger()

PROBLEM_MEDIA_TYPE = "application/problem+json"


def _reason(status: int) -> str:
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        return "Error"


def problem_response(
    status: int,
    title: Optional[str] = None,
    detail: Optional[str] = None,
    *,
    headers: Optional[dict[str, str]] = None,
    **extra: Any,
) -> JSONResponse:
    content: dict[str, Any] = {
        "title": title or _reason(status),
        "detail": detail,
        "status": status,
    }
    content.update(extra)
    return JSONResponse(
        status_code=status,
        content=content,
        headers=headers,
        media_type=PROBLEM_MEDIA_TYPE,
    )


def describe_store_error(exc: BaseException) -> str:
    """Best-effort diagnostic for a persistence failure, with the engine's error code."""
    root = exc.orig if isinstance(exc, DBAPIError) and exc.orig is not None else exc
    message = str(root)

    sqlite_code = getattr(root, "sqlite_errorcode", None)
    if sqlite_code is not None:
        name = getattr(root, "sqlite_errorname", "UNKNOWN")
        return f"SQLite[{sqlite_code}/{name}]: {message}"

    sqlstate = getattr(root, "sqlstate", None) or getattr(root, "pgcode", None)
    if sqlstate:
        return f"PostgreSQL[{sqlstate}]: {message}"

    return message


def is_foreign_key_violation(exc: BaseException) -> bool:
    """True when a store error is a foreign key violation (SQLite or PostgreSQL 23503)."""
    root = exc.orig if isinstance(exc, DBAPIError) and exc.orig is not None else exc
    sqlstate = getattr(root, "sqlstate", None) or getattr(root, "pgcode", None)
    if sqlstate:
        return sqlstate == "23503"
    name = getattr(root, "sqlite_errorname", None)
    if name:
        return name == "SQLITE_CONSTRAINT_FOREIGNKEY"
    return "FOREIGN KEY" in str(root).upper()


def _field_name(loc: tuple) -> str:
    parts = [str(p) for p in loc if p not in ("body", "query", "path")]
    return ".".join(parts) or "body"


def validation_errors(errors: list[dict]) -> dict[str, list[str]]:
    """Group pydantic error entries by field."""
    grouped: dict[str, list[str]] = defaultdict(list)
    for error in errors:
        grouped[_field_name(tuple(error.get("loc", ())))].append(error.get("msg", "Invalid value"))
    return dict(grouped)


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------

async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    detail = exc.detail if isinstance(exc.detail, str) else None
    return problem_response(
        exc.status_code,
        detail=detail,
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = validation_errors(exc.errors())
    summary = "; ".join(f"{field}: {', '.join(msgs)}" for field, msgs in errors.items())
    return problem_response(
        400,
        title="One or more validation errors occurred.",
        detail=summary,
        errors=errors,
    )


async def store_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    detail = describe_store_error(exc)
    log.error("store.failure", path=request.url.path, method=request.method, detail=detail)
    return problem_response(500, title="DB update failed", detail=detail)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    log.error(
        "http.unhandled_error",
        path=request.url.path,
        method=request.method,
        error=type(exc).__name__,
        exc_info=exc,
    )
    return problem_response(500, detail="An unexpected error occurred.")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(SQLAlchemyError, store_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
