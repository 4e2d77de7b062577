# src/publish_stage/api/errors.py
"""Translate service-level failures into HTTP responses."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from publish_stage.schemas.common import ErrorResponse
from publish_stage.services.errors import (
    AuthenticationFailure,
    AuthorizationFailure,
    Conflict,
    InvalidPayload,
    NotFound,
    PublishStageError,
    UpstreamFailure,
)

logger = logging.getLogger(__name__)

# Mutations report ownership failures as 401; reads raise 403 explicitly.
STATUS_BY_ERROR: dict[type[PublishStageError], int] = {
    AuthenticationFailure: status.HTTP_401_UNAUTHORIZED,
    AuthorizationFailure: status.HTTP_401_UNAUTHORIZED,
    NotFound: status.HTTP_404_NOT_FOUND,
    Conflict: status.HTTP_400_BAD_REQUEST,
    InvalidPayload: status.HTTP_400_BAD_REQUEST,
    UpstreamFailure: status.HTTP_500_INTERNAL_SERVER_ERROR,
}

# Body fields that make up a signed proof; malformed ones fail authentication.
PROOF_FIELDS = frozenset({"address", "signature", "salt", "message", "typedData", "typed_data"})


def status_for(exc: PublishStageError) -> int:
    for error_type, code in STATUS_BY_ERROR.items():
        if isinstance(exc, error_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def _touches_proof(exc: RequestValidationError) -> bool:
    for error in exc.errors():
        loc = [part for part in error.get("loc", ()) if part != "body"]
        if loc and loc[0] in PROOF_FIELDS:
            return True
    return False


async def publish_stage_error_handler(request: Request, exc: PublishStageError) -> JSONResponse:
    status_code = status_for(exc)
    if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    else:
        logger.info("%s %s rejected (%s): %s", request.method, request.url.path, exc.code, exc)
    body = ErrorResponse(error=exc.code, message=str(exc))
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    if _touches_proof(exc):
        status_code = status.HTTP_401_UNAUTHORIZED
        body = ErrorResponse(error=AuthenticationFailure.code, message="Malformed proof")
    else:
        status_code = status.HTTP_400_BAD_REQUEST
        body = ErrorResponse(error="invalid_request", message="Request failed validation")
    logger.info(
        "%s %s rejected (%s): %d validation error(s)",
        request.method,
        request.url.path,
        body.error,
        len(exc.errors()),
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=str(exc.detail)).model_dump(exclude_none=True),
        headers=getattr(exc, "headers", None),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(PublishStageError, publish_stage_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, http_error_handler)  # type: ignore[arg-type]
