# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from crm_api.errors import CrmApiError

logger = logging.getLogger(__name__)

BAD_GATEWAY = 502
UNPROCESSABLE = 422


def error_response(message: str, status_code: int) -> JSONResponse:
    return JSONResponse(content={"error": message}, status_code=status_code)


def register_error_handlers(app: FastAPI) -> None:
    """Translates CRM and input errors raised by route handlers into JSON error responses."""

    @app.exception_handler(CrmApiError)
    async def crm_api_error_handler(request: Request, e: CrmApiError):
        logger.error(f"{request.method} {request.url.path} failed upstream: {e}")
        return error_response(str(e), BAD_GATEWAY)

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, e: ValueError):
        logger.warning(f"{request.method} {request.url.path} rejected: {e}")
        return error_response(str(e), UNPROCESSABLE)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, e: RequestValidationError):
        message = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in e.errors()
        )
        return error_response(message or "Invalid request", UNPROCESSABLE)
