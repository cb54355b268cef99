from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ..core.errors import LedgerError


logger = logging.getLogger(__name__)


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"Error": message})


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(LedgerError)
    async def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(
                "request.failed",
                extra={"path": request.url.path, "error": type(exc).__name__},
            )
        return error_response(exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        sources = {tuple(error.get("loc", ()))[:1] for error in exc.errors()}
        if ("path",) in sources:
            return error_response(400, "invalid id")
        if ("body",) in sources:
            return error_response(400, "invalid JSON")
        return error_response(400, "invalid input")
