from __future__ import annotations

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from ..core.errors import (
    ConstraintViolationError,
    DuplicateTransactionIdError,
    InsufficientFundsError,
    InvalidStateError,
    LedgerError,
    NotAuthorizedError,
    NotFoundError,
)

_STATUS_BY_ERROR: tuple[tuple[type[LedgerError], int], ...] = (
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (NotAuthorizedError, status.HTTP_403_FORBIDDEN),
    (InvalidStateError, status.HTTP_409_CONFLICT),
    (InsufficientFundsError, status.HTTP_409_CONFLICT),
    (DuplicateTransactionIdError, status.HTTP_409_CONFLICT),
    (ConstraintViolationError, status.HTTP_409_CONFLICT),
)


def status_for(exc: LedgerError) -> int:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_400_BAD_REQUEST


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(LedgerError)
    async def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
        return JSONResponse(
            status_code=status_for(exc),
            content={"detail": str(exc), "kind": exc.kind},
        )

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": str(exc), "kind": "invalid_request"},
        )
