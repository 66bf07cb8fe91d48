"""Exception handlers translating service errors into HTTP responses."""

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from cargo_hold.common.errors import ClockRegressionError, InvalidCursorError, StorageError

logger = structlog.get_logger()


async def invalid_cursor_handler(request: Request, exc: InvalidCursorError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc)})


async def clock_regression_handler(request: Request, exc: ClockRegressionError) -> JSONResponse:
    logger.error(
        "id_generation_failed",
        path=request.url.path,
        last_timestamp=exc.last_timestamp,
        current_timestamp=exc.current_timestamp,
    )
    return JSONResponse(status_code=503, content={"detail": "Id generation unavailable"})


async def storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
    logger.error("storage_error", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=502, content={"detail": str(exc)})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(InvalidCursorError, invalid_cursor_handler)  # type: ignore[arg-type]
    app.add_exception_handler(ClockRegressionError, clock_regression_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StorageError, storage_error_handler)  # type: ignore[arg-type]
