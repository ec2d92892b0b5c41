import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from stockmirror.api.routes import inventory, items, reconciliation, sync, tags
from stockmirror.core.config import get_settings
from stockmirror.core.errors import ApiError, NotFoundError, ParseError, UpstreamError, ValidationError
from stockmirror.core.logging import configure_logging
from stockmirror.db.base import Base
from stockmirror.db.session import engine

logger = logging.getLogger(__name__)

settings = get_settings()
app = FastAPI(title=settings.app_name)


@app.on_event("startup")
def startup() -> None:
    configure_logging(settings.log_level)
    Base.metadata.create_all(bind=engine)


def _error_response(status_code: int, error: ApiError) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=error.to_dict())


@app.exception_handler(RequestValidationError)
def request_validation_exception_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(status_code=422, content={"code": "validation_error", "message": "Invalid request", "details": exc.errors()})


@app.exception_handler(ValidationError)
def validation_exception_handler(_: Request, exc: ValidationError) -> JSONResponse:
    return _error_response(400, ApiError(code="validation_error", message=str(exc)))


@app.exception_handler(ParseError)
def parse_exception_handler(_: Request, exc: ParseError) -> JSONResponse:
    return _error_response(400, ApiError(code="parse_error", message=str(exc)))


@app.exception_handler(NotFoundError)
def not_found_exception_handler(_: Request, exc: NotFoundError) -> JSONResponse:
    return _error_response(404, ApiError(code="not_found", message=str(exc), details=exc.details))


@app.exception_handler(UpstreamError)
def upstream_exception_handler(_: Request, exc: UpstreamError) -> JSONResponse:
    logger.warning("Upstream catalog error: %s", exc)
    return _error_response(
        502,
        ApiError(code="upstream_error", message=str(exc), details={"status": exc.status_code, "body": exc.body}),
    )


app.include_router(items.router)
app.include_router(sync.router)
app.include_router(tags.router)
app.include_router(inventory.router)
app.include_router(reconciliation.router)


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
