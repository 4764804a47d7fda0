# storefront/main.py
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from storefront.api import api_router
from storefront.api.routers import health
from storefront.data.database import init_db
from storefront.domain.errors import StoreError
from storefront.utils.logging import add_context, clear_context, configure_logging, get_logger

logger = get_logger(__name__)


def _error(status_code: int, message: str, error=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": message, "error": jsonable_encoder(error)},
    )


async def store_error_handler(request: Request, exc: StoreError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}", **exc.details)
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {exc.code}")
    return _error(exc.status_code, exc.message, exc.to_error())


async def validation_error_handler(request: Request, exc: RequestValidationError):
    fields = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
        for err in exc.errors()
    ]
    return _error(400, "Invalid request", {"code": "validation_error", "fields": fields})


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return _error(exc.status_code, str(exc.detail), {"code": "http_error"})


async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return _error(500, "Oops! Something went wrong. We're on it!", {"code": "internal_error"})


async def log_context_middleware(request: Request, call_next):
    clear_context()
    add_context(method=request.method, path=request.url.path)
    return await call_next(request)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Initializing database")
    init_db()
    yield


def create_app() -> FastAPI:
    configure_logging()

    app = FastAPI(
        title="Storefront Checkout Service",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_exception_handler(StoreError, store_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)
    app.middleware("http")(log_context_middleware)

    # Include routers
    app.include_router(health.router)
    app.include_router(api_router)

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
