import logging
import time
import uuid
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from pymongo.database import Database
from pymongo.errors import PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import get_settings
from database import ensure_indexes, get_db
from logging_config import configure_logging
from routers import (
    auth_router,
    messages_router,
    notifications_router,
    products_router,
    reviews_router,
    sellers_router,
    services_router,
    users_router,
)

logger = logging.getLogger(__name__)


def _validation_response(title, raw_errors):
    errors = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
            "message": err.get("msg", "Invalid value"),
        }
        for err in raw_errors
    ]
    summary = "; ".join(f"{e['field']}: {e['message']}" for e in errors)
    return JSONResponse(status_code=400, content={"message": f"{title}: {summary}", "errors": errors})


def register_error_handlers(app: FastAPI) -> None:
    """Every error leaves as {"message": ...} with the matching status."""

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"message": str(exc.detail)},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return _validation_response("Invalid request", exc.errors())

    @app.exception_handler(ValidationError)
    async def document_validation_handler(request: Request, exc: ValidationError):
        return _validation_response("Invalid data", exc.errors())

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"message": "Internal server error"})


@asynccontextmanager
async def lifespan(app: FastAPI):
    ensure_indexes(get_db())
    yield


def create_app() -> FastAPI:
    configure_logging()
    settings = get_settings()

    app = FastAPI(title=settings.app_name, version="1.0.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def request_logging(request: Request, call_next):
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        started = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - started) * 1000.0
        response.headers["x-request-id"] = request_id
        logger.info(
            "%s %s -> %s (%.1f ms) [%s]",
            request.method, request.url.path, response.status_code, duration_ms, request_id,
        )
        return response

    register_error_handlers(app)

    prefix = settings.api_prefix
    app.include_router(auth_router, prefix=f"{prefix}/auth", tags=["auth"])
    app.include_router(users_router, prefix=f"{prefix}/users", tags=["users"])
    app.include_router(sellers_router, prefix=f"{prefix}/sellers", tags=["sellers"])
    app.include_router(products_router, prefix=f"{prefix}/products", tags=["products"])
    app.include_router(services_router, prefix=f"{prefix}/services", tags=["services"])
    app.include_router(messages_router, prefix=f"{prefix}/messages", tags=["messages"])
    app.include_router(reviews_router, prefix=f"{prefix}/reviews", tags=["reviews"])
    app.include_router(notifications_router, prefix=f"{prefix}/notifications", tags=["notifications"])

    # Utility endpoints
    @app.get("/")
    def root():
        return {"message": "Welcome to TradeLink Backend server"}

    @app.get("/health")
    def health(db: Database = Depends(get_db)):
        try:
            collections = db.list_collection_names()
        except PyMongoError as e:
            logger.warning("Database health check failed: %s", e)
            return {"message": "degraded", "data": {"backend": "ok", "database": f"error: {e}"}}
        return {"message": "ok", "data": {"backend": "ok", "database": "ok", "collections": collections}}

    return app


app = create_app()
