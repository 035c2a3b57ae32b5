import logging
import random
import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import settings
from .database import create_tables
from .exceptions import MatchNodeError
from .routers.health import router as health_router
from .routers.auth import router as auth_router
from .routers.users import router as users_router
from .routers.albums import router as albums_router
from .routers.user_stickers import router as user_stickers_router
from .routers.matches import router as matches_router
from .routers.reports import router as reports_router
from .routers.admin import router as admin_router

# Configure logging
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await create_tables()
    yield


app = FastAPI(
    title="MatchNode - Sticker Exchange API",
    description="""
# MatchNode API

Collectors register, pick the album they are completing, mark each sticker
as owned, missing or duplicate, and find nearby collectors to swap with.

## Authentication

`POST /auth/register` or `POST /auth/login` return an `access_token` and set
an HttpOnly `session` cookie. Send either the cookie or
`Authorization: Bearer <access_token>`.

## Sticker status

`PUT /user-stickers/{sticker_id}` takes the target status directly:
`missing`, `owned` or `duplicate` (`no`, `yes`, `double` are accepted too).
Marking a sticker `duplicate` also marks it owned in the same update.

## Matching

`GET /matches/find` lists collectors of the same album within the search
radius, ordered by compatibility score and then distance. The score is the
number of stickers both sides can swap, relative to how many stickers the
two collectors are missing on average.

## Chat

Poll `GET /matches/{id}/messages?after_id=<last seen id>` for new messages.
""",
    version="1.0.0",
    lifespan=lifespan
)

# Include routers
app.include_router(health_router)
app.include_router(auth_router)
app.include_router(users_router)
app.include_router(albums_router)
app.include_router(user_stickers_router)
app.include_router(matches_router)
app.include_router(reports_router)
app.include_router(admin_router)

# CORS for UI
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Prometheus metrics
REQUEST_COUNT = Counter("http_requests_total", "Total HTTP requests", [
                        "method", "route", "status"])
REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency in seconds",
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2, 5)
)

ERROR_CODES = {
    400: "bad_request",
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
    409: "conflict",
    429: "too_many_requests",
}


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or str(uuid.uuid4())


def _error_response(request: Request, status_code: int, code: str, message: str, headers=None) -> JSONResponse:
    request_id = _request_id(request)
    body = {
        "error": {
            "code": code,
            "message": message,
        },
        "request_id": request_id,
    }
    all_headers = {"X-Request-ID": request_id}
    if headers:
        all_headers.update(headers)
    return JSONResponse(status_code=status_code, content=body, headers=all_headers)


def first_validation_message(errors) -> str:
    """Human readable `field: reason` for the first validation error."""
    if not errors:
        return "Validation error"
    error = errors[0]
    location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
    message = error.get("msg", "Invalid value")
    return f"{'.'.join(location)}: {message}" if location else message


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.info("Validation error rid=%s path=%s", _request_id(request), request.url.path)
    return _error_response(request, 400, "validation_error", first_validation_message(exc.errors()))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    code = ERROR_CODES.get(exc.status_code, "error")
    message = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return _error_response(request, exc.status_code, code, message, getattr(exc, "headers", None))


@app.exception_handler(MatchNodeError)
async def domain_exception_handler(request: Request, exc: MatchNodeError):
    return _error_response(request, exc.status_code, exc.code, str(exc))


@app.middleware("http")
async def add_request_id_and_errors(request: Request, call_next):
    request_id = str(uuid.uuid4())
    request.state.request_id = request_id
    # Lightweight structured log (sample all in debug)
    if settings.debug or random.random() < settings.log_sample_rate:
        logging.info({
            "event": "request",
            "method": request.method,
            "path": request.url.path,
            "rid": request_id,
        })
    start = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception:
        logging.exception(f"Unhandled error rid={request_id}")
        route = getattr(request.scope.get("route"), "path", request.url.path)
        REQUEST_COUNT.labels(method=request.method,
                             route=route, status=500).inc()
        return _error_response(request, 500, "internal_server_error", "Internal Server Error")

    REQUEST_LATENCY.observe(time.perf_counter() - start)
    route = getattr(request.scope.get("route"), "path", request.url.path)
    REQUEST_COUNT.labels(method=request.method,
                         route=route, status=response.status_code).inc()
    response.headers["X-Request-ID"] = request_id
    return response


@app.get("/")
async def root():
    return {"app": settings.app_name}


@app.get("/metrics")
async def metrics(request: Request):
    # In dev/debug mode, expose metrics without auth
    if not settings.debug:
        token = request.headers.get("X-Metrics-Token")
        if not settings.metrics_token or token != settings.metrics_token:
            return _error_response(request, 403, "forbidden", "Forbidden")
    data = generate_latest()
    return PlainTextResponse(content=data, media_type=CONTENT_TYPE_LATEST)
