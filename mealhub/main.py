# mealhub/main.py
from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from mealhub.core.config import get_settings
from mealhub.core.logging import configure_logging
from mealhub.database import create_db_and_tables

# Import models so SQLModel metadata is populated before create_all()
from mealhub.models import user as _user_models  # noqa: F401
from mealhub.models import order as _order_models  # noqa: F401

# Routers
from mealhub.routers.orders import router as orders_router
from mealhub.routers.provider_orders import router as provider_orders_router
from mealhub.routers.admin_orders import router as admin_orders_router

settings = get_settings()

configure_logging()
logger = logging.getLogger("uvicorn")

# HTTP status -> stable `error` code in the response envelope
ERROR_CODES: dict[int, str] = {
    status.HTTP_400_BAD_REQUEST: "VALIDATION_ERROR",
    status.HTTP_401_UNAUTHORIZED: "UNAUTHORIZED",
    status.HTTP_403_FORBIDDEN: "FORBIDDEN",
    status.HTTP_404_NOT_FOUND: "NOT_FOUND",
    status.HTTP_409_CONFLICT: "INVALID_TRANSITION",
    status.HTTP_422_UNPROCESSABLE_ENTITY: "VALIDATION_ERROR",
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
      - Verify DB connectivity and create tables.
    """
    logger.info("Startup: connecting to database...")
    try:
        create_db_and_tables()
        logger.info("Startup: DB connection OK, tables verified.")
    except Exception as e:
        logger.error(f"Startup: DB connection FAILED: {e}")
        raise
    yield


app = FastAPI(
    title=settings.PROJECT_NAME,
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _envelope(status_code: int, message: str, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "error": ERROR_CODES.get(status_code, "INTERNAL_ERROR"),
            "message": message,
        },
        headers=headers,
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Render every HTTPException raised by services in the envelope."""
    return _envelope(
        exc.status_code,
        str(exc.detail),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = jsonable_encoder(exc.errors())
    message = "; ".join(
        f"{'.'.join(str(p) for p in err.get('loc', [])[1:])}: {err.get('msg')}"
        for err in errors
    )
    return _envelope(status.HTTP_422_UNPROCESSABLE_ENTITY, message or "Invalid request")


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _envelope(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


app.include_router(orders_router, prefix=settings.API_PREFIX)
app.include_router(provider_orders_router, prefix=settings.API_PREFIX)
app.include_router(admin_orders_router, prefix=settings.API_PREFIX)


@app.get("/")
def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "mealhub-orders"}
