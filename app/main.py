import logging
import uuid

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.routes.baselines import router as baselines_router
from app.api.routes.biomarkers import router as biomarkers_router
from app.api.routes.health import router as health_router
from app.core.config import settings
from app.core.exceptions import (
    BaselineNotFoundError,
    BiomarkerServiceException,
    RequestTooLargeError,
)
from app.core.lifespan import lifespan
from app.core.logging_config import request_id_var, setup_logging

setup_logging(
    log_level=settings.log_level,
    log_file=settings.log_file,
    max_file_size=settings.log_max_size_mb * 1024 * 1024,
    backup_count=settings.log_backup_count,
)

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Speech Biomarkers API",
    description="Статистические биомаркеры речи и персональный baseline",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

# Exception handlers - specific handlers before general ones

@app.exception_handler(RequestTooLargeError)
async def request_too_large_handler(request: Request, exc: RequestTooLargeError):
    logger.warning(f"Request too large: {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "detail": exc.detail,
            "error_type": "RequestTooLargeError",
            "max_recordings": settings.max_recordings_per_request,
        },
    )


@app.exception_handler(BaselineNotFoundError)
async def baseline_not_found_handler(request: Request, exc: BaselineNotFoundError):
    logger.info(f"Baseline not found: {exc.user_id}")
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "detail": exc.detail,
            "error_type": "BaselineNotFoundError",
            "user_id": exc.user_id,
        },
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"Validation error: {exc.errors()}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": jsonable_errors(exc)},
    )


@app.exception_handler(BiomarkerServiceException)
async def service_exception_handler(request: Request, exc: BiomarkerServiceException):
    logger.warning(f"BiomarkerServiceException: {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "error_type": exc.__class__.__name__},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "detail": "Internal server error",
            "error_type": exc.__class__.__name__,
        },
    )


def jsonable_errors(exc: RequestValidationError):
    """Ошибки валидации без несериализуемого контекста (ctx может содержать исключения)"""
    errors = []
    for error in exc.errors():
        error = dict(error)
        if "ctx" in error:
            error["ctx"] = {k: str(v) for k, v in error["ctx"].items()}
        errors.append(error)
    return errors


# CORS middleware - restrict to safe origins
allow_origins = ["http://localhost:3000", "http://localhost:8000", "http://127.0.0.1:8000"]
if settings.log_level == "DEBUG":
    allow_origins.append("*")

app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)


# Request ID middleware (должен быть после CORS)
@app.middleware("http")
async def add_request_id_middleware(request: Request, call_next):
    """Принимает X-Request-ID клиента или генерирует новый"""
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    token = request_id_var.set(request_id)
    try:
        response = await call_next(request)
    finally:
        request_id_var.reset(token)

    response.headers["X-Request-ID"] = request_id
    return response


app.include_router(health_router)
app.include_router(biomarkers_router)
app.include_router(baselines_router)


@app.get("/")
async def root():
    return {
        "name": "Speech Biomarkers API",
        "version": "1.0.0",
        "status": "running",
        "docs": "/docs",
    }
