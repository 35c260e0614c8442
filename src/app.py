"""Portfolio Service - FastAPI backend for the portfolio site's public forms and admin inbox."""

import os
import logging
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.shared.auth.database import init_db
from src.shared.auth.routes import router as auth_router
from src.shared.contact.routes import router as contact_router
from src.shared.testimonials.routes import router as testimonials_router
from src.shared.chat.routes import router as chat_router
from src.shared.security.dependencies import build_security, configure_security
from src.shared.security.policy import SecuritySettings

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

DEFAULT_CORS_ORIGINS = [
    "http://localhost:5173",
    "http://localhost:3000",
]


def get_allowed_origins() -> list:
    configured = os.environ.get("CORS_ORIGINS")
    if not configured:
        return list(DEFAULT_CORS_ORIGINS)
    return [origin.strip() for origin in configured.split(",") if origin.strip()]


ALLOWED_ORIGINS = get_allowed_origins()

app = FastAPI(
    title="Portfolio Service",
    description="Portfolio backend: contact messages, testimonials and the chat assistant, behind an anti-abuse pipeline",
    version="0.1.0"
)


@app.on_event("startup")
async def startup_event():
    try:
        init_db()
        logging.info("Database initialization completed on startup")
    except Exception as e:
        # Keep serving, database errors then surface per request
        logging.error(f"Database initialization error on startup: {str(e)}")

    if getattr(app.state, "security", None) is None:
        configure_security(app, build_security(SecuritySettings.from_env()))


app.include_router(auth_router)
app.include_router(contact_router)
app.include_router(testimonials_router)
app.include_router(chat_router)

# CORS configuration - must be added before exception handlers
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Retry-After", "RateLimit-Limit", "RateLimit-Remaining", "RateLimit-Reset"],
)


def _cors_headers(request: Request) -> dict:
    """CORS headers for error responses produced outside the middleware."""
    headers = {}
    origin = request.headers.get("origin")
    if origin in ALLOWED_ORIGINS:
        headers["Access-Control-Allow-Origin"] = origin
        headers["Access-Control-Allow-Credentials"] = "true"
        headers["Access-Control-Allow-Methods"] = "*"
        headers["Access-Control-Allow-Headers"] = "*"
    return headers


# Global exception handlers to ensure CORS headers are always added
@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Ensure CORS headers are added to FastAPI HTTP exceptions."""
    headers = _cors_headers(request)
    if exc.headers:
        headers.update(exc.headers)

    # Handle both string and dict detail formats
    if isinstance(exc.detail, (str, dict)):
        content = {"detail": exc.detail}
    else:
        content = {"detail": str(exc.detail)}

    return JSONResponse(
        status_code=exc.status_code,
        content=content,
        headers=headers
    )


@app.exception_handler(StarletteHTTPException)
async def starlette_http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Ensure CORS headers are added to Starlette HTTP exceptions."""
    headers = _cors_headers(request)
    if getattr(exc, "headers", None):
        headers.update(exc.headers)

    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail} if isinstance(exc.detail, (str, dict)) else {"detail": str(exc.detail)},
        headers=headers
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Ensure CORS headers are added to validation errors."""
    return JSONResponse(
        status_code=422,
        content={"detail": jsonable_encoder(exc.errors())},
        headers=_cors_headers(request)
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Log unexpected errors with full context; never expose them to the caller."""
    logging.error(f"Unhandled exception on {request.method} {request.url.path}: {str(exc)}", exc_info=True)

    return JSONResponse(
        status_code=500,
        content={"detail": {"error": "internal_error", "message": "An unexpected error occurred. Please try again later."}},
        headers=_cors_headers(request)
    )


@app.get("/")
async def root():
    return {"message": "Portfolio Service API is running", "status": "ok"}


@app.get("/health")
async def health():
    return {"status": "healthy"}
