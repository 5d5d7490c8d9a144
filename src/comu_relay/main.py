# src/comu_relay/main.py
"""Main entry point for the Comu Relay application."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from comu_relay.api.v1 import (
    auth_router,
    blocked_attempts_router,
    conversations_router,
    live_router,
    media_router,
    messages_router,
    users_router,
)
from comu_relay.core.errors import (
    AccountExists,
    BlockedWordRejected,
    EditWindowExpired,
    InvalidMedia,
    NotFound,
    PermissionDenied,
    RelayError,
    SenderBlocked,
    TransientStoreFailure,
    Unauthenticated,
)
from comu_relay.core.settings import settings

logger = logging.getLogger(__name__)

# Most specific class first; EditWindowExpired and SenderBlocked are PermissionDenied too.
_STATUS_BY_ERROR: list[tuple[type[RelayError], int]] = [
    (Unauthenticated, status.HTTP_401_UNAUTHORIZED),
    (NotFound, status.HTTP_404_NOT_FOUND),
    (EditWindowExpired, status.HTTP_403_FORBIDDEN),
    (SenderBlocked, status.HTTP_403_FORBIDDEN),
    (PermissionDenied, status.HTTP_403_FORBIDDEN),
    (AccountExists, status.HTTP_409_CONFLICT),
    (TransientStoreFailure, status.HTTP_503_SERVICE_UNAVAILABLE),
    (BlockedWordRejected, status.HTTP_422_UNPROCESSABLE_CONTENT),
    (InvalidMedia, status.HTTP_422_UNPROCESSABLE_CONTENT),
]

# Initialize FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Offline-tolerant direct messaging relay",
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Add GZip middleware for compression
app.add_middleware(GZipMiddleware)

# Include API routers
app.include_router(auth_router, prefix="/api/v1")
app.include_router(users_router, prefix="/api/v1")
app.include_router(conversations_router, prefix="/api/v1")
app.include_router(messages_router, prefix="/api/v1")
app.include_router(media_router, prefix="/api/v1")
app.include_router(blocked_attempts_router, prefix="/api/v1")
app.include_router(live_router, prefix="/api/v1")


def status_for(exc: RelayError) -> int:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


@app.exception_handler(RelayError)
async def relay_error_handler(request: Request, exc: RelayError) -> JSONResponse:
    """Translate domain errors raised by the services into HTTP responses."""
    status_code = status_for(exc)
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    content: dict[str, object] = {"detail": str(exc), "code": exc.code}
    if isinstance(exc, BlockedWordRejected):
        content["blocked_word"] = exc.blocked_word
        content["attempt_id"] = exc.attempt_id
    return JSONResponse(status_code=status_code, content=content)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "description": "Offline-tolerant direct messaging relay",
        "docs": "/docs",
        "redoc": "/redoc"
    }

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("comu_relay.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
