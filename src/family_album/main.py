# src/family_album/main.py
"""Main entry point for the Family Album application."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.staticfiles import StaticFiles

from family_album.api.v1 import photos_router, posts_router
from family_album.core.settings import settings

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

CONTENT_SECURITY_POLICY = "; ".join(
    [
        "default-src 'self'",
        "img-src 'self' data: blob:",
        "connect-src 'self'",
        "frame-ancestors 'none'",
    ]
)

SECURITY_HEADERS = {
    "Referrer-Policy": "same-origin",
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Permissions-Policy": (
        "camera=(), microphone=(), geolocation=(), payment=(), usb=(), "
        "accelerometer=(), gyroscope=(), magnetometer=(), interest-cohort=()"
    ),
    "Cross-Origin-Resource-Policy": "same-site",
    "Cross-Origin-Opener-Policy": "same-origin",
}

# Initialize FastAPI app
app = FastAPI(
    title=f"{settings.app_name} API",
    description="Private family photo album: upload, crop, caption and browse",
    version=settings.app_version,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

app.add_middleware(GZipMiddleware)


@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    response = await call_next(request)
    if not settings.security_headers_enabled:
        return response
    response.headers.update(SECURITY_HEADERS)
    # The interactive docs pull their assets from a CDN
    if request.url.path not in (app.docs_url, app.redoc_url):
        response.headers["Content-Security-Policy"] = CONTENT_SECURITY_POLICY
    return response


app.include_router(photos_router)
app.include_router(posts_router)

# Originals and thumbnails are served straight from the storage root
app.mount(
    settings.storage_url_prefix,
    StaticFiles(directory=settings.storage_root, check_dir=False),
    name="storage",
)


@app.on_event("startup")
async def on_startup() -> None:
    settings.storage_root.mkdir(parents=True, exist_ok=True)
    logger.info("Serving media from %s", settings.storage_root.resolve())


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": f"{settings.app_name} API",
        "version": settings.app_version,
        "feed": "/posts/feed",
        "upload_limit": settings.upload_size_label,
        "docs": "/docs",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("family_album.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
