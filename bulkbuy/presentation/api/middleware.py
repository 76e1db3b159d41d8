"""Ingress policy: origin checks, security headers and error logging."""

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ...core.config import Settings

logger = logging.getLogger(__name__)

_SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "no-referrer",
    "Cross-Origin-Resource-Policy": "cross-origin",
}


def register_middleware(app: FastAPI, settings: Settings) -> None:
    allowed_origins = set(settings.cors_allow_origins)
    allow_all = settings.is_development or "*" in allowed_origins

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else sorted(allowed_origins),
        allow_credentials=False,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "Origin", "X-Requested-With", "Accept"],
    )

    @app.middleware("http")
    async def guard_origin(request: Request, call_next):
        origin = request.headers.get("origin")
        if origin and not allow_all and origin not in allowed_origins:
            logger.warning("Blocked request from origin %s.", origin)
            return JSONResponse(
                status_code=403,
                content={"error": "CORS policy violation", "message": "Origin not allowed", "origin": origin},
            )
        return await call_next(request)

    @app.middleware("http")
    async def add_security_headers(request: Request, call_next):
        response = await call_next(request)
        for header, value in _SECURITY_HEADERS.items():
            response.headers.setdefault(header, value)
        return response

    @app.middleware("http")
    async def log_failed_requests(request: Request, call_next):
        response = await call_next(request)
        if response.status_code >= 400:
            logger.info("%s %s -> %s", request.method, request.url.path, response.status_code)
        return response
