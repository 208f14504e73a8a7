"""
CORS middleware — configures allowed origins for the embedded dashboard.

Middleware configuration for the FastAPI application.

Origins come from CORS_ALLOW_ORIGINS (comma separated, "*" by default).
Version: 1.0.0
"""
from typing import List

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from order_sync.core.config import settings


def parse_origins(raw: str) -> List[str]:
    origins = [origin.strip() for origin in raw.split(",") if origin.strip()]
    return origins or ["*"]


def apply_cors(app: FastAPI, raw_origins: str | None = None) -> None:
    """Apply CORS middleware; credentials are only allowed with explicit origins."""
    origins = parse_origins(raw_origins if raw_origins is not None else settings.cors_allow_origins)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=origins != ["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )
