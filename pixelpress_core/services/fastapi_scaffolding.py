from __future__ import annotations

import os
import time
import uuid

from fastapi import FastAPI, Request
from pydantic import BaseModel

# Checked in order; Eventarc binary-mode deliveries carry the event id as ce-id.
CORRELATION_HEADERS = ("x-correlation-id", "ce-id")


class HealthResponse(BaseModel):
    status: str
    service: str
    env: str
    version: str
    commit: str
    timestamp: str


def correlation_id(*candidates: str | None) -> str:
    for value in candidates:
        if value:
            return value
    return str(uuid.uuid4())


def add_correlation_id_middleware(app: FastAPI) -> None:
    @app.middleware("http")
    async def _add_correlation_id(request: Request, call_next):
        corr = correlation_id(*(request.headers.get(name) for name in CORRELATION_HEADERS))
        request.state.correlation_id = corr
        response = await call_next(request)
        response.headers["x-correlation-id"] = corr
        return response


def build_health_response(
    service_name: str,
    *,
    status: str = "ok",
    version: str | None = None,
    commit: str | None = None,
) -> HealthResponse:
    return HealthResponse(
        status=status,
        service=service_name,
        env=os.getenv("ENV", "dev"),
        version=version or os.getenv("PIXELPRESS_VERSION", "dev"),
        commit=commit or os.getenv("GIT_COMMIT", "unknown"),
        timestamp=time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
    )
