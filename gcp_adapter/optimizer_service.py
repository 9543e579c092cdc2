import base64
import binascii
import json
import os
import time
import uuid
from typing import Any

import requests  # type: ignore[import-untyped]
from fastapi import FastAPI, Header, HTTPException, Request
from pydantic import BaseModel

from gcp_adapter.gcs_sink import GcsObjectSink
from pixelpress_core.config import Config, get_config
from pixelpress_core.errors import PermanentError, RecoverableError, ValidationError
from pixelpress_core.events.eventarc import parse_cloudevent
from pixelpress_core.logging import configure_logging, get_logger
from pixelpress_core.optimize.pipeline import (
    Compressor,
    Fetcher,
    PipelineState,
    build_compressor,
    build_fetcher,
    process_event,
)
from pixelpress_core.services.fastapi_scaffolding import (
    HealthResponse,
    add_correlation_id_middleware,
    build_health_response,
)
from pixelpress_core.storage.interfaces import ObjectSink

SERVICE_NAME = "pixelpress-optimizer"

configure_logging(
    service=SERVICE_NAME,
    env=os.getenv("ENV"),
    version=os.getenv("PIXELPRESS_VERSION"),
)
logger = get_logger(__name__)

app = FastAPI()
add_correlation_id_middleware(app)

_sink: ObjectSink | None = None


class OptimizeResponse(BaseModel):
    status: str
    trace_id: str
    reason: str | None = None
    result_url: str | None = None
    bytes_published: int | None = None


def _http_session() -> requests.Session:
    return requests.Session()


def _compressor(config: Config, session: requests.Session) -> Compressor:
    return build_compressor(config, session=session)


def _fetcher(config: Config, session: requests.Session) -> Fetcher:
    return build_fetcher(config, session=session)


def _object_sink() -> ObjectSink:
    global _sink
    if _sink is None:
        _sink = GcsObjectSink()
    return _sink


@app.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    return build_health_response(SERVICE_NAME)


@app.post("/optimize", response_model=OptimizeResponse)
async def optimize(
    request: Request,
    x_request_id: str | None = Header(default=None),
) -> OptimizeResponse:
    start_time = time.monotonic()
    try:
        config = get_config()
    except ValueError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc

    trace_id = x_request_id or str(uuid.uuid4())
    correlation = request.state.correlation_id
    try:
        body = await request.json()
    except json.JSONDecodeError as exc:
        raise HTTPException(status_code=400, detail="Invalid JSON payload") from exc

    cloudevent_payload = _coerce_cloudevent(request, body)
    try:
        event = parse_cloudevent(cloudevent_payload)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    logger.info(
        "Received storage event",
        extra={
            "request_id": trace_id,
            "correlation_id": correlation,
            "bucket": event.bucket,
            "object_name": event.name,
            "generation": event.generation,
        },
    )

    # One connection pool per invocation, shared by Kraken and the download.
    session = _http_session()
    try:
        outcome = process_event(
            event=event,
            compressor=_compressor(config, session),
            fetcher=_fetcher(config, session),
            sink=_object_sink(),
            staging_root=config.staging_dir,
            chunk_bytes=config.copy_chunk_bytes,
            request_id=trace_id,
        )
    except (PermanentError, ValidationError) as exc:
        # Acknowledge so the runtime does not redeliver an event that can
        # never succeed.
        logger.warning(
            "Optimize failed",
            extra={
                "request_id": trace_id,
                "correlation_id": correlation,
                "bucket": event.bucket,
                "object_name": event.name,
                "duration_ms": int((time.monotonic() - start_time) * 1000),
                "error_code": exc.code,
                "error_message": str(exc),
            },
        )
        return OptimizeResponse(status="failed", trace_id=trace_id)
    except RecoverableError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception(
            "Optimize failed (unexpected)",
            extra={
                "request_id": trace_id,
                "correlation_id": correlation,
                "bucket": event.bucket,
                "object_name": event.name,
                "error_code": "UNKNOWN",
                "error_message": str(exc),
            },
        )
        raise HTTPException(status_code=500, detail="Unexpected error") from exc
    finally:
        session.close()

    if outcome.state == PipelineState.SKIPPED:
        return OptimizeResponse(
            status="skipped",
            trace_id=trace_id,
            reason=outcome.reason,
        )
    return OptimizeResponse(
        status="completed",
        trace_id=trace_id,
        result_url=outcome.result_url,
        bytes_published=outcome.bytes_published,
    )


def _coerce_cloudevent(request: Request, body: Any) -> dict[str, Any]:
    if isinstance(body, dict) and "specversion" in body:
        return body

    def header(name: str) -> str | None:
        return request.headers.get(name)

    def _decode_json_payload(raw: Any) -> dict[str, Any] | None:
        if isinstance(raw, dict):
            return raw
        if isinstance(raw, str):
            try:
                return json.loads(raw)
            except json.JSONDecodeError:
                try:
                    decoded = base64.b64decode(raw.encode("utf-8"))
                except (ValueError, binascii.Error):
                    return None
                try:
                    return json.loads(decoded.decode("utf-8"))
                except (json.JSONDecodeError, UnicodeDecodeError):
                    return None
        return None

    data: dict[str, Any] | None = None
    if isinstance(body, dict):
        message = body.get("message") if isinstance(body.get("message"), dict) else None
        if message and "data" in message:
            data = _decode_json_payload(message.get("data"))
        else:
            data = body
    else:
        data = _decode_json_payload(body)

    if isinstance(data, dict) and "specversion" in data and "data" in data:
        return data

    return {
        "id": header("ce-id"),
        "type": header("ce-type"),
        "source": header("ce-source"),
        "specversion": header("ce-specversion") or "1.0",
        "time": header("ce-time"),
        "subject": header("ce-subject"),
        "data": data,
    }
