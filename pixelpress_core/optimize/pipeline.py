from __future__ import annotations

import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Protocol

import requests  # type: ignore[import-untyped]

from pixelpress_core.config import Config
from pixelpress_core.errors import PixelpressError
from pixelpress_core.events.storage_event import StorageEvent
from pixelpress_core.logging import get_logger
from pixelpress_core.optimize.compressor import (
    CompressionResult,
    KrakenCompressor,
    KrakenCredentials,
)
from pixelpress_core.optimize.fetcher import ResultFetcher
from pixelpress_core.optimize.guards import is_allowed_content_type, is_already_processed
from pixelpress_core.optimize.republisher import republish
from pixelpress_core.optimize.staging import (
    StagedArtifact,
    staged_name,
    staged_path,
    staging_area,
)
from pixelpress_core.storage.interfaces import ObjectSink

logger = get_logger(__name__)

REASON_ALREADY_COMPRESSED = "already_compressed"
REASON_UNSUPPORTED_CONTENT_TYPE = "unsupported_content_type"


class PipelineState(str, Enum):
    START = "start"
    FILTERED = "filtered"
    COMPRESSING = "compressing"
    FETCHING = "fetching"
    PUBLISHING = "publishing"
    DONE = "done"
    SKIPPED = "skipped"
    ABORTED = "aborted"


@dataclass(frozen=True)
class PipelineOutcome:
    state: PipelineState
    reason: str | None = None
    result_url: str | None = None
    bytes_published: int | None = None
    saved_bytes: int | None = None


class Compressor(Protocol):
    def compress(self, event: StorageEvent) -> CompressionResult:
        ...


class Fetcher(Protocol):
    def fetch(self, result_url: str, destination: str) -> int:
        ...


StateCallback = Callable[[PipelineState], None]


def build_compressor(
    config: Config, *, session: requests.Session | None = None
) -> KrakenCompressor:
    return KrakenCompressor(
        KrakenCredentials(
            api_key=config.kraken_api_key,
            api_secret=config.kraken_secret_key,
        ),
        api_url=config.kraken_api_url,
        public_base_url=config.public_base_url,
        session=session,
        timeout_s=config.http_timeout_seconds,
    )


def build_fetcher(
    config: Config, *, session: requests.Session | None = None
) -> ResultFetcher:
    return ResultFetcher(
        session=session,
        timeout_s=config.http_timeout_seconds,
        chunk_bytes=config.copy_chunk_bytes,
    )


def _event_fields(event: StorageEvent, request_id: str | None) -> dict[str, object]:
    return {
        "request_id": request_id,
        "bucket": event.bucket,
        "object_name": event.name,
        "generation": event.generation,
        "content_type": event.content_type,
    }


def _skip(
    event: StorageEvent,
    reason: str,
    message: str,
    request_id: str | None,
    enter: StateCallback,
) -> PipelineOutcome:
    enter(PipelineState.SKIPPED)
    logger.info(
        message,
        extra={**_event_fields(event, request_id), "state": "skipped", "reason": reason},
    )
    return PipelineOutcome(state=PipelineState.SKIPPED, reason=reason)


def process_event(
    *,
    event: StorageEvent,
    compressor: Compressor,
    fetcher: Fetcher,
    sink: ObjectSink,
    staging_root: str,
    chunk_bytes: int = 1024 * 1024,
    request_id: str | None = None,
    on_state: StateCallback | None = None,
) -> PipelineOutcome:
    """Run one storage event through filter, compress, fetch and republish.

    Skips return an outcome without any outbound call. Stage failures are
    logged and re-raised unchanged; the caller decides whether the event is
    retried based on ``RecoverableError`` / ``PermanentError``.
    """
    state = PipelineState.START

    def enter(next_state: PipelineState) -> None:
        nonlocal state
        state = next_state
        if on_state is not None:
            on_state(next_state)

    enter(PipelineState.START)
    fields = _event_fields(event, request_id)

    if is_already_processed(event):
        return _skip(
            event,
            REASON_ALREADY_COMPRESSED,
            "Not processing file (already compressed)",
            request_id,
            enter,
        )
    if not is_allowed_content_type(event.content_type):
        return _skip(
            event,
            REASON_UNSUPPORTED_CONTENT_TYPE,
            "Not accepted content type",
            request_id,
            enter,
        )
    enter(PipelineState.FILTERED)

    start_time = time.monotonic()
    try:
        staged_name(event.name)

        enter(PipelineState.COMPRESSING)
        logger.info("Processing file", extra={**fields, "state": state.value})
        result = compressor.compress(event)

        enter(PipelineState.FETCHING)
        with staging_area(staging_root) as area:
            destination = staged_path(area, event.name)
            size = fetcher.fetch(result.result_url, destination)
            artifact = StagedArtifact(path=destination, size_bytes=size)

            enter(PipelineState.PUBLISHING)
            published = republish(event, artifact.path, sink, chunk_bytes=chunk_bytes)
    except PixelpressError as exc:
        failed_in = state
        enter(PipelineState.ABORTED)
        logger.error(
            "Optimization aborted",
            extra={
                **fields,
                "state": failed_in.value,
                "status": "aborted",
                "duration_ms": int((time.monotonic() - start_time) * 1000),
                "error_code": exc.code,
                "error_message": str(exc),
            },
        )
        raise

    enter(PipelineState.DONE)
    logger.info(
        "Success, optimized and replaced image",
        extra={
            **fields,
            "state": "done",
            "result_url": result.result_url,
            "bytes_downloaded": artifact.size_bytes,
            "bytes_published": published,
            "original_size": result.original_size,
            "kraked_size": result.kraked_size,
            "saved_bytes": result.saved_bytes,
            "duration_ms": int((time.monotonic() - start_time) * 1000),
        },
    )
    return PipelineOutcome(
        state=PipelineState.DONE,
        result_url=result.result_url,
        bytes_published=published,
        saved_bytes=result.saved_bytes,
    )
