from pixelpress_core.optimize.compressor import (
    CompressionResult,
    KrakenCompressor,
    KrakenCredentials,
)
from pixelpress_core.optimize.fetcher import ResultFetcher
from pixelpress_core.optimize.guards import (
    ALLOWED_CONTENT_TYPES,
    is_allowed_content_type,
    is_already_processed,
)
from pixelpress_core.optimize.pipeline import (
    PipelineOutcome,
    PipelineState,
    build_compressor,
    build_fetcher,
    process_event,
)
from pixelpress_core.optimize.republisher import merge_metadata, republish

__all__ = [
    "ALLOWED_CONTENT_TYPES",
    "CompressionResult",
    "KrakenCompressor",
    "KrakenCredentials",
    "PipelineOutcome",
    "PipelineState",
    "ResultFetcher",
    "build_compressor",
    "build_fetcher",
    "is_allowed_content_type",
    "is_already_processed",
    "merge_metadata",
    "process_event",
    "republish",
]
