from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import requests  # type: ignore[import-untyped]

from pixelpress_core.config import DEFAULT_KRAKEN_API_URL, DEFAULT_PUBLIC_BASE_URL
from pixelpress_core.errors import CompressTransportError, ProviderRejectedError
from pixelpress_core.events.storage_event import StorageEvent


@dataclass(frozen=True)
class KrakenCredentials:
    api_key: str
    api_secret: str

    def __repr__(self) -> str:
        return "KrakenCredentials(api_key=***, api_secret=***)"


@dataclass(frozen=True)
class CompressionResult:
    result_url: str
    original_size: int | None = None
    kraked_size: int | None = None
    saved_bytes: int | None = None


def public_object_url(base_url: str, bucket: str, name: str) -> str:
    return f"{base_url.rstrip('/')}/{bucket}/{name}"


def _coerce_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.isdigit():
        return int(value)
    return None


class KrakenCompressor:
    """Lossy compression through the Kraken.io ``/v1/url`` endpoint.

    The object must be publicly readable at ``public_base_url``; Kraken pulls
    it from there. ``wait`` is always set so the response carries the final
    ``kraked_url`` rather than a callback id.
    """

    def __init__(
        self,
        credentials: KrakenCredentials,
        *,
        api_url: str = DEFAULT_KRAKEN_API_URL,
        public_base_url: str = DEFAULT_PUBLIC_BASE_URL,
        session: requests.Session | None = None,
        timeout_s: float = 60.0,
    ) -> None:
        self.credentials = credentials
        self.api_url = api_url
        self.public_base_url = public_base_url
        self.session = session or requests.Session()
        self.timeout_s = timeout_s

    def source_url(self, event: StorageEvent) -> str:
        return public_object_url(self.public_base_url, event.bucket, event.name)

    def build_request(self, source_url: str) -> dict[str, Any]:
        return {
            "auth": {
                "api_key": self.credentials.api_key,
                "api_secret": self.credentials.api_secret,
            },
            "wait": True,
            "lossy": True,
            "url": source_url,
        }

    def compress(self, event: StorageEvent) -> CompressionResult:
        payload = self.build_request(self.source_url(event))
        try:
            resp = self.session.post(self.api_url, json=payload, timeout=self.timeout_s)
        except requests.RequestException as exc:
            raise CompressTransportError(f"Kraken request failed: {exc}") from exc

        try:
            data = resp.json()
        except ValueError as exc:
            raise CompressTransportError(
                f"Kraken returned a non-JSON response (HTTP {resp.status_code})"
            ) from exc
        if not isinstance(data, dict):
            raise CompressTransportError(
                f"Kraken returned an unexpected payload (HTTP {resp.status_code})"
            )

        if data.get("success") is not True:
            message = data.get("message")
            raise ProviderRejectedError(
                str(message) if message is not None else "unknown error"
            )

        result_url = data.get("kraked_url")
        if not isinstance(result_url, str) or not result_url:
            raise ProviderRejectedError("Kraken response missing kraked_url")

        return CompressionResult(
            result_url=result_url,
            original_size=_coerce_int(data.get("original_size")),
            kraked_size=_coerce_int(data.get("kraked_size")),
            saved_bytes=_coerce_int(data.get("saved_bytes")),
        )
