import os
from dataclasses import dataclass
from functools import lru_cache

DEFAULT_KRAKEN_API_URL = "https://api.kraken.io/v1/url"
DEFAULT_PUBLIC_BASE_URL = "https://storage.googleapis.com"
# Writable folder available in Cloud Functions / Cloud Run
DEFAULT_STAGING_DIR = "/tmp"


@dataclass(frozen=True)
class Config:
    kraken_api_key: str
    kraken_secret_key: str
    env: str
    log_level: str
    kraken_api_url: str
    public_base_url: str
    staging_dir: str
    http_timeout_seconds: float
    copy_chunk_bytes: int

    @classmethod
    def from_env(cls) -> "Config":
        missing: list[str] = []

        def require(name: str) -> str:
            value = os.getenv(name)
            if value is None or value == "":
                missing.append(name)
                return ""
            return value

        kraken_api_key = require("KRAKEN_API_KEY")
        kraken_secret_key = require("KRAKEN_SECRET_KEY")
        env = os.getenv("ENV", "dev")
        log_level = os.getenv("LOG_LEVEL", "INFO").upper()
        kraken_api_url = os.getenv("KRAKEN_API_URL", DEFAULT_KRAKEN_API_URL).strip()
        public_base_url = os.getenv("PUBLIC_BASE_URL", DEFAULT_PUBLIC_BASE_URL).strip()
        if not public_base_url.startswith(("http://", "https://")):
            raise ValueError("PUBLIC_BASE_URL must be an http(s) URL")
        staging_dir = os.getenv("STAGING_DIR", DEFAULT_STAGING_DIR)
        http_timeout_seconds = _parse_float(os.getenv("HTTP_TIMEOUT_SECONDS", "60"))
        if http_timeout_seconds <= 0:
            raise ValueError("HTTP_TIMEOUT_SECONDS must be positive")
        copy_chunk_bytes = _parse_int(os.getenv("COPY_CHUNK_BYTES", str(1024 * 1024)))
        if copy_chunk_bytes <= 0:
            raise ValueError("COPY_CHUNK_BYTES must be positive")

        if missing:
            missing_str = ", ".join(missing)
            raise ValueError(f"Missing required env vars: {missing_str}")

        return cls(
            kraken_api_key=kraken_api_key,
            kraken_secret_key=kraken_secret_key,
            env=env,
            log_level=log_level,
            kraken_api_url=kraken_api_url,
            public_base_url=public_base_url,
            staging_dir=staging_dir,
            http_timeout_seconds=http_timeout_seconds,
            copy_chunk_bytes=copy_chunk_bytes,
        )


def _parse_float(value: str) -> float:
    try:
        return float(value)
    except ValueError as exc:
        raise ValueError(f"Invalid float value: {value}") from exc


def _parse_int(value: str) -> int:
    try:
        return int(value)
    except ValueError as exc:
        raise ValueError(f"Invalid integer value: {value}") from exc


@lru_cache(maxsize=1)
def get_config() -> Config:
    return Config.from_env()
