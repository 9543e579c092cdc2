import os

import pytest

from pixelpress_core.config import get_config


@pytest.fixture(autouse=True)
def _default_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    def set_default(name: str, value: str) -> None:
        if not os.getenv(name):
            monkeypatch.setenv(name, value)

    set_default("KRAKEN_API_KEY", "test-key")
    set_default("KRAKEN_SECRET_KEY", "test-secret")
    set_default("ENV", "test")
    set_default("LOG_LEVEL", "INFO")
    monkeypatch.setenv("STAGING_DIR", str(tmp_path / "staging"))
    get_config.cache_clear()
    yield
    get_config.cache_clear()
