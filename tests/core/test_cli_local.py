import json
import os

import pytest

from pixelpress_cli import cli
from pixelpress_core.optimize.compressor import CompressionResult


@pytest.fixture(autouse=True)
def _quiet_logging(monkeypatch):
    monkeypatch.setattr(cli, "configure_logging", lambda **_kwargs: None)


def _write_event(tmp_path, **data):
    payload = {"bucket": "photos", "name": "cats/a.png", "contentType": "image/png"}
    payload.update(data)
    path = tmp_path / "event.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    return str(path)


def test_inspect_reports_process(tmp_path, capsys):
    code = cli.main(["inspect", "--event", _write_event(tmp_path)])

    assert code == 0
    out = json.loads(capsys.readouterr().out)
    assert out["decision"] == "process"
    assert out["uri"] == "gs://photos/cats/a.png"


def test_inspect_reports_skip_for_marker(tmp_path, capsys):
    event_path = _write_event(tmp_path, metadata={"compressed": "yes"})

    code = cli.main(["inspect", "--event", event_path])

    out = json.loads(capsys.readouterr().out)
    assert code == 0
    assert out["decision"] == "skip"
    assert out["reason"] == "already_compressed"


def test_inspect_accepts_cloudevent(tmp_path, capsys):
    path = tmp_path / "ce.json"
    path.write_text(
        json.dumps(
            {
                "specversion": "1.0",
                "data": {"bucket": "b", "name": "doc.pdf", "contentType": "application/pdf"},
            }
        ),
        encoding="utf-8",
    )

    cli.main(["inspect", "--event", str(path)])

    out = json.loads(capsys.readouterr().out)
    assert out["reason"] == "unsupported_content_type"


def test_optimize_writes_to_local_root(tmp_path, monkeypatch, capsys):
    class _Compressor:
        def compress(self, event):
            return CompressionResult(result_url="https://x/a.png", saved_bytes=3)

    class _Fetcher:
        def fetch(self, result_url, destination):
            os.makedirs(os.path.dirname(destination), exist_ok=True)
            with open(destination, "wb") as handle:
                handle.write(b"small")
            return 5

    monkeypatch.setattr(cli, "build_compressor", lambda config, session: _Compressor())
    monkeypatch.setattr(cli, "build_fetcher", lambda config, session: _Fetcher())
    store = tmp_path / "store"

    code = cli.main(
        ["optimize", "--event", _write_event(tmp_path), "--local-root", str(store)]
    )

    assert code == 0
    out = json.loads(capsys.readouterr().out)
    assert out["state"] == "done"
    assert out["bytes_published"] == 5
    assert (store / "photos" / "cats" / "a.png").read_bytes() == b"small"


def test_optimize_reports_errors(tmp_path, monkeypatch, capsys):
    monkeypatch.delenv("KRAKEN_API_KEY", raising=False)

    code = cli.main(["optimize", "--event", _write_event(tmp_path)])

    assert code == 1
    assert "KRAKEN_API_KEY" in capsys.readouterr().err


def test_serve_dry_run_prints_uvicorn_command(capsys):
    code = cli.main(["serve", "--port", "9000", "--dry-run"])

    assert code == 0
    out = capsys.readouterr().out
    assert "gcp_adapter.optimizer_service:app" in out
    assert "--port 9000" in out
