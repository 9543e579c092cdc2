import json
import logging

from pixelpress_core.logging import BaseFieldFilter, JsonFormatter


def _record(**extra):
    record = logging.LogRecord(
        name="pixelpress.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="Processing file",
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_includes_known_extras_only():
    record = _record(bucket="b", object_name="a.png", state="compressing", secret="x")

    payload = json.loads(JsonFormatter().format(record))

    assert payload["message"] == "Processing file"
    assert payload["level"] == "INFO"
    assert payload["bucket"] == "b"
    assert payload["object_name"] == "a.png"
    assert payload["state"] == "compressing"
    assert "secret" not in payload


def test_base_field_filter_does_not_override_explicit_values():
    record = _record(service="explicit")
    BaseFieldFilter(service="pixelpress", env="test", version="1.0").filter(record)

    assert record.service == "explicit"
    assert record.env == "test"
    assert record.version == "1.0"
