import json
import logging

from metrolog.logging_config import JsonFormatter, TextFormatter, setup_logging


def _record(msg="Imported %d records", args=(3,)):
    return logging.LogRecord("metrolog.storage", logging.INFO, __file__, 10, msg, args, None)


def test_json_formatter_emits_one_object():
    payload = json.loads(JsonFormatter().format(_record()))
    assert payload["level"] == "INFO"
    assert payload["logger"] == "metrolog.storage"
    assert payload["message"] == "Imported 3 records"
    assert payload["timestamp"].endswith("Z")


def test_text_formatter():
    line = TextFormatter().format(_record())
    assert line.endswith("| INFO | metrolog.storage | Imported 3 records")


def test_setup_logging_override_replaces_root_handlers():
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    try:
        setup_logging(level="debug", json_logs=True, override=True)
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JsonFormatter)
    finally:
        for h in list(root.handlers):
            root.removeHandler(h)
        for h in saved_handlers:
            root.addHandler(h)
        root.setLevel(saved_level)
