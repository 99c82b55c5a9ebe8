from __future__ import annotations

import json
import logging

from card_agent_orchestrator.orchestrator.logging import JsonFormatter, configure_logging


def test_json_formatter_includes_extra_fields() -> None:
    record = logging.LogRecord("card.test", logging.INFO, __file__, 1, "Cache hit", None, None)
    record.workflow_id = "trend-analysis"

    payload = json.loads(JsonFormatter().format(record))

    assert payload["level"] == "INFO"
    assert payload["logger"] == "card.test"
    assert payload["message"] == "Cache hit"
    assert payload["extra"] == {"workflow_id": "trend-analysis"}


def test_configure_logging_replaces_handlers() -> None:
    root = logging.getLogger()
    saved = list(root.handlers), root.level
    try:
        configure_logging("debug")
        configure_logging("info")
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JsonFormatter)
        assert root.level == logging.INFO
    finally:
        root.handlers[:] = saved[0]
        root.setLevel(saved[1])
