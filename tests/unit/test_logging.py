"""Unit tests for structured logging"""

import json
import logging

from flowsight_core.config import settings
from flowsight_core.infrastructure.observability.logging import CustomJsonFormatter


def test_json_formatter_adds_service_metadata():
    """Test formatted records are JSON with level, service and extras"""
    formatter = CustomJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s")
    record = logging.LogRecord("flowsight_core.engine", logging.INFO, __file__, 1, "Computation completed", None, None)
    record.step = "compute_fhss"

    payload = json.loads(formatter.format(record))

    assert payload["message"] == "Computation completed"
    assert payload["level"] == "INFO"
    assert payload["service"] == settings.service_name
    assert payload["step"] == "compute_fhss"
    assert "timestamp" in payload
