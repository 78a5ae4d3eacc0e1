"""Unit tests for structured logging"""

import json
import logging

import sys
from pathlib import Path
backend_src = Path(__file__).parent.parent.parent / "src"
sys.path.insert(0, str(backend_src))

from observability.correlation import correlation_scope
from observability.logging_config import CorrelationIDFilter, JSONFormatter


def make_record(**extra):
    record = logging.LogRecord(
        name="domain.matching.matcher",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="Matched listing %s",
        args=("listing-1",),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_line_carries_correlation_and_extras():
    record = make_record(catalog_id="sv3-6", composite=0.984)
    with correlation_scope("listing-1"):
        CorrelationIDFilter().filter(record)

    payload = json.loads(JSONFormatter().format(record))

    assert payload["message"] == "Matched listing listing-1"
    assert payload["correlation_id"] == "listing-1"
    assert payload["catalog_id"] == "sv3-6"
    assert payload["composite"] == 0.984
    assert "strategy" not in payload


def test_missing_correlation_id():
    record = make_record()
    CorrelationIDFilter().filter(record)
    assert json.loads(JSONFormatter().format(record))["correlation_id"] == "no-correlation-id"
