from __future__ import annotations

import logging

from logging_config import ContextualFormatter


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("services.supervisor", logging.INFO, __file__, 1, "Connected", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formatter_appends_known_context() -> None:
    formatter = ContextualFormatter(fmt="%(levelname)s %(message)s")

    line = formatter.format(_record(target="10.0.0.1:81", state="connected", unrelated="x"))

    assert line == "INFO Connected | target=10.0.0.1:81 state=connected"


def test_formatter_skips_missing_and_none_values() -> None:
    formatter = ContextualFormatter(fmt="%(message)s", extra_keys=["reason", "delay"])

    assert formatter.format(_record(reason=None)) == "Connected"
    assert formatter.format(_record(delay=3.0)) == "Connected | delay=3.0"
