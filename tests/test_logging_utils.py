"""Tests for the logging helpers."""

import logging

from common.logging_utils import Timer, configure_logging, extra_context, safe_url


def test_extra_context_drops_none():
    assert extra_context(event="score", target=None, outcome="ok") == {"event": "score", "outcome": "ok"}


def test_safe_url_strips_credentials():
    url = "https://user:pw@index.example:8443/v1/file/_search?api_key=abc&size=5"
    assert safe_url(url) == "https://index.example:8443/v1/file/_search?api_key=***&size=5"


def test_timer_measures():
    with Timer() as t:
        pass
    assert t.duration_ms() >= 0


def test_configure_logging_to_file(tmp_path):
    root = logging.getLogger()
    saved, level = list(root.handlers), root.level
    logfile = tmp_path / "survey.log"
    try:
        configure_logging("WARNING", str(logfile))
        logging.getLogger("analysis.test").warning("written")
        logging.getLogger("analysis.test").info("filtered")
        for handler in root.handlers:
            handler.flush()
        text = logfile.read_text(encoding="utf-8")
    finally:
        for handler in root.handlers:
            handler.close()
        root.handlers[:] = saved
        root.setLevel(level)
    assert "written" in text
    assert "filtered" not in text
