from unittest.mock import MagicMock

from a11y_audit.wcag.timing import (
    complete_analyzer_timing,
    create_analyzer_timing,
    format_structured_log,
    format_timeout_error,
    log_analyzer_complete
)

def test_complete_sets_duration_and_status():
    timing = complete_analyzer_timing(create_analyzer_timing("axe-core", "https://example.com"), "success")
    assert timing.status == "success"
    assert timing.duration >= 0
    assert timing.end_time >= timing.start_time

def test_format_timeout_error_contains_url():
    message = format_timeout_error("pa11y", "https://example.com", 90000, 91234)
    assert "https://example.com" in message
    assert "90s" in message
    assert "91.2s" in message

def test_structured_log_warns_for_slow_analyzers():
    timing = create_analyzer_timing("lighthouse", "https://example.com")
    timing.status = "success"
    timing.duration = 61000
    assert "warning=exceeded 60s" in format_structured_log(timing)

    timing.duration = 1000
    assert "warning" not in format_structured_log(timing)

def test_log_analyzer_complete_levels():
    log = MagicMock()
    timing = create_analyzer_timing("ibm", "https://example.com")
    timing.status = "error"
    timing.duration = 10
    log_analyzer_complete(timing, "boom", log=log)
    log.error.assert_called_once()
    assert "error=boom" in log.error.call_args[0][0]

    timing.status = "success"
    log_analyzer_complete(timing, log=log)
    log.info.assert_called_once()
