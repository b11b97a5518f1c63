from __future__ import annotations

import io
import logging

import pytest

from codeatlas.logging import configure_logging, get_logger, log_phase


def test_console_level_follows_verbose_flag() -> None:
    stream = io.StringIO()
    configure_logging(stream=stream)

    get_logger("pipeline").debug("hidden detail")
    get_logger("pipeline").info("Analyzing 3 files")

    assert stream.getvalue() == "[codeatlas] INFO Analyzing 3 files\n"


def test_reconfiguring_replaces_previous_handlers() -> None:
    first = io.StringIO()
    second = io.StringIO()
    configure_logging(stream=first)
    package_logger = configure_logging(verbose=True, stream=second)

    get_logger("resolver").debug("ambiguous import")

    assert len(package_logger.handlers) == 1
    assert first.getvalue() == ""
    assert "DEBUG ambiguous import" in second.getvalue()


def test_log_file_captures_debug_detail_with_thread_names(tmp_path) -> None:
    log_file = tmp_path / "logs" / "codeatlas.log"
    stream = io.StringIO()
    package_logger = configure_logging(log_file=log_file, stream=stream)

    get_logger("extractors").debug("Extracting src/a.ts")
    for handler in package_logger.handlers:
        handler.flush()

    assert package_logger.level == logging.DEBUG
    assert stream.getvalue() == ""
    content = log_file.read_text(encoding="utf-8")
    assert "codeatlas.extractors [MainThread]: Extracting src/a.ts" in content
    configure_logging(stream=io.StringIO())


def test_log_phase_reports_finished_and_aborted_phases() -> None:
    stream = io.StringIO()
    configure_logging(verbose=True, stream=stream)
    logger = get_logger("pipeline")

    with log_phase(logger, "scan"):
        pass
    with pytest.raises(ValueError):
        with log_phase(logger, "extract"):
            raise ValueError("boom")

    lines = stream.getvalue().splitlines()
    assert lines[0].startswith("[codeatlas] DEBUG Phase scan finished in ")
    assert lines[1].startswith("[codeatlas] DEBUG Phase extract aborted after ")
