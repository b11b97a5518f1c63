"""Logging helpers shared by the CLI, the service and the analysis pipeline."""

from __future__ import annotations

import logging
import sys
import time
from contextlib import contextmanager
from pathlib import Path
from typing import IO, Iterator

_ROOT = "codeatlas"
_CONSOLE_FORMAT = "[codeatlas] %(levelname)s %(message)s"
# Extraction runs on worker threads, so the file sink records which one logged.
_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(threadName)s]: %(message)s"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return ``codeatlas.<name>``, or the package logger itself."""
    return logging.getLogger(f"{_ROOT}.{name}" if name else _ROOT)


def configure_logging(
    *,
    verbose: bool = False,
    log_file: Path | None = None,
    stream: IO[str] | None = None,
) -> logging.Logger:
    """Route codeatlas records to ``stream`` (stderr by default) and ``log_file``.

    Reports go to stdout, so console logging never does. The file sink
    always captures DEBUG detail such as per-file extraction and resolver
    ambiguities, whatever the console level.
    """
    console_level = logging.DEBUG if verbose else logging.INFO
    package_logger = logging.getLogger(_ROOT)
    package_logger.propagate = False

    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler(stream if stream is not None else sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
    package_logger.addHandler(console)

    lowest = console_level
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        sink = logging.FileHandler(log_file, encoding="utf-8")
        sink.setLevel(logging.DEBUG)
        sink.setFormatter(logging.Formatter(_FILE_FORMAT))
        package_logger.addHandler(sink)
        lowest = logging.DEBUG

    package_logger.setLevel(lowest)
    return package_logger


@contextmanager
def log_phase(logger: logging.Logger, phase: str) -> Iterator[None]:
    """Log how long one analysis phase took; failures are logged as aborted."""
    started = time.monotonic()
    try:
        yield
    except BaseException:
        logger.debug("Phase %s aborted after %.3fs", phase, time.monotonic() - started)
        raise
    logger.debug("Phase %s finished in %.3fs", phase, time.monotonic() - started)


__all__ = ["configure_logging", "get_logger", "log_phase"]
