"""Process logging for teleboot: one stderr handler on the ``teleboot`` logger."""

from __future__ import annotations

import logging
import sys
import threading

LOGGER_NAME = "teleboot"
_PREFIX = f"{LOGGER_NAME}."

_lock = threading.Lock()
_handler: logging.Handler | None = None


class _Formatter(logging.Formatter):
    """``LEVEL    [component] message``, the component without the ``teleboot.`` prefix."""

    def __init__(self) -> None:
        super().__init__("%(levelname)-8s %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        component = record.name.removeprefix(_PREFIX)
        # Other handlers on the same record must see the untagged message.
        tagged = logging.makeLogRecord(record.__dict__)
        tagged.msg = f"[{component}] {record.msg}"
        return super().format(tagged)


def setup_logging(verbose: bool = False) -> logging.Logger:
    """Attach the stderr handler to the ``teleboot`` logger once.

    The logger does not propagate, so host applications that configure the
    root logger see teleboot output only through the OpenTelemetry handler.
    Repeated calls only raise the verbosity: ``--verbose`` still applies after
    a module has already asked for a logger.
    """
    global _handler
    logger = logging.getLogger(LOGGER_NAME)
    with _lock:
        if _handler is None:
            _handler = logging.StreamHandler(sys.stderr)
            _handler.setFormatter(_Formatter())
            logger.addHandler(_handler)
            logger.setLevel(logging.INFO)
            logger.propagate = False
        if verbose:
            logger.setLevel(logging.DEBUG)
    return logger


def get_logger(name: str) -> logging.Logger:
    """Logger for a teleboot component, e.g. ``get_logger("heartbeat")``."""
    setup_logging()
    return logging.getLogger(f"{_PREFIX}{name}")
