"""Logger construction for production and debug modes."""

from __future__ import annotations

import json
import logging
import sys

_LOGGER_NAME = "statora"
_DEBUG_FORMAT = "%(asctime)s\t%(levelname)s\t%(module)s:%(lineno)d\t%(message)s"


class _JsonFormatter(logging.Formatter):
    """One JSON object per line, in the style of structured production logs."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "level": record.levelname.lower(),
            "ts": record.created,
            "caller": f"{record.module}:{record.lineno}",
            "msg": record.getMessage(),
        }
        if record.exc_info:
            payload["stacktrace"] = self.formatException(record.exc_info)
        return json.dumps(payload)


def new_logger(debug: bool = False) -> logging.Logger:
    """Return the application logger writing to stderr.

    Debug mode logs everything in readable form; otherwise info and above as JSON.
    """
    log = logging.getLogger(_LOGGER_NAME)
    for handler in list(log.handlers):
        log.removeHandler(handler)
    handler = logging.StreamHandler(sys.stderr)
    if debug:
        handler.setFormatter(logging.Formatter(_DEBUG_FORMAT))
        log.setLevel(logging.DEBUG)
    else:
        handler.setFormatter(_JsonFormatter())
        log.setLevel(logging.INFO)
    log.addHandler(handler)
    log.propagate = False
    return log