"""
Process-wide logging for both entry points.

`harvest` logs straight to the root handlers. `serve` runs uvicorn with `log_config=None`, so
uvicorn's own loggers are stripped of any handlers and propagate here as well, giving the API and
the harvest steps one format and one optional log file.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable, Optional


LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"
REDACTED = "***"

UVICORN_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")
# Per-request access lines and Playwright internals drown out the harvest steps.
NOISY_LOGGERS = ("playwright", "uvicorn.access", "httpx")


class RedactSecretsFilter(logging.Filter):
    """
    Replaces known secret values (CRM password, API token) in a record's rendered message.

    The record is rewritten in place, so every handler sees the masked text.
    """

    def __init__(self, secrets: Iterable[str] = ()) -> None:
        super().__init__()
        self._secrets = tuple(s for s in secrets if s)

    def filter(self, record: logging.LogRecord) -> bool:
        if not self._secrets:
            return True
        message = record.getMessage()
        masked = message
        for secret in self._secrets:
            masked = masked.replace(secret, REDACTED)
        if masked != message:
            record.msg = masked
            record.args = None
        return True


def _route_uvicorn_to_root(level: int) -> None:
    for name in UVICORN_LOGGERS:
        uv = logging.getLogger(name)
        for handler in list(uv.handlers):
            uv.removeHandler(handler)
        uv.propagate = True
        uv.setLevel(level)


def configure_logging(
    level: str = "INFO",
    file_path: Optional[str] = None,
    *,
    secrets: Iterable[str] = (),
) -> list[logging.Handler]:
    """
    (Re)build the root handlers: stderr, plus `file_path` when set.

    Safe to call more than once; the CLI calls it again after the config file is loaded.
    Returns the installed handlers.
    """
    numeric_level = getattr(logging, (level or "INFO").upper(), logging.INFO)

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if file_path:
        path = Path(file_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(path, encoding="utf-8"))

    redact = RedactSecretsFilter(secrets)
    for handler in handlers:
        handler.addFilter(redact)

    logging.basicConfig(level=numeric_level, format=LOG_FORMAT, handlers=handlers, force=True)

    _route_uvicorn_to_root(numeric_level)
    for noisy in NOISY_LOGGERS:
        logging.getLogger(noisy).setLevel(os.getenv("NOISY_LOG_LEVEL", "WARNING"))

    return handlers
