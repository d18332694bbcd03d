"""
Structured logging with key=value and JSON output.

[Logger][nostalgia.core.logger.Logger] wraps a stdlib ``logging.Logger`` so
that services can write ``logger.info("feed_refreshed", notes=50)`` and get
either ``feed_refreshed notes=50`` or a JSON object, depending on how the
logger was built. Context shared by many lines (a relay URL, a service name)
can be attached once with [bind()][nostalgia.core.logger.Logger.bind].

[StructuredFormatter][nostalgia.core.logger.StructuredFormatter] is installed
on the root handler by the CLI. It renders the structured fields attached
by ``Logger`` and passes plain ``logging.getLogger(__name__)`` records from
the models, nips and utils layers through with the same prefix.

Examples:
    ```python
    from nostalgia.core.logger import Logger

    logger = Logger("feed")
    logger.info("feed_refreshed", notes=50, authors=12)
    # info feed feed_refreshed notes=50 authors=12

    relay_logger = logger.bind(relay="wss://relay.damus.io")
    relay_logger.warning("query_failed", error="timeout")
    # warning feed query_failed relay=wss://relay.damus.io error=timeout
    ```
"""

from __future__ import annotations

import datetime
import json
import logging
from typing import Any, ClassVar


def _truncate(value: Any, max_length: int | None) -> str:
    text = str(value)
    if max_length and len(text) > max_length:
        return text[:max_length] + f"...<truncated {len(text) - max_length} chars>"
    return text


def format_kv_pairs(
    fields: dict[str, Any],
    max_value_length: int | None = 1000,
    prefix: str = " ",
) -> str:
    """Render *fields* as space-separated ``key=value`` pairs.

    Values are truncated to *max_value_length* characters. Empty values and
    values containing whitespace, ``=`` or quotes are escaped and wrapped in
    double quotes.

    Returns:
        ``prefix`` followed by the pairs, or ``""`` when *fields* is empty.
    """
    if not fields:
        return ""

    parts = []
    for key, value in fields.items():
        text = _truncate(value, max_value_length)
        if not text or any(c in text for c in ' ="\''):
            escaped = text.replace("\\", "\\\\").replace('"', '\\"')
            parts.append(f'{key}="{escaped}"')
        else:
            parts.append(f"{key}={text}")
    return prefix + " ".join(parts)


class StructuredFormatter(logging.Formatter):
    """Render every record as ``level logger message key=value ...``.

    Structured fields come from the ``structured_kv`` attribute set by
    [Logger][nostalgia.core.logger.Logger]; records without it are rendered
    with the same prefix and no fields.
    """

    def format(self, record: logging.LogRecord) -> str:
        line = f"{record.levelname.lower()} {record.name} {record.getMessage()}"
        fields: dict[str, Any] = getattr(record, "structured_kv", {})
        if fields:
            line += format_kv_pairs(fields)
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class Logger:
    """Structured logger taking event fields as keyword arguments.

    Args:
        name: Name of the underlying stdlib logger.
        json_output: Emit one JSON object per line instead of key=value pairs.
        max_value_length: Truncate individual values beyond this many
            characters (default 1000).
        context: Fields added to every line.
    """

    _DEFAULT_MAX_VALUE_LENGTH: ClassVar[int] = 1000

    def __init__(
        self,
        name: str,
        *,
        json_output: bool = False,
        max_value_length: int | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        self._logger = logging.getLogger(name)
        self._json_output = json_output
        self._max_value_length = (
            self._DEFAULT_MAX_VALUE_LENGTH if max_value_length is None else max_value_length
        )
        self._context: dict[str, Any] = dict(context or {})

    @property
    def name(self) -> str:
        return self._logger.name

    def bind(self, **context: Any) -> Logger:
        """Return a logger that adds *context* to every line."""
        return Logger(
            self._logger.name,
            json_output=self._json_output,
            max_value_length=self._max_value_length,
            context={**self._context, **context},
        )

    def _log(self, level: int, msg: str, fields: dict[str, Any], *, exc_info: bool = False) -> None:
        if not self._logger.isEnabledFor(level):
            return
        merged = {**self._context, **fields}
        if self._json_output:
            record = {
                "timestamp": datetime.datetime.now(datetime.UTC).isoformat(),
                "level": logging.getLevelName(level).lower(),
                "service": self._logger.name,
                "message": msg,
                **merged,
            }
            self._logger.log(level, json.dumps(record, default=str), exc_info=exc_info)
            return
        extra = {
            "structured_kv": {k: _truncate(v, self._max_value_length) for k, v in merged.items()}
        }
        self._logger.log(level, msg, extra=extra, exc_info=exc_info)

    def debug(self, msg: str, **fields: Any) -> None:
        self._log(logging.DEBUG, msg, fields)

    def info(self, msg: str, **fields: Any) -> None:
        self._log(logging.INFO, msg, fields)

    def warning(self, msg: str, **fields: Any) -> None:
        self._log(logging.WARNING, msg, fields)

    def error(self, msg: str, **fields: Any) -> None:
        self._log(logging.ERROR, msg, fields)

    def critical(self, msg: str, **fields: Any) -> None:
        self._log(logging.CRITICAL, msg, fields)

    def exception(self, msg: str, **fields: Any) -> None:
        """Log at ERROR level with the current exception's traceback."""
        self._log(logging.ERROR, msg, fields, exc_info=True)
