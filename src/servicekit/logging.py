"""Logging setup for wrapped services.

Service commands (``worker status`` and friends) log to the terminal through
Rich. A supervised service process logs plain lines to stderr, which the
service system captures, and can additionally keep structured JSONL logs
under ``$SERVICEKIT_HOME/logs`` (``log_to_file = true``).

Levels:
- DEBUG: backend commands, config resolution
- INFO: lifecycle transitions (start, stop, install)
- WARNING: stop deadlines exceeded, foreground fallback
- ERROR: exceptions raised by the wrapped function
"""

import json
import logging
import os
import time
from datetime import UTC, datetime
from pathlib import Path
from typing import TextIO

DEFAULT_LOG_RETENTION_DAYS = 7

LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")

LEVEL_ENV_VAR = "SERVICEKIT_LOG_LEVEL"


def prune_old_logs(
    logs_dir: Path,
    retention_days: int = DEFAULT_LOG_RETENTION_DAYS,
    pattern: str = "*.jsonl",
) -> int:
    """Delete log files in ``logs_dir`` not modified within the retention period.

    Returns:
        Number of files deleted.
    """
    if not logs_dir.is_dir():
        return 0

    cutoff = time.time() - retention_days * 86400
    deleted = 0
    for path in logs_dir.glob(pattern):
        try:
            if path.is_file() and path.stat().st_mtime < cutoff:
                path.unlink()
                deleted += 1
        except OSError:
            continue
    return deleted


class JSONLHandler(logging.Handler):
    """Write one JSON object per record to ``<prefix>-YYYY-MM-DD.jsonl``.

    A new file is opened when the UTC date changes, and files of the same
    prefix older than the retention period are pruned at that point.
    """

    def __init__(
        self,
        logs_dir: Path,
        prefix: str = "servicekit",
        retention_days: int = DEFAULT_LOG_RETENTION_DAYS,
    ):
        super().__init__()
        logs_dir.mkdir(parents=True, exist_ok=True)
        self.logs_dir = logs_dir
        self.prefix = prefix
        self.retention_days = retention_days
        self._date: str | None = None
        self._stream: TextIO | None = None

    def _open_for(self, date: str) -> TextIO:
        if self._stream is not None and self._date == date:
            return self._stream
        if self._stream is not None:
            self._stream.close()
        self._date = date
        self._stream = (self.logs_dir / f"{self.prefix}-{date}.jsonl").open(
            "a", encoding="utf-8"
        )
        prune_old_logs(self.logs_dir, self.retention_days, f"{self.prefix}-*.jsonl")
        return self._stream

    def emit(self, record: logging.LogRecord) -> None:
        try:
            created = datetime.fromtimestamp(record.created, UTC)
            entry = {
                "ts": created.isoformat(),
                "level": record.levelname,
                "logger": record.name,
                "thread": record.threadName,
                "message": record.getMessage(),
            }
            if record.exc_info:
                entry["exception"] = logging.Formatter().formatException(
                    record.exc_info
                )

            self.acquire()
            try:
                stream = self._open_for(created.strftime("%Y-%m-%d"))
                stream.write(json.dumps(entry) + "\n")
                stream.flush()
            finally:
                self.release()
        except Exception:
            self.handleError(record)

    def close(self) -> None:
        self.acquire()
        try:
            if self._stream is not None:
                self._stream.close()
                self._stream = None
        finally:
            self.release()
        super().close()


def resolve_level(level: str | None = None) -> int:
    """Resolve a level name, falling back to SERVICEKIT_LOG_LEVEL, then INFO."""
    name = (level or os.environ.get(LEVEL_ENV_VAR) or "INFO").upper()
    if name not in LEVELS:
        name = "INFO"
    return logging.getLevelNamesMapping()[name]


def configure_logging(
    level: str | None = None,
    use_rich: bool = False,
    log_to_file: bool = False,
    logs_dir: Path | None = None,
    service: str | None = None,
) -> None:
    """Configure root logging for a command or a service process.

    Args:
        level: Log level name; defaults to SERVICEKIT_LOG_LEVEL or INFO.
        use_rich: Log through Rich (interactive commands).
        log_to_file: Also write JSONL files.
        logs_dir: Directory for JSONL files, defaults to $SERVICEKIT_HOME/logs.
        service: Service name used as the JSONL file prefix.
    """
    from servicekit.config.paths import get_logs_path

    handlers: list[logging.Handler] = []
    if use_rich:
        from rich.logging import RichHandler

        handlers.append(RichHandler(show_path=False, markup=False))
    else:
        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)-8s %(name)s: %(message)s")
        )
        handlers.append(stream_handler)

    if log_to_file:
        handlers.append(
            JSONLHandler(logs_dir or get_logs_path(), prefix=service or "servicekit")
        )

    logging.basicConfig(level=resolve_level(level), handlers=handlers, force=True)
