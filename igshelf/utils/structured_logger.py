"""
Event logging for download runs: console messages plus an optional JSON lines file
with one machine-readable entry per event.
"""

import json
import logging
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Any

from rich.markup import escape


class StructuredLogger:
    """
    Logger that outputs both human-readable and machine-parseable logs.

    Usage:
        logger = StructuredLogger("igshelf", log_dir=Path("logs"))
        logger.info("media_stored",
                    media_id="17850307850323541",
                    filename="202010_17850307850323541.jpg",
                    size_bytes=183042)
    """

    def __init__(self, name: str, log_dir: Path | None = None):
        """
        Initialize structured logger.

        Args:
            name: Logger name
            log_dir: Directory for JSON log files (None = console only)
        """
        self.name = name
        self._logger = logging.getLogger(name)

        self._json_file = None
        if log_dir is not None:
            log_dir.mkdir(parents=True, exist_ok=True)
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            json_log_path = log_dir / f"igshelf_{timestamp}.jsonl"
            self._json_file = open(json_log_path, "a", encoding="utf-8")  # noqa: SIM115

        # Session context (added to all log entries)
        self._session_context: dict[str, Any] = {
            "session_id": f"{int(time.time())}_{id(self)}",
        }

    def _format_message(self, event: str, **context) -> str:
        """Format message for console output."""
        parts = [escape(f"[{event}]")]
        parts.extend(f"{key}={value}" for key, value in context.items())
        return " ".join(parts)

    def _write_json(self, level: str, event: str, **context) -> None:
        """Write structured log entry to JSON file."""
        if not self._json_file or self._json_file.closed:
            return

        entry = {
            "ts": datetime.now().astimezone().isoformat(),
            "level": level,
            "event": event,
            **self._session_context,
            **context,
        }
        try:
            self._json_file.write(json.dumps(entry, default=str) + "\n")
            self._json_file.flush()
        except OSError as e:
            print(f"JSON logging failed: {e}", file=sys.stderr)

    def _log(self, level: int, event: str, **context) -> None:
        self._logger.log(level, self._format_message(event, **context))
        self._write_json(logging.getLevelName(level), event, **context)

    def debug(self, event: str, **context) -> None:
        self._log(logging.DEBUG, event, **context)

    def info(self, event: str, **context) -> None:
        self._log(logging.INFO, event, **context)

    def warning(self, event: str, **context) -> None:
        self._log(logging.WARNING, event, **context)

    def error(self, event: str, **context) -> None:
        self._log(logging.ERROR, event, **context)

    def close(self) -> None:
        """Close JSON log file."""
        if self._json_file and not self._json_file.closed:
            self._json_file.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


class DownloadLogger:
    """What happened to each media file."""

    def __init__(self, logger: StructuredLogger):
        self.logger = logger

    def media_stored(self, media_id: str, filename: str, size_bytes: int):
        self.logger.debug(
            "media_stored",
            media_id=media_id,
            filename=filename,
            size_bytes=size_bytes,
        )

    def media_skipped(self, media_id: str, filename: str, reason: str):
        self.logger.debug(
            "media_skipped", media_id=media_id, filename=filename, reason=reason
        )

    def media_download_failed(self, media_id: str, location: str, error: str):
        self.logger.warning(
            "media_download_failed",
            media_id=media_id,
            location=location,
            error=error,
        )


class SessionLogger:
    """Start and end of a download run."""

    def __init__(self, logger: StructuredLogger):
        self.logger = logger

    def session_started(self, source: str, destination: str, max_workers: int):
        self.logger.info(
            "session_started",
            source=source,
            destination=destination,
            max_workers=max_workers,
        )

    def session_completed(
        self,
        duration_s: float,
        media_downloaded: int,
        media_failed: int,
        media_skipped: int,
    ):
        self.logger.info(
            "session_completed",
            duration_s=round(duration_s, 2),
            media_downloaded=media_downloaded,
            media_failed=media_failed,
            media_skipped=media_skipped,
        )

    def session_failed(self, duration_s: float, error: str):
        self.logger.error(
            "session_failed", duration_s=round(duration_s, 2), error=error
        )


def create_structured_logger(
    log_dir: Path | None = None,
) -> tuple[StructuredLogger, DownloadLogger, SessionLogger]:
    """
    Creates the event loggers of one run, sharing a single JSON file.

    Returns:
        Tuple of (base_logger, download_logger, session_logger)
    """
    base = StructuredLogger("igshelf.events", log_dir=log_dir)
    return base, DownloadLogger(base), SessionLogger(base)
