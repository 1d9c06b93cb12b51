from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

_LOGGING_INITIALIZED = False


class _ErrorHighlightFilter(logging.Filter):
    """Prefix error records so they stand out in the log file."""

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[name-defined]
        if record.levelno >= logging.ERROR and not str(record.msg).startswith("ERROR: "):
            record.msg = f"ERROR: {record.msg}"
        return True


def _cleanup_old_logs(log_dir: Path, keep_count: int = 5) -> None:
    """Remove old log files, keeping the newest ``keep_count``."""
    log_files = sorted(
        log_dir.glob("shot_detection_*.log"),
        key=lambda x: x.stat().st_mtime,
        reverse=True,
    )

    for old_log in log_files[keep_count:]:
        try:
            old_log.unlink()
        except OSError as e:
            logging.getLogger(__name__).warning(f"Failed to delete old log file {old_log.name}: {e}")


def init_logging(log_dir: Optional[Union[str, Path]] = None,
                 level: int = logging.INFO,
                 keep_count: int = 5) -> Path:
    """
    Initialize global logging:
    - log directory: ``log_dir`` or ./logs
    - log file: shot_detection_YYYYMMDD_HHMMSS.log
    - file handler at ``level``, console handler at WARNING

    Repeated calls are no-ops and return the directory in use.
    """
    global _LOGGING_INITIALIZED

    log_dir = Path(log_dir) if log_dir is not None else Path.cwd() / "logs"
    if _LOGGING_INITIALIZED:
        return log_dir

    log_dir.mkdir(parents=True, exist_ok=True)
    _cleanup_old_logs(log_dir, keep_count=keep_count)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = log_dir / f"shot_detection_{timestamp}.log"

    formatter = logging.Formatter(
        fmt="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    file_handler = logging.FileHandler(log_file, encoding="utf-8", mode="a")
    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)
    file_handler.addFilter(_ErrorHighlightFilter())

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.WARNING)
    console_handler.setFormatter(formatter)

    package_logger = logging.getLogger("shot_detection")
    package_logger.setLevel(level)
    package_logger.addHandler(file_handler)
    package_logger.addHandler(console_handler)

    _LOGGING_INITIALIZED = True
    return log_dir
