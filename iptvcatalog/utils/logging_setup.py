"""Logging setup for iptvcatalog with console and rotating file output"""

import logging
import logging.handlers
import sys
from datetime import date
from pathlib import Path

from iptvcatalog.config import LoggingConfig

SIZE_UNITS = {"GB": 1024**3, "MB": 1024**2, "KB": 1024}
DEFAULT_MAX_BYTES = 10 * 1024 * 1024
CONSOLE_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"

# Libraries that log every request / statement at INFO
NOISY_LOGGERS = ("httpx", "httpcore", "sqlalchemy.engine", "uvicorn.access")


def parse_size(size: str, default: int = DEFAULT_MAX_BYTES) -> int:
    """Convert a size string such as "10MB" or "512KB" into bytes."""
    text = size.strip().upper()
    for suffix, multiplier in SIZE_UNITS.items():
        if text.endswith(suffix):
            number = text[: -len(suffix)].strip()
            return int(number) * multiplier if number.isdigit() else default
    return int(text) if text.isdigit() else default


def resolve_log_path(file: str | None, log_dir: Path | None = None) -> Path:
    """
    Where the rotating log file lives.

    A configured path with a directory part is used as-is; a bare file name
    goes under ``log_dir`` (``logs/`` by default). Without a configured file
    the name is dated, one file per day the server was started.
    """
    if file and Path(file).parent != Path("."):
        return Path(file)
    name = file or f"iptvcatalog-{date.today().isoformat()}.log"
    return (log_dir or Path("logs")) / name


def setup_logging(
    logging_config: LoggingConfig | None = None,
    log_to_console: bool = True,
    log_to_file: bool = True,
    log_dir: Path | None = None,
) -> logging.Logger:
    """
    Configure the root logger from the ``logging`` config section.

    Replaces any handlers already installed, so calling it twice does not
    duplicate output.

    Returns:
        The configured root logger
    """
    settings = logging_config or LoggingConfig()
    level = getattr(logging, settings.level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    if log_to_console:
        console = logging.StreamHandler(sys.stdout)
        console.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt="%H:%M:%S"))
        root_logger.addHandler(console)

    log_path = None
    if log_to_file:
        log_path = resolve_log_path(settings.file, log_dir)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        rotating = logging.handlers.RotatingFileHandler(
            log_path,
            maxBytes=parse_size(settings.max_size),
            backupCount=settings.backup_count,
            encoding="utf-8",
        )
        rotating.setFormatter(logging.Formatter(settings.format, datefmt="%Y-%m-%d %H:%M:%S"))
        root_logger.addHandler(rotating)

    if level > logging.DEBUG:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    root_logger.info(f"iptvcatalog logging initialized - Level: {settings.level}")
    if log_path is not None:
        root_logger.info(f"Log file: {log_path}")
    return root_logger
