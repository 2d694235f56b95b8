# ===================================== IMPORTS ====================================== #

# Standard Library
from datetime import datetime
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

# 3rd‑party (Rich)
from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme

# ================================= GLOBAL VARIABLES ================================= #

LOGGER_NAME = "workflow_shotgun"

THEME = Theme({
    "logging.time": "bold white",
    "logging.level.info": "bold white",
    "logging.level.debug": "dim cyan",
    "logging.level.warning": "bold yellow",
    "logging.level.error": "bold red",
    "logging.level.critical": "reverse bold bright_white on red",
})

FILE_FORMAT = "%(asctime)s %(levelname)-8s %(name)s:%(filename)s:%(funcName)s(): %(message)s"

# ==================================== FUNCTIONS ===================================== #

def _file_handler(
    log_file_path: Path,
    level: int,
    max_file_size: int,
    backup_count: int
) -> RotatingFileHandler:
    handler = RotatingFileHandler(
        filename=log_file_path,
        maxBytes=max_file_size,
        backupCount=backup_count,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    return handler


def _console_handler(level: int) -> RichHandler:
    # stderr keeps stdout free for piping tables
    handler = RichHandler(
        console=Console(theme=THEME, stderr=True),
        rich_tracebacks=True,
        level=level,
        show_time=True,
        show_level=True,
        show_path=False,
        markup=False,
        log_time_format="[%X]",
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    return handler


def setup_logging(
    log_dir_path: Union[str, Path],
    log_filename: Optional[str] = None,
    max_file_size: int = 5 * 1024 * 1024,  # 5 MB
    backup_count: int = 3,
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG
) -> logging.Logger:
    """
    Configure the package logger with a Rich console handler and a rotating
    DEBUG log file in `log_dir_path`.

    Calling it again replaces the handlers, so repeated pipeline runs in one
    process do not duplicate output.

    Args:
        log_dir_path:  Directory for the log file (created if needed).
        log_filename:  File name; a timestamp such as '2024-01-31_120000.log'
                       when omitted.
        max_file_size: Size in bytes at which the file is rotated.
        backup_count:  Number of rotated files kept.
        console_level: Minimum level shown on the console.
        file_level:    Minimum level written to the file.

    Returns:
        The 'workflow_shotgun' logger.
    """
    log_dir_path = Path(log_dir_path)
    log_dir_path.mkdir(parents=True, exist_ok=True)
    if log_filename is None:
        log_filename = datetime.now().strftime("%Y-%m-%d_%H%M%S.log")
    log_file_path = log_dir_path / log_filename

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    logger.addHandler(_file_handler(log_file_path, file_level, max_file_size, backup_count))
    logger.addHandler(_console_handler(console_level))

    logger.info("Logging initialised → %s", log_file_path)
    return logger
