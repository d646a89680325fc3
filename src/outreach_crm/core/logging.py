"""Loguru setup for the command-line client.

Console records are written through ``tqdm.write`` so they appear above
any active job progress bar instead of tearing it.  Records bound with
``json_output=True`` go to a separate JSON stream on stderr, and a
rotating file keeps the full detail when ``log_dir`` is set.
"""

import sys
from pathlib import Path

from loguru import logger
from tqdm import tqdm

_CONSOLE_FORMAT = "<level>{level: <8}</level> | {message}"
_FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<8} | {name}:{function}:{line} | {message}"


def _console_sink(message: str) -> None:
    tqdm.write(message, file=sys.stderr, end="")


def setup_logging(log_level: str = "INFO", log_dir: str | None = None) -> None:
    """Replace Loguru's default sink with the client's sinks.

    Args:
        log_level: Minimum level for every sink, case-insensitive.
        log_dir: Directory for ``outreach-crm.log`` (24h rotation, 7 days
            retention).  Created if missing; None disables file logging.
    """
    level = log_level.upper()
    logger.remove()
    logger.add(
        _console_sink,
        level=level,
        format=_CONSOLE_FORMAT,
        colorize=sys.stderr.isatty(),
        filter=lambda record: not record["extra"].get("json_output", False),
    )
    logger.add(
        sys.stderr,
        level=level,
        serialize=True,
        filter=lambda record: record["extra"].get("json_output", False),
    )

    if log_dir:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_path / "outreach-crm.log",
            level=level,
            format=_FILE_FORMAT,
            rotation="24h",
            retention="7 days",
        )
