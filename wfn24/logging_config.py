"""
Logging setup shared by the web app, the relay and the CLI.
"""
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

from config.settings import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_configured = False


def configure_logging(level: Optional[str] = None, log_file: Optional[Union[str, Path]] = None) -> None:
    """
    Configure the root logger once per process.

    Args:
        level: Log level name (defaults to LOG_LEVEL)
        log_file: Optional rotating file that receives the API client,
            cache and relay loggers (defaults to LOG_FILE)
    """
    global _configured
    if _configured:
        return

    level = (level or settings.log_level).upper()
    logging.basicConfig(level=level, format=LOG_FORMAT)

    log_file = log_file or settings.log_file
    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(path, maxBytes=5 * 1024 * 1024, backupCount=3, encoding="utf-8")
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        for name in ("api_client", "cache", "live"):
            logging.getLogger(name).addHandler(handler)

    # Quiet noisy libraries
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    _configured = True
