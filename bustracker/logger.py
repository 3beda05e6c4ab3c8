# bustracker/logger.py
import json
import logging
import os
from logging.handlers import TimedRotatingFileHandler
from typing import Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
ROOT_LOGGER = "bustracker"


def setup_logging(level: str = "INFO", log_dir: str = "") -> logging.Logger:
    """Configure the bustracker logger once: console always, daily file if log_dir is set."""
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Avoid duplicate handlers when create_app() runs more than once (tests)
    if not any(type(h) is logging.StreamHandler for h in logger.handlers):
        ch = logging.StreamHandler()
        ch.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(ch)

    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        target = os.path.abspath(os.path.join(log_dir, "bustracker.log"))
        if not any(isinstance(h, TimedRotatingFileHandler) and h.baseFilename == target
                   for h in logger.handlers):
            fh = TimedRotatingFileHandler(target, when="midnight", backupCount=30, encoding="utf-8")
            fh.setFormatter(logging.Formatter(LOG_FORMAT))
            logger.addHandler(fh)

    logger.propagate = False
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    base = logging.getLogger(ROOT_LOGGER)
    return base.getChild(name) if name else base


_activity = get_logger("activity")


def log_activity(action: str, user_id, **details) -> None:
    """One line per important action, e.g. BUS_ADDED or USER_LOGIN."""
    _activity.info("ACTIVITY: %s - User: %s - Details: %s", action, user_id,
                   json.dumps(details, default=str))


def list_log_files(log_dir: str):
    if not log_dir or not os.path.isdir(log_dir):
        return []
    return sorted(f for f in os.listdir(log_dir) if f.startswith("bustracker.log"))
