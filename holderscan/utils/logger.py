import logging
import os
from datetime import datetime, timezone

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"
SYSTEM_LOG_NAME = "system.log"
ERROR_LOG_NAME = "errors.log"

_error_log_path = None


# === Base Logger Setup ===
def setup_logging(log_dir: str = "logs", level: str = "INFO") -> str:
    """
    Configure the root logger with a file handler and a console handler.
    Returns the path of the system log file.
    """
    global _error_log_path

    os.makedirs(log_dir, exist_ok=True)
    system_log = os.path.join(log_dir, SYSTEM_LOG_NAME)
    _error_log_path = os.path.join(log_dir, ERROR_LOG_NAME)

    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=[
            logging.FileHandler(system_log),
            logging.StreamHandler()
        ],
        force=True,
    )
    return system_log


# === Error Logger ===
def log_error(error: str):
    if _error_log_path:
        with open(_error_log_path, "a") as f:
            f.write(f"{timestamp()} | ERROR: {error}\n")
    logging.error(error)


# === System Event Logger ===
def log_event(event: str):
    logging.info(event)


# === Timestamp Generator ===
def timestamp():
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
