import logging
import sys

LOGGER_NAME = "workbench"

logger = logging.getLogger(LOGGER_NAME)
# main installs a root handler via basicConfig; keep records from printing twice
logger.propagate = False
logger.setLevel(logging.INFO)

if not logger.handlers:
    handler = logging.StreamHandler(sys.stdout)
    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def configure_logging(level: str) -> None:
    """Apply LOG_LEVEL from the settings an app was created with."""
    logger.setLevel(level.upper())


def get_logger(name: str):
    return logger.getChild(name)
