import logging

from config import LOG_LEVEL

# Root logger for the whole service
logger = logging.getLogger("campus_nav")

if not logger.handlers:
    formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    handler = logging.StreamHandler()
    handler.setFormatter(formatter)
    logger.addHandler(handler)
logger.setLevel(LOG_LEVEL)


def get_logger(name=None):
    if name:
        return logging.getLogger(f"campus_nav.{name}")
    return logger
