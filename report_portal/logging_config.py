import logging

from .config import LOG_LEVEL

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = LOG_LEVEL):
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
