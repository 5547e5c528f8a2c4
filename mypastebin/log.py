import logging

from .config import config

LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
}


def get_logger(name=None) -> logging.Logger:
    """
    Configure logging.
    :param name: optional child logger name, usually the module ``__name__``
    :returns: logger object
    """
    logging.basicConfig(
        format="%(asctime)s %(name)s %(filename)s %(levelname)s %(message)s",
        level=LEVELS.get(config["app"]["log_level"].lower(), logging.INFO),
    )
    logger = logging.getLogger("pastebin")
    if name is not None:
        return logger.getChild(name.rsplit(".", 1)[-1])
    return logger
