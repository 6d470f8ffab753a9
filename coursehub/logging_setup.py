"""Colored console logging shared by every coursehub module"""
import logging

import colorlog

LOG_FORMAT = (
    "%(log_color)s[%(asctime)s] %(levelname)-8s%(reset)s "
    "%(blue)s%(name)s%(reset)s - %(message)s"
)
LOG_COLORS = {
    'DEBUG': 'cyan',
    'INFO': 'green',
    'WARNING': 'yellow',
    'ERROR': 'red',
    'CRITICAL': 'red,bg_white',
}


def setup_logging(level: str = "INFO") -> logging.Logger:
    """Attach a colored console handler to the package logger (once)"""
    logger = logging.getLogger("coursehub")
    logger.setLevel(level.upper())

    if not any(getattr(h, "_coursehub", False) for h in logger.handlers):
        handler = colorlog.StreamHandler()
        handler.setFormatter(colorlog.ColoredFormatter(
            LOG_FORMAT,
            datefmt="%Y-%m-%d %H:%M:%S",
            log_colors=LOG_COLORS,
        ))
        handler._coursehub = True
        logger.addHandler(handler)
        logger.propagate = False

    return logger
