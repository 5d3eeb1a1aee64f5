import logging
import sys

from engage_pod.settings.main import LogSettings

LOG_FORMAT = '[%(asctime)s] [%(levelname)s] %(name)s: %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def create_logger(logger_name: str = 'engage_pod', settings: LogSettings = None, stream=None) -> logging.Logger:
    """
    Returns logger with a single console handler attached (stdout unless `stream` is given).
    Calling it again for the same name only updates the level.
    """
    settings = settings or LogSettings()
    logger = logging.getLogger(logger_name)
    logger.setLevel(int(settings.log_level))

    if not any(getattr(h, '_engage_console', False) for h in logger.handlers):
        stream_handler = logging.StreamHandler(stream or sys.stdout)
        stream_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        stream_handler._engage_console = True
        logger.addHandler(stream_handler)

    return logger
