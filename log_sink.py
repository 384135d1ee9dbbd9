"""
Logging sink shared by the proxy, the metadata client and analytics.

Configured once at process start with configure_logging(); everything else
receives the sink instead of writing to files on its own.
"""
import logging
import sys

LOG_FORMAT = '[%(asctime)s] [%(levelname)s] %(message)s'
LOGGER_NAME = 'embedshield'


def _level_number(level):
    if isinstance(level, int):
        return level
    number = logging.getLevelName(str(level).upper())
    if not isinstance(number, int):
        raise ValueError(f"Unknown log level: {level!r}")
    return number


class LogSink:
    """Thin wrapper around a logging.Logger with a log(level, message) interface"""

    def __init__(self, logger=None):
        self._logger = logger or logging.getLogger(LOGGER_NAME)

    @property
    def logger(self):
        return self._logger

    def log(self, level, message):
        self._logger.log(_level_number(level), message)

    def debug(self, message):
        self.log(logging.DEBUG, message)

    def info(self, message):
        self.log(logging.INFO, message)

    def warning(self, message):
        self.log(logging.WARNING, message)

    def error(self, message):
        self.log(logging.ERROR, message)

    def request(self, mode, method, url, status="→"):
        """Consistent one-line format for proxied requests"""
        self.info(f"[{mode.upper():8}] {status} {method:4} {url[:80]}")


def configure_logging(level='INFO', log_file=None, stream=None):
    """Attach console (and optional file) handlers and return a LogSink"""
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(_level_number(level))
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)

    console_handler = logging.StreamHandler(stream or sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return LogSink(logger)
