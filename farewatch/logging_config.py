import logging
import sys


class _ColoredFormatter(logging.Formatter):
    _COLORS = {
        'DEBUG': '\033[36m',
        'INFO': '\033[32m',
        'WARNING': '\033[33m',
        'ERROR': '\033[31m',
        'CRITICAL': '\033[35m',
    }
    _RESET = '\033[0m'
    _BOLD = '\033[1m'

    def format(self, record: logging.LogRecord) -> str:
        color = self._COLORS.get(record.levelname, '')
        if not color:
            return super().format(record)
        # the record is shared with other handlers, restore it after formatting
        original = record.levelname
        record.levelname = f"{color}{self._BOLD}{original}{self._RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = original


_NOISY_LOGGERS = ('urllib3', 'requests', 'schedule')


def setup_logging(level: int | str = logging.INFO) -> None:
    """Console logging for fare runs: colors on a TTY, function names and line numbers."""
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    log_format = '%(asctime)s [%(levelname)s] %(module)s.%(funcName)s():%(lineno)d - %(message)s'
    date_format = '%Y-%m-%d %H:%M:%S'

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    formatter_cls = _ColoredFormatter if sys.stdout.isatty() else logging.Formatter
    handler.setFormatter(formatter_cls(log_format, datefmt=date_format))
    root_logger.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
