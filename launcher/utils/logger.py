import logging
from pathlib import Path

LOG_FORMAT = "%(asctime)s - %(name)s @ %(levelname)s - %(funcName)s:%(lineno)d : %(message)s"


class LogFilter(logging.Filter):
    """Lets through records of one logger and of the loggers below it."""

    def __init__(self, name: str) -> None:
        super().__init__()
        self._prefix = name + "."
        self._name = name

    def filter(self, record: logging.LogRecord) -> bool:
        return record.name == self._name or record.name.startswith(self._prefix)


def setup_logging(
    log_file: str | Path | None, level: str = "INFO", name_filter: str | None = None
) -> None:
    """Routes every launcher log record to the console and, if given, a file.

    The log file is truncated on each start.
    """
    level = level.upper()
    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file is not None:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, mode="w", encoding="UTF-8"))

    formatter = logging.Formatter(LOG_FORMAT)
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        if name_filter:
            handler.addFilter(LogFilter(name_filter))
        root.addHandler(handler)
