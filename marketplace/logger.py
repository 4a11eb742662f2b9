import logging
import json
import os
from pathlib import Path
import threading


ROOT_LOGGER_NAME = "marketplace"


class SingletonLogger:
    """
    Configures the ``marketplace`` logger hierarchy exactly once per process.

    Every module asks for a dotted child logger (``marketplace.routes.cart``,
    ``marketplace.inventory`` ...); the handlers live on the root of the
    hierarchy so children only need to propagate.
    """
    _instance = None
    _lock = threading.Lock()
    _root = None

    def __new__(cls):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super(SingletonLogger, cls).__new__(cls)
        return cls._instance

    def get_logger(self, name: str = ROOT_LOGGER_NAME) -> logging.Logger:
        """
        Get a logger inside the configured hierarchy.

        Args:
            name (str): Dotted logger name. Names outside the ``marketplace``
                namespace are nested under it.

        Returns:
            logging.Logger: Logger that propagates to the configured root
        """
        if self._root is None:
            with self._lock:
                if self._root is None:
                    self._root = self._create_root_logger()

        if name == ROOT_LOGGER_NAME:
            return self._root
        if not name.startswith(ROOT_LOGGER_NAME + "."):
            name = f"{ROOT_LOGGER_NAME}.{name}"
        return logging.getLogger(name)

    def _create_root_logger(self) -> logging.Logger:
        logger = logging.getLogger(ROOT_LOGGER_NAME)
        level = os.environ.get('LOG_LEVEL', 'DEBUG').upper()
        logger.setLevel(getattr(logging, level, logging.DEBUG))
        logger.propagate = False
        logger.handlers.clear()

        formatter = JsonFormatter({
            "timestamp": "asctime",
            "level": "levelname",
            "logger": "name",
            "module": "module",
            "function": "funcName",
            "line": "lineno",
            "message": "message"
        })

        if os.environ.get('LOG_TO_FILE', 'True').lower() in ('true', '1', 'yes', 'on'):
            logs_dir = Path(os.environ.get('LOG_DIR', 'logs'))
            logs_dir.mkdir(parents=True, exist_ok=True)

            # Fixed filenames, truncated on each run
            file_handler = logging.FileHandler(logs_dir / "marketplace.log", mode='w', encoding='utf-8')
            file_handler.setLevel(logging.INFO)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

            error_file_handler = logging.FileHandler(logs_dir / "errors.log", mode='w', encoding='utf-8')
            error_file_handler.setLevel(logging.ERROR)
            error_file_handler.setFormatter(formatter)
            logger.addHandler(error_file_handler)

        console_handler = logging.StreamHandler()
        console_handler.setLevel(logging.DEBUG)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

        return logger


class JsonFormatter(logging.Formatter):
    """
    Formatter that emits one JSON object per record.

    @param dict fmt_dict: Key: logging format attribute pairs. Defaults to {"message": "message"}.
    @param str time_format: time.strftime() format string. Default: "%Y-%m-%dT%H:%M:%S"
    @param str msec_format: Microsecond formatting. Appended at the end. Default: "%s.%03dZ"
    """
    def __init__(self, fmt_dict: dict = None, time_format: str = "%Y-%m-%dT%H:%M:%S", msec_format: str = "%s.%03dZ"):
        super().__init__()
        self.fmt_dict = fmt_dict if fmt_dict is not None else {"message": "message"}
        self.default_time_format = time_format
        self.default_msec_format = msec_format
        self.datefmt = None

    def usesTime(self) -> bool:
        return "asctime" in self.fmt_dict.values()

    def formatMessage(self, record) -> dict:
        """Return the selected LogRecord attributes as a dict. Unknown attributes raise KeyError."""
        return {fmt_key: record.__dict__[fmt_val] for fmt_key, fmt_val in self.fmt_dict.items()}

    def format(self, record) -> str:
        record.message = record.getMessage()

        if self.usesTime():
            record.asctime = self.formatTime(record, self.datefmt)

        message_dict = self.formatMessage(record)

        if record.exc_info:
            if not record.exc_text:
                record.exc_text = self.formatException(record.exc_info)

        if record.exc_text:
            message_dict["exc_info"] = record.exc_text

        if record.stack_info:
            message_dict["stack_info"] = self.formatStack(record.stack_info)

        return json.dumps(message_dict, default=str)


def get_logger(name: str = ROOT_LOGGER_NAME) -> logging.Logger:
    """
    Get a logger from the singleton-configured ``marketplace`` hierarchy.

    Args:
        name (str): Dotted logger name, e.g. ``marketplace.routes.cart``

    Returns:
        logging.Logger
    """
    return SingletonLogger().get_logger(name)
