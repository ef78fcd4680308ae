from os import environ
from datetime import datetime, UTC
from logging import StreamHandler, Logger, NOTSET
from colorlog import ColoredFormatter

MASK = "***"


class SingletonMeta(type):
    _instance = {}

    def __call__(cls, *args, **kwargs):
        if cls not in cls._instance:
            instance = super().__call__(*args, **kwargs)
            cls._instance[cls] = instance
        return cls._instance[cls]


class SquirrelLogger(Logger, metaclass=SingletonMeta):
    _initialized = False

    def __init__(self):
        if SquirrelLogger._initialized:
            return

        super().__init__(name="SquirrelLogger", level=environ.get("LOG_LEVEL", NOTSET))

        local_formatter = ColoredFormatter(
            "%(log_color)s%(asctime)s | %(levelname)s | %(msg)s",
            datefmt="%d-%m-%Y, %H:%M:%S",
            log_colors={
                "DEBUG": "blue",
                "INFO": "",
                "WARNING": "yellow",
                "ERROR": "red",
                "CRITICAL": "bold_red",
            },
        )
        local_formatter.converter = self.utc_time

        console_handler = StreamHandler()
        console_handler.setFormatter(local_formatter)
        self.addHandler(console_handler)

        SquirrelLogger._initialized = True

    def utc_time(self, *args):
        return datetime.now(tz=UTC).timetuple()


def mask_value(value, secret: bool) -> str:
    """Render a setting value for a log line, hiding it when it is secret."""
    if secret:
        return MASK
    return str(value)


logger = SquirrelLogger()
