import logging
import sys
from logging import config as logging_config

LOG_FORMAT = "%(asctime)s %(levelname)-5s [%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# ANSI SGR codes per level
LEVEL_COLORS = {
    logging.DEBUG: "36",
    logging.INFO: "32",
    logging.WARNING: "33",
    logging.ERROR: "31",
    logging.CRITICAL: "41",
}

# Third-party loggers that are too chatty at INFO
NOISY_LOGGERS = ("botocore", "boto3", "aiobotocore", "s3transfer", "urllib3", "stripe")


class ColoredFormatter(logging.Formatter):
    """Formatter that wraps the level name in its ANSI color."""

    def formatMessage(self, record: logging.LogRecord) -> str:
        color = LEVEL_COLORS.get(record.levelno)
        if color is None:
            return super().formatMessage(record)
        # Color a copy so other handlers of the same record see the plain level name
        colored = logging.makeLogRecord(record.__dict__)
        colored.levelname = f"\x1b[{color}m{record.levelname}\x1b[0m"
        return super().formatMessage(colored)


def configure_logging(level: str = "INFO", colored: bool | None = None) -> None:
    """Send every log record, uvicorn's included, to stdout through one handler.

    Colors are used when ``colored`` is true, or when it is None and stdout is a terminal.
    """
    if colored is None:
        colored = sys.stdout.isatty()

    formatter: dict = {"format": LOG_FORMAT, "datefmt": DATE_FORMAT}
    if colored:
        # A "()" factory receives its keys as keyword arguments
        formatter = {"()": ColoredFormatter, "fmt": LOG_FORMAT, "datefmt": DATE_FORMAT}

    # uvicorn installs its own handlers, they are dropped so its records reach the root handler
    uvicorn_logger = {"handlers": [], "level": level, "propagate": True}
    logging_config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"default": formatter},
            "handlers": {"stdout": {"class": "logging.StreamHandler", "formatter": "default", "stream": "ext://sys.stdout"}},
            "loggers": {
                "uvicorn": uvicorn_logger,
                "uvicorn.error": uvicorn_logger,
                "uvicorn.access": uvicorn_logger,
                **{name: {"level": "WARNING"} for name in NOISY_LOGGERS},
            },
            "root": {"handlers": ["stdout"], "level": level},
        }
    )


__all__ = ["ColoredFormatter", "configure_logging"]
