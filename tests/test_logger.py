import json
import logging
import uuid

from artydrop.logger import GalleryEvent, StructuredLogger, logger
from artydrop.logging_config import ColoredFormatter, configure_logging


def test_structured_logger_format(caplog):
    gallery_id = uuid.uuid4()
    with caplog.at_level(logging.INFO, logger="artydrop.events"):
        logger.log_event(GalleryEvent.GALLERY_PAID, gallery_id, source="webhook", extra={"photo_count": 60})

    [record] = caplog.records
    assert record.name == "artydrop.events"
    entry = json.loads(record.getMessage())
    assert entry["event"] == "gallery_paid"
    assert entry["gallery_id"] == str(gallery_id)
    assert entry["source"] == "webhook"
    # extra is merged at the top level
    assert entry["photo_count"] == 60
    assert "timestamp" in entry


def test_non_json_values_are_stringified(caplog):
    events = StructuredLogger("artydrop.test")
    with caplog.at_level(logging.INFO, logger="artydrop.test"):
        events.log_event("download_zip", "abc", archive=object())

    entry = json.loads(caplog.records[-1].getMessage())
    assert entry["archive"].startswith("<object object")


def test_colored_formatter_leaves_record_untouched():
    record = logging.LogRecord("artydrop", logging.WARNING, __file__, 1, "careful", None, None)
    output = ColoredFormatter("%(levelname)s %(message)s").format(record)

    assert output == "\x1b[33mWARNING\x1b[0m careful"
    assert record.levelname == "WARNING"


def test_configure_logging_without_colors():
    try:
        configure_logging(level="DEBUG", colored=False)

        [handler] = logging.getLogger().handlers
        assert type(handler.formatter) is logging.Formatter
        assert logging.getLogger().level == logging.DEBUG
        assert logging.getLogger("botocore").level == logging.WARNING
        assert logging.getLogger("uvicorn.access").handlers == []
        assert logging.getLogger("uvicorn.access").propagate is True
    finally:
        configure_logging(level="INFO", colored=False)


def test_configure_logging_with_colors():
    try:
        configure_logging(colored=True)

        [handler] = logging.getLogger().handlers
        assert isinstance(handler.formatter, ColoredFormatter)
    finally:
        configure_logging(level="INFO", colored=False)
