"""Business events of the gallery workflow.

Each event is one line on the ``artydrop.events`` logger whose message is a JSON
object with ``event``, ``gallery_id``, ``timestamp`` and the event's own fields,
so it can be filtered out of the regular application log.
"""

import json
import logging
import uuid
from collections.abc import Mapping
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any


class GalleryEvent(StrEnum):
    GALLERY_CREATED = "gallery_created"
    CHECKOUT_SESSION_CREATED = "checkout_session_created"
    GALLERY_PAID = "gallery_paid"
    DOWNLOAD_ZIP = "download_zip"


class StructuredLogger:
    def __init__(self, name: str = "artydrop.events"):
        self._logger = logging.getLogger(name)

    def log_event(self, event: GalleryEvent | str, gallery_id: uuid.UUID | str, *, extra: Mapping[str, Any] | None = None, **fields: Any) -> None:
        """Emit one event. ``extra`` is merged at the top level, e.g. a batch summary."""
        payload: dict[str, Any] = {"event": str(event), "gallery_id": str(gallery_id), **fields, **(extra or {})}
        payload["timestamp"] = datetime.now(UTC).isoformat()
        self._logger.info(json.dumps(payload, default=str))


logger = StructuredLogger()

__all__ = ["GalleryEvent", "StructuredLogger", "logger"]
