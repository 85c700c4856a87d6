# SPDX-FileCopyrightText: 2024 Swiss Confederation
#
# SPDX-License-Identifier: MIT

"""
Splunk compatible log output.

Every record is rendered as a single JSON line. Structured log entries
(`SplunkExtendedLogEntry`) contribute their fields as top level keys, so they
can be searched without parsing the message.
"""

import datetime
import json
import logging
from enum import Enum
from uuid import UUID

from pydantic import BaseModel


def _plain(value: object) -> object:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, UUID):
        return str(value)
    return value


class SplunkExtendedLogEntry(BaseModel):
    """Structured log entry. Pass an instance as the message to any logger call."""

    message: str

    def extra_fields(self) -> dict[str, object]:
        """All set fields except the message, with enums flattened to their value."""
        return {key: _plain(value) for key, value in iter(self) if key != "message" and value is not None}

    def __str__(self) -> str:
        details = " ".join(f"{key}={value}" for key, value in self.extra_fields().items())
        return f"{self.message} {details}" if details else self.message


class SplunkFormatter(logging.Formatter):
    """Formats records as JSON objects understood by the Splunk ingestion."""

    def __init__(self, defaults: dict[str, str] | None = None) -> None:
        super().__init__()
        self._defaults = defaults or {}

    def format(self, record: logging.LogRecord) -> str:
        data: dict[str, object] = {
            "@timestamp": datetime.datetime.fromtimestamp(record.created).astimezone().isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "message": record.getMessage(),
            "hash": getattr(record, "correlation_id", None) or self._defaults.get("correlation_id"),
            "app": self._defaults.get("app_name"),
            "logger": record.name,
        }
        if isinstance(record.msg, SplunkExtendedLogEntry):
            data.update(record.msg.extra_fields())
        if record.exc_info:
            data["exception"] = self.formatException(record.exc_info)
        return json.dumps(data, default=str)
