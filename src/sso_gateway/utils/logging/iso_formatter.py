"""JSONL formatter shared by the audit trail and the system log file."""

from __future__ import annotations

__all__ = ["ISO8601Formatter", "TICKET_FIELDS"]

import json
import logging
from datetime import datetime, timezone
from typing import Any

from sso_gateway.utils.logging.logging_helpers import redact_ticket

# Keys whose string values are CAS tickets and must never be written whole
TICKET_FIELDS = frozenset({"ticket", "proxy_ticket", "pgt", "pgt_id", "pgt_iou"})


class ISO8601Formatter(logging.Formatter):
    """One JSON object per line: {"time": "...Z", "level": ..., **fields}.

    Dict messages are written as structured fields. Any string under a
    TICKET_FIELDS key is redacted, including values nested one level down
    in dicts (e.g. a "details" block).
    """

    def format(self, record: logging.LogRecord) -> str:
        timestamp = (
            datetime.fromtimestamp(record.created, tz=timezone.utc)
            .isoformat(timespec="milliseconds")
            .replace("+00:00", "Z")
        )

        if isinstance(record.msg, dict):
            fields = _redact_fields(record.msg)
        else:
            fields = {"message": record.getMessage()}

        return json.dumps({"time": timestamp, "level": record.levelname, **fields}, default=str)


def _redact_fields(fields: dict[str, Any], depth: int = 0) -> dict[str, Any]:
    redacted: dict[str, Any] = {}
    for key, value in fields.items():
        if key in TICKET_FIELDS and isinstance(value, str):
            redacted[key] = redact_ticket(value)
        elif isinstance(value, dict) and depth == 0:
            redacted[key] = _redact_fields(value, depth + 1)
        else:
            redacted[key] = value
    return redacted
