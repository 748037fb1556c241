"""Logging filters that keep credentials and contact details out of logs."""

from __future__ import annotations

import logging
import re

_SENSITIVE_PATTERN = re.compile(
    r"(Authorization: Bearer\s+[\w\.-]+"
    r"|access_token\"\s*:\s*\"[^\"]+\""
    r"|(?:password|password_confirmation|payment_instrument)\"\s*:\s*\"[^\"]+\")",
    re.IGNORECASE,
)
_MARKER = "**REDACTED**"


def redact(text: str) -> str:
    return _SENSITIVE_PATTERN.sub(_MARKER, text)


class SensitiveFilter(logging.Filter):
    """Replace sensitive tokens in log messages with a redaction marker."""

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = redact(record.msg)
        if record.args and isinstance(record.args, tuple):
            record.args = tuple(
                redact(arg) if isinstance(arg, str) else arg for arg in record.args
            )
        return True


__all__ = ["SensitiveFilter", "redact"]
