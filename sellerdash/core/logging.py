"""Logging setup with redaction of Amazon credential material.

LWA refresh tokens start with ``Atzr|``, access tokens with ``Atza|`` and
client secrets with ``amzn1.oa2-cs.v1.``. Anything matching those shapes is
replaced before a record is emitted, so neither full nor truncated secrets
reach the log stream.
"""

import logging
import re
from typing import Optional

REDACTED = "[REDACTED]"

_SECRET_PATTERNS = (
    re.compile(r"Atz[ar]\|[^\s\"',;&]+"),
    re.compile(r"amzn1\.oa2-cs\.v1\.[^\s\"',;&]+"),
)

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def redact(text: str, *secrets: Optional[str]) -> str:
    """Strip credential material from ``text``.

    Args:
        text: Text that may embed secrets (error messages, provider bodies)
        secrets: Literal values to remove in addition to the known patterns

    Returns:
        The text with every secret replaced by ``[REDACTED]``
    """
    for secret in secrets:
        if secret:
            text = text.replace(secret, REDACTED)
    for pattern in _SECRET_PATTERNS:
        text = pattern.sub(REDACTED, text)
    return text


class SecretRedactingFilter(logging.Filter):
    """Rewrite log records so credential material is never emitted."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        cleaned = redact(message)
        if cleaned != message:
            record.msg = cleaned
            record.args = None
        return True


def configure_logging(level: str = "INFO") -> None:
    """Install the application log handler on the root logger.

    Safe to call more than once; the handler is only added the first time.
    """
    root = logging.getLogger()
    root.setLevel(level.upper())

    for handler in root.handlers:
        if getattr(handler, "_sellerdash", False):
            return

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.addFilter(SecretRedactingFilter())
    handler._sellerdash = True  # type: ignore[attr-defined]
    root.addHandler(handler)
