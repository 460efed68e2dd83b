"""Logging configuration shared by the CLI and the API."""

import logging
import re
from typing import Optional

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

REDACTED = "***"

SECRET_PATTERNS = [
    re.compile(r"(?i)\b(bearer\s+)[A-Za-z0-9\-._~+/]+=*"),
    re.compile(r"(?i)\b((?:api[_-]?key|token|secret|password|passwd|authorization)[\"']?\s*[:=]\s*[\"']?)[^\s\"',;]+"),
    re.compile(r"\b(sk-)[A-Za-z0-9]{16,}"),
]


def redact(text: str) -> str:
    """Mask credential-like substrings."""
    for pattern in SECRET_PATTERNS:
        text = pattern.sub(lambda m: m.group(1) + REDACTED, text)
    return text


class RedactingFilter(logging.Filter):
    """Masks credentials in log records before any handler emits them."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        cleaned = redact(message)
        if cleaned != message:
            record.msg = cleaned
            record.args = None
        return True


def setup_logging(verbose: bool = False, log_file: Optional[str] = None) -> None:
    """Configure root logging with credential redaction."""
    level = logging.DEBUG if verbose else logging.INFO
    handlers = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    redacting = RedactingFilter()
    for handler in handlers:
        handler.addFilter(redacting)

    logging.basicConfig(level=level, format=DEFAULT_FORMAT, handlers=handlers, force=True)
