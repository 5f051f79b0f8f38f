"""Custom log formatters for the metadata provisioner.

This module provides specialized formatters for logging, including secret redaction.
"""

import logging
import re
from typing import List, Tuple


class SecretRedactingFormatter(logging.Formatter):
    """Formatter that masks credentials in log messages.

    Connection documents carry backchannel basic auth passwords and SOAP
    requests are logged at DEBUG level, so both end up in log files unless
    masked.

    Attributes:
        redact_secrets: Whether to enable redaction
        patterns: List of (regex_pattern, replacement_text) tuples for redaction

    Example:
        >>> formatter = SecretRedactingFormatter(
        ...     fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        ...     redact_secrets=True
        ... )
        >>> handler = logging.StreamHandler()
        >>> handler.setFormatter(formatter)
    """

    def __init__(
        self,
        fmt: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt: str | None = None,
        redact_secrets: bool = True,
    ) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self.redact_secrets = redact_secrets

        self.patterns: List[Tuple[re.Pattern[str], str]] = [
            # XML attribute, raw or entity-escaped: password="..." / password=&quot;...&quot;
            (re.compile(r'(password=)(&quot;|")(.*?)\2'), r'\1\2[REDACTED]\2'),
            # HTTP basic auth header
            (re.compile(r'(Authorization:\s*Basic\s+)\S+', re.IGNORECASE), r'\1[REDACTED]'),
            # key=value style
            (re.compile(r'(password\s*[=:]\s*)(?!["&\[])\S+', re.IGNORECASE), r'\1[REDACTED]'),
        ]

    def format(self, record: logging.LogRecord) -> str:
        original = super().format(record)

        if self.redact_secrets:
            for pattern, replacement in self.patterns:
                original = pattern.sub(replacement, original)

        return original
