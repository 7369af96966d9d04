"""
Structured logging with credential redaction.

All modules log through structlog with keyword context. A stdlib filter
scrubs API tokens, bearer headers and encrypted field payloads from every
record before it reaches a handler.
"""

import logging
import os
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import structlog


@dataclass
class RedactionPattern:
    """Redaction pattern definition"""

    name: str
    pattern: str
    replacement: str


class CredentialRedactor:
    """Masks credentials and ciphertext in free text"""

    def __init__(self):
        self.patterns = self._initialize_patterns()
        self._compiled = {
            p.name: re.compile(p.pattern, re.IGNORECASE | re.MULTILINE)
            for p in self.patterns
        }

    def _initialize_patterns(self) -> List[RedactionPattern]:
        return [
            RedactionPattern(
                name="SPENDWISE_API_KEY",
                pattern=r"\bexp_[a-z0-9_-]{8}_[A-Za-z0-9_-]+",
                replacement="{{API_KEY}}",
            ),
            RedactionPattern(
                name="BEARER_TOKEN",
                pattern=r"\bbearer\s+[A-Za-z0-9._~+/=-]{12,}",
                replacement="Bearer {{TOKEN}}",
            ),
            RedactionPattern(
                name="API_KEY_HEADER",
                pattern=r'\bx-api-key["\']?\s*[:=]\s*["\']?[^\s"\',}]+',
                replacement="x-api-key: {{API_KEY}}",
            ),
            RedactionPattern(
                name="BCRYPT_HASH",
                pattern=r"\$2[aby]\$\d{2}\$[./A-Za-z0-9]{53}",
                replacement="{{HASH}}",
            ),
            RedactionPattern(
                name="ENCRYPTED_PAYLOAD",
                pattern=r'["\']cipher["\']\s*:\s*["\'][A-Za-z0-9+/=]+["\']',
                replacement='"cipher": "{{REDACTED}}"',
            ),
        ]

    def mask(self, text: str) -> str:
        if not text:
            return text
        masked = text
        for pattern in self.patterns:
            masked = self._compiled[pattern.name].sub(pattern.replacement, masked)
        return masked

    @staticmethod
    def is_sensitive_field(field_name: str) -> bool:
        """Check if a field name indicates credential material"""
        sensitive = {
            "secret",
            "token",
            "api_key",
            "hashed_secret",
            "password",
            "session",
            "cookie",
            "encryption_key",
            "amount_encrypted",
            "description_encrypted",
        }
        field_lower = field_name.lower()
        return any(s in field_lower for s in sensitive)


class SecureLoggingFilter(logging.Filter):
    """Logging filter that redacts credentials from log records"""

    def __init__(self, redactor: Optional[CredentialRedactor] = None):
        super().__init__()
        self.redactor = redactor or CredentialRedactor()

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = self.redactor.mask(record.msg)
        elif isinstance(record.msg, dict):
            record.msg = self.clean_dict(record.msg)

        if record.args:
            if isinstance(record.args, dict):
                record.args = self.clean_dict(record.args)
            else:
                record.args = tuple(
                    self.redactor.mask(arg) if isinstance(arg, str) else arg
                    for arg in record.args
                )
        return True

    def clean_dict(self, data: Dict[str, Any]) -> Dict[str, Any]:
        cleaned = {}
        for key, value in data.items():
            if self.redactor.is_sensitive_field(str(key)):
                cleaned[key] = "{{REDACTED}}"
            elif isinstance(value, str):
                cleaned[key] = self.redactor.mask(value)
            elif isinstance(value, dict):
                cleaned[key] = self.clean_dict(value)
            else:
                cleaned[key] = value
        return cleaned


def _redact_event_dict(_, __, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """structlog processor applying the same redaction to bound context"""
    return SecureLoggingFilter(_redactor).clean_dict(event_dict)


_redactor = CredentialRedactor()


class StructuredLogger:
    """Structured logging setup with credential redaction"""

    def __init__(self, service_name: str = "spendwise"):
        self.service_name = service_name
        self.environment = os.getenv("ENVIRONMENT", "development")
        self._setup_logging()

    def _setup_logging(self):
        structlog.configure(
            processors=[
                structlog.stdlib.filter_by_level,
                structlog.stdlib.add_logger_name,
                structlog.stdlib.add_log_level,
                structlog.stdlib.PositionalArgumentsFormatter(),
                structlog.processors.TimeStamper(fmt="iso"),
                _redact_event_dict,
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.processors.UnicodeDecoder(),
                structlog.processors.JSONRenderer(),
            ],
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )

        level = os.getenv("LOG_LEVEL")
        if not level:
            level = "INFO" if self.environment == "production" else "DEBUG"
        logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format="%(message)s")

        secure_filter = SecureLoggingFilter(_redactor)
        for handler in logging.root.handlers:
            handler.addFilter(secure_filter)

    def get_logger(self, name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
        return structlog.get_logger(name or self.service_name)


_structured_logger: Optional[StructuredLogger] = None


def get_structured_logger() -> StructuredLogger:
    """Get global structured logger instance"""
    global _structured_logger
    if _structured_logger is None:
        _structured_logger = StructuredLogger()
    return _structured_logger


def mask_sensitive_data(text: str) -> str:
    """Convenience function to mask credentials in text"""
    return _redactor.mask(text)
