"""
Field-level encryption for ledger amounts and descriptions.

Values are sealed with AES-256-GCM and stored as a small JSON-friendly
payload. The rest of the application treats these payloads as opaque.
"""

import base64
import binascii
import json
import os
import secrets
from typing import Any, Dict, Optional, Union

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .secure_logging import get_structured_logger

logger = get_structured_logger().get_logger(__name__)

IV_LENGTH = 12
AUTH_TAG_LENGTH = 16
KEY_LENGTH = 32

EncryptedPayload = Dict[str, str]


class EncryptionKeyError(ValueError):
    """Raised when the configured encryption key is unusable."""


def generate_encryption_key() -> str:
    """Generate a base64 key suitable for ENCRYPTION_KEY."""
    return base64.b64encode(secrets.token_bytes(KEY_LENGTH)).decode("ascii")


class FieldEncryption:
    """AES-256-GCM encryption of individual string and numeric fields"""

    def __init__(self, key: Optional[str] = None, environment: Optional[str] = None):
        environment = environment or os.getenv("ENVIRONMENT", "development")
        if not key:
            if environment == "production":
                raise EncryptionKeyError(
                    "ENCRYPTION_KEY is required in production. "
                    "Generate one with: python -c \"import base64, secrets; "
                    "print(base64.b64encode(secrets.token_bytes(32)).decode())\""
                )
            key = generate_encryption_key()
            logger.warning(
                "Using generated encryption key for development",
                environment=environment,
                action="key_generation",
                recommendation="Set ENCRYPTION_KEY outside development",
            )
        self._aesgcm = AESGCM(self._decode_key(key))

    @staticmethod
    def _decode_key(key: str) -> bytes:
        try:
            decoded = base64.b64decode(key, validate=True)
        except (binascii.Error, ValueError) as e:
            raise EncryptionKeyError("ENCRYPTION_KEY must be base64 encoded") from e
        if len(decoded) != KEY_LENGTH:
            raise EncryptionKeyError("ENCRYPTION_KEY must decode to 32 bytes")
        return decoded

    def _encrypt(self, value: str, value_type: str) -> EncryptedPayload:
        iv = os.urandom(IV_LENGTH)
        sealed = self._aesgcm.encrypt(iv, value.encode("utf-8"), None)
        # cryptography appends the tag to the ciphertext
        cipher, tag = sealed[:-AUTH_TAG_LENGTH], sealed[-AUTH_TAG_LENGTH:]
        return {
            "iv": base64.b64encode(iv).decode("ascii"),
            "tag": base64.b64encode(tag).decode("ascii"),
            "cipher": base64.b64encode(cipher).decode("ascii"),
            "type": value_type,
        }

    def _decrypt(self, payload: EncryptedPayload) -> str:
        iv = base64.b64decode(payload["iv"])
        tag = base64.b64decode(payload["tag"])
        cipher = base64.b64decode(payload["cipher"])
        return self._aesgcm.decrypt(iv, cipher + tag, None).decode("utf-8")

    def encrypt_string(self, value: str) -> EncryptedPayload:
        return self._encrypt(value, "string")

    def encrypt_number(self, value: Union[int, float]) -> EncryptedPayload:
        return self._encrypt(repr(float(value)), "number")

    def decrypt_string(self, payload: Any, fallback: str = "") -> str:
        parsed = parse_encrypted(payload)
        if parsed is None:
            return fallback
        try:
            return self._decrypt(parsed) or fallback
        except (InvalidTag, binascii.Error, ValueError, UnicodeDecodeError):
            logger.warning("Field decryption failed", operation="decrypt_string")
            return fallback

    def decrypt_number(self, payload: Any, fallback: float = 0) -> float:
        parsed = parse_encrypted(payload)
        if parsed is None:
            return fallback
        try:
            result = float(self._decrypt(parsed))
        except (InvalidTag, binascii.Error, ValueError, UnicodeDecodeError):
            logger.warning("Field decryption failed", operation="decrypt_number")
            return fallback
        if result != result or result in (float("inf"), float("-inf")):
            return fallback
        return result


def serialize_encrypted(payload: Optional[EncryptedPayload]) -> Optional[str]:
    """Serialize a payload for storage in a TEXT column."""
    if payload is None:
        return None
    return json.dumps(payload, sort_keys=True)


def parse_encrypted(payload: Any) -> Optional[EncryptedPayload]:
    """Return the payload as a dict if it looks like one, else None."""
    if isinstance(payload, str):
        try:
            payload = json.loads(payload)
        except ValueError:
            return None
    if not isinstance(payload, dict):
        return None
    if not payload.get("iv") or not payload.get("tag") or not payload.get("cipher"):
        return None
    return payload
