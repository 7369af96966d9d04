"""
Unit tests for field level encryption
"""

import base64
import json

import pytest

from spendwise.security.encryption import (
    EncryptionKeyError,
    FieldEncryption,
    generate_encryption_key,
    parse_encrypted,
    serialize_encrypted,
)


@pytest.fixture
def encryption():
    return FieldEncryption(generate_encryption_key(), environment="testing")


class TestFieldEncryption:
    """Test sealing and opening field payloads"""

    def test_payload_shape(self, encryption):
        payload = encryption.encrypt_string("Rent")

        assert set(payload) == {"iv", "tag", "cipher", "type"}
        assert payload["type"] == "string"
        assert len(base64.b64decode(payload["iv"])) == 12
        assert len(base64.b64decode(payload["tag"])) == 16
        assert "Rent" not in json.dumps(payload)

    def test_fresh_iv_per_call(self, encryption):
        first = encryption.encrypt_number(12.5)
        second = encryption.encrypt_number(12.5)

        assert first["iv"] != second["iv"]
        assert encryption.decrypt_number(first) == encryption.decrypt_number(second) == 12.5

    def test_tampered_cipher_uses_fallback(self, encryption):
        payload = encryption.encrypt_string("Rent")
        raw = bytearray(base64.b64decode(payload["cipher"]))
        raw[0] ^= 0xFF
        payload["cipher"] = base64.b64encode(bytes(raw)).decode("ascii")

        assert encryption.decrypt_string(payload, fallback="?") == "?"

    def test_other_key_cannot_decrypt(self, encryption):
        other = FieldEncryption(generate_encryption_key(), environment="testing")

        assert other.decrypt_number(encryption.encrypt_number(9), fallback=-1) == -1

    def test_serialized_payload_accepted(self, encryption):
        stored = serialize_encrypted(encryption.encrypt_string("Salary"))

        assert isinstance(stored, str)
        assert encryption.decrypt_string(stored) == "Salary"

    @pytest.mark.parametrize("value", [None, "", "not json", {"iv": "x"}, 42])
    def test_unparseable_payloads(self, encryption, value):
        assert parse_encrypted(value) is None
        assert encryption.decrypt_number(value, fallback=0) == 0


class TestEncryptionKey:
    """Test key handling"""

    def test_key_required_in_production(self):
        with pytest.raises(EncryptionKeyError):
            FieldEncryption(None, environment="production")

    def test_generated_key_outside_production(self):
        encryption = FieldEncryption(None, environment="development")

        assert encryption.decrypt_string(encryption.encrypt_string("ok")) == "ok"

    @pytest.mark.parametrize(
        "key",
        ["not base64!!", base64.b64encode(b"short").decode("ascii")],
    )
    def test_invalid_keys(self, key):
        with pytest.raises(EncryptionKeyError):
            FieldEncryption(key, environment="testing")
