"""
Unit tests for API key tokens and secret hashing
"""

import re

import pytest

from spendwise.security.api_keys import (
    ApiScope,
    generate_api_key_token,
    hash_api_key_secret,
    normalize_scopes,
    parse_api_key_token,
    scopes_to_strings,
    verify_api_key_secret,
)

TOKEN_PATTERN = re.compile(r"^exp_[a-z0-9]{8}_[A-Za-z0-9]{32}$")


class TestTokenGeneration:
    """Test minting new tokens"""

    def test_token_layout(self):
        generated = generate_api_key_token(rounds=4)

        assert TOKEN_PATTERN.match(generated.token)
        assert generated.token == f"exp_{generated.prefix}_{generated.secret}"
        assert generated.hashed_secret != generated.secret

    def test_generated_token_parses_and_verifies(self):
        """Test a fresh token round-trips through parse and verify"""
        generated = generate_api_key_token(rounds=4)

        parsed = parse_api_key_token(generated.token)

        assert parsed.prefix == generated.prefix
        assert parsed.secret == generated.secret
        assert verify_api_key_secret(parsed.secret, generated.hashed_secret)

    def test_tokens_are_unique(self):
        tokens = {generate_api_key_token(rounds=4).token for _ in range(5)}
        assert len(tokens) == 5


class TestTokenParsing:
    """Test that malformed tokens never raise"""

    @pytest.mark.parametrize(
        "token",
        [
            None,
            "",
            42,
            "abc_12345678_secret",  # wrong literal prefix
            "exp_1234567",  # truncated prefix
            "exp_12345678",  # no separator or secret
            "exp_12345678_",  # empty secret
            "exp_12345678xsecret",  # wrong separator
            "EXP_12345678_secret",
        ],
    )
    def test_malformed_tokens_return_none(self, token):
        assert parse_api_key_token(token) is None

    def test_secret_may_contain_separator(self):
        parsed = parse_api_key_token("exp_abcd1234_sec_ret")
        assert parsed.prefix == "abcd1234"
        assert parsed.secret == "sec_ret"


class TestSecretVerification:
    """Test bcrypt hashing of key secrets"""

    def test_wrong_secret_is_rejected(self):
        hashed = hash_api_key_secret("correct-secret", rounds=4)
        assert verify_api_key_secret("correct-secret", hashed)
        assert not verify_api_key_secret("wrong-secret", hashed)

    def test_hash_uses_requested_work_factor(self):
        assert hash_api_key_secret("s", rounds=5).startswith("$2b$05$")

    @pytest.mark.parametrize("hashed", ["", "not-a-bcrypt-hash"])
    def test_malformed_hash_is_rejected(self, hashed):
        assert not verify_api_key_secret("secret", hashed)

    def test_empty_secret_is_rejected(self):
        hashed = hash_api_key_secret("secret", rounds=4)
        assert not verify_api_key_secret("", hashed)


class TestScopes:
    """Test scope normalization and presentation"""

    def test_normalize_accepts_both_spellings(self):
        scopes = normalize_scopes(["expenses:read", "income_write", "expenses_read", "bogus"])
        assert scopes == [ApiScope.EXPENSES_READ, ApiScope.INCOME_WRITE]

    def test_normalize_drops_non_strings(self):
        assert normalize_scopes([None, 3, " budget:read "]) == [ApiScope.BUDGET_READ]

    def test_scopes_to_strings(self):
        assert scopes_to_strings([ApiScope.EXPENSES_WRITE, ApiScope.ANALYTICS_READ]) == [
            "expenses:write",
            "analytics:read",
        ]

    def test_all_scopes(self):
        assert {scope.value for scope in ApiScope.all()} == {
            "expenses_read",
            "expenses_write",
            "analytics_read",
            "income_write",
            "budget_read",
        }
