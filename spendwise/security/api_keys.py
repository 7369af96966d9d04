"""
API key token generation, parsing and secret hashing.

Token layout: ``exp_`` + 8 character lookup prefix + ``_`` + secret.
Only the prefix is ever used to find a key; the secret is checked
against its bcrypt hash.
"""

import secrets
import string
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional

import bcrypt

BCRYPT_ROUNDS = 12
TOKEN_PREFIX = "exp_"
API_KEY_PREFIX_LENGTH = 8
API_KEY_SECRET_LENGTH = 32
SEPARATOR = "_"

_PREFIX_ALPHABET = string.ascii_lowercase + string.digits
_SECRET_ALPHABET = string.ascii_letters + string.digits


class ApiScope(str, Enum):
    """Permissions that can be granted to an API key"""

    EXPENSES_READ = "expenses_read"
    EXPENSES_WRITE = "expenses_write"
    ANALYTICS_READ = "analytics_read"
    INCOME_WRITE = "income_write"
    BUDGET_READ = "budget_read"

    @classmethod
    def all(cls) -> List["ApiScope"]:
        return list(cls)


@dataclass(frozen=True)
class GeneratedApiKey:
    """A freshly minted key. ``token`` is shown to the user exactly once."""

    token: str
    prefix: str
    secret: str
    hashed_secret: str


@dataclass(frozen=True)
class ParsedApiKey:
    prefix: str
    secret: str


def _random_string(alphabet: str, length: int) -> str:
    return "".join(secrets.choice(alphabet) for _ in range(length))


def hash_api_key_secret(secret: str, rounds: int = BCRYPT_ROUNDS) -> str:
    """Hash a key secret with bcrypt"""
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(secret.encode("utf-8"), salt).decode("utf-8")


def verify_api_key_secret(secret: str, hashed_secret: str) -> bool:
    """Compare a presented secret with the stored hash using bcrypt.checkpw"""
    if not secret or not hashed_secret:
        return False
    try:
        return bcrypt.checkpw(secret.encode("utf-8"), hashed_secret.encode("utf-8"))
    except ValueError:
        # malformed stored hash
        return False


def generate_api_key_token(rounds: int = BCRYPT_ROUNDS) -> GeneratedApiKey:
    prefix = _random_string(_PREFIX_ALPHABET, API_KEY_PREFIX_LENGTH)
    secret = _random_string(_SECRET_ALPHABET, API_KEY_SECRET_LENGTH)
    token = f"{TOKEN_PREFIX}{prefix}{SEPARATOR}{secret}"
    return GeneratedApiKey(
        token=token,
        prefix=prefix,
        secret=secret,
        hashed_secret=hash_api_key_secret(secret, rounds),
    )


def parse_api_key_token(token: Optional[str]) -> Optional[ParsedApiKey]:
    """
    Split a presented token into prefix and secret.

    Returns None for anything malformed; never raises.
    """
    if not isinstance(token, str) or not token.startswith(TOKEN_PREFIX):
        return None

    prefix_start = len(TOKEN_PREFIX)
    prefix_end = prefix_start + API_KEY_PREFIX_LENGTH
    if len(token) <= prefix_end:
        return None
    if token[prefix_end] != SEPARATOR:
        return None

    prefix = token[prefix_start:prefix_end]
    secret = token[prefix_end + 1 :]
    if not prefix or not secret:
        return None
    return ParsedApiKey(prefix=prefix, secret=secret)


def scopes_to_strings(scopes: Iterable[ApiScope]) -> List[str]:
    """Present scopes as ``expenses:read`` style strings"""
    return [ApiScope(scope).value.replace("_", ":") for scope in scopes]


def normalize_scopes(scopes: Iterable[str]) -> List[ApiScope]:
    """Accept either ``expenses:read`` or ``expenses_read``; drop unknown values"""
    known = {scope.value: scope for scope in ApiScope}
    normalized: List[ApiScope] = []
    for raw in scopes:
        if not isinstance(raw, str):
            continue
        scope = known.get(raw.strip().replace(":", "_"))
        if scope is not None and scope not in normalized:
            normalized.append(scope)
    return normalized
