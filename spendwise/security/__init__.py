"""
Security: structured logging with redaction, field encryption, API key
tokens, rate limiting and request authentication.

Import from the submodules directly.
"""
