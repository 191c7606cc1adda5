"""
Credential Cipher - symmetric encryption for credentials at rest.

Credential payloads are JSON-encoded and sealed with Fernet
(AES-128-CBC + HMAC-SHA256). The key comes from CREDENTIAL_ENCRYPTION_KEY,
generated once with ``Fernet.generate_key()``.
"""

import json
import os
from typing import Any, Dict, Optional

from cryptography.fernet import Fernet, InvalidToken

from flowmate.server.errors import ConfigurationError


class CredentialCipher:
    """Encrypts and decrypts credential payloads."""

    def __init__(self, key: Optional[str] = None):
        self._key = key

    @classmethod
    def from_env(cls) -> "CredentialCipher":
        return cls(os.environ.get("CREDENTIAL_ENCRYPTION_KEY"))

    def _fernet(self) -> Fernet:
        if not self._key:
            raise ConfigurationError(
                "CREDENTIAL_ENCRYPTION_KEY is not set - credentials cannot be stored or read. "
                "Generate one with: python -c 'from cryptography.fernet import Fernet; "
                "print(Fernet.generate_key().decode())'"
            )
        try:
            return Fernet(self._key)
        except ValueError as e:
            raise ConfigurationError(f"CREDENTIAL_ENCRYPTION_KEY is not a valid Fernet key: {e}")

    def encrypt(self, payload: Dict[str, Any]) -> str:
        token = self._fernet().encrypt(json.dumps(payload).encode("utf-8"))
        return token.decode("ascii")

    def decrypt(self, token: str) -> Dict[str, Any]:
        try:
            raw = self._fernet().decrypt(token.encode("ascii"))
        except InvalidToken:
            raise ConfigurationError(
                "Stored credential could not be decrypted - was CREDENTIAL_ENCRYPTION_KEY rotated?"
            )
        return json.loads(raw.decode("utf-8"))
