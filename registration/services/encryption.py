"""
Application-layer encryption for submitted registrations.

- Symmetric encryption (Fernet) of the serialized submission
- Key from env, never hardcoded
- Submission identifiers
"""

import json
import secrets
import time
from typing import Any

from cryptography.fernet import Fernet

from registration.config import settings


class EncryptionService:
    """Wraps Fernet symmetric encryption for PHI."""

    def __init__(self, key: str | None = None):
        raw_key = key or settings.PHI_ENCRYPTION_KEY
        if raw_key:
            self._fernet = Fernet(raw_key.encode() if isinstance(raw_key, str) else raw_key)
        else:
            # Development only: ciphertext is unreadable once the process exits.
            self._fernet = Fernet(Fernet.generate_key())

    def encrypt(self, plaintext: str) -> str:
        """Encrypt a string and return base64-encoded ciphertext."""
        if not plaintext:
            return ""
        return self._fernet.encrypt(plaintext.encode()).decode()

    def decrypt(self, ciphertext: str) -> str:
        """Decrypt base64-encoded ciphertext back to plaintext."""
        if not ciphertext:
            return ""
        return self._fernet.decrypt(ciphertext.encode()).decode()

    def seal(self, record: dict[str, Any]) -> str:
        """Serialize a submission to JSON and encrypt it."""
        return self.encrypt(json.dumps(record, sort_keys=True, default=str))

    def unseal(self, token: str) -> dict[str, Any]:
        return json.loads(self.decrypt(token))


def generate_submission_id() -> str:
    """SUB_<epoch millis>_<32 hex chars>."""
    return f"SUB_{int(time.time() * 1000)}_{secrets.token_hex(16)}"
