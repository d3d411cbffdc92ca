"""
Per-professor API key encryption.

Keys are encrypted with Fernet (AES-128-CBC + HMAC-SHA256). The Fernet key is
derived with PBKDF2-HMAC-SHA256 from the professor's lowercased email and the
application secret, using a random salt stored in front of the token:

    <urlsafe-b64 salt>.<fernet token>
"""
import base64
import logging
import os
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from course_inbox.core.config import get_settings

logger = logging.getLogger(__name__)

SALT_LENGTH = 16
KDF_ITERATIONS = 100_000
TOKEN_SEPARATOR = "."


def _resolve_secret(secret: Optional[str]) -> str:
    secret = secret or get_settings().encryption_secret
    if not secret:
        raise ValueError(
            "ENCRYPTION_SECRET not set. "
            "Generate one with: python -c 'import secrets; print(secrets.token_urlsafe(32))'"
        )
    return secret


def _derive_cipher(professor_email: str, secret: str, salt: bytes) -> Fernet:
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=salt,
        iterations=KDF_ITERATIONS,
    )
    key = kdf.derive(f"{professor_email.lower()}{secret}".encode("utf-8"))
    return Fernet(base64.urlsafe_b64encode(key))


def encrypt_api_key(api_key: str, professor_email: str, secret: Optional[str] = None) -> str:
    """
    Encrypt an API key for one professor.

    Raises:
        ValueError: No encryption secret configured
    """
    salt = os.urandom(SALT_LENGTH)
    cipher = _derive_cipher(professor_email, _resolve_secret(secret), salt)
    token = cipher.encrypt(api_key.encode("utf-8")).decode("utf-8")
    return f"{base64.urlsafe_b64encode(salt).decode('utf-8')}{TOKEN_SEPARATOR}{token}"


def decrypt_api_key(encrypted: str, professor_email: str, secret: Optional[str] = None) -> str:
    """
    Decrypt a key produced by ``encrypt_api_key``.

    Raises:
        ValueError: Malformed token, wrong email/secret, or no secret configured
    """
    secret = _resolve_secret(secret)
    try:
        salt_part, token = encrypted.split(TOKEN_SEPARATOR, 1)
        salt = base64.urlsafe_b64decode(salt_part.encode("utf-8"))
        cipher = _derive_cipher(professor_email, secret, salt)
        return cipher.decrypt(token.encode("utf-8")).decode("utf-8")
    except (ValueError, InvalidToken) as e:
        raise ValueError(f"Failed to decrypt API key: {str(e) or 'invalid token'}") from e
