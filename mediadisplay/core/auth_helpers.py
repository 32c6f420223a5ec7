"""Encryption helpers for access tokens stored at rest."""

import base64
import os
import platform
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from mediadisplay.utils.config import KEY_FILE, SECRET_KEY
from mediadisplay.utils.logging import get_logger

logger = get_logger(__name__)

_fernet: Optional[Fernet] = None


def _get_encryption_key() -> bytes:
    """
    Get or create the encryption key for token storage.

    ``MEDIADISPLAY_SECRET_KEY`` wins when set. Otherwise a machine-specific
    key is derived once and stored in KEY_FILE for persistence.

    Returns:
        Encryption key bytes
    """
    if SECRET_KEY:
        return SECRET_KEY.encode()

    if KEY_FILE.exists():
        with open(KEY_FILE, "rb") as f:
            return f.read()

    salt = os.urandom(16)
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=salt,
        iterations=100000,
    )

    machine_id = f"{platform.node()}{platform.machine()}{platform.system()}".encode()
    key = base64.urlsafe_b64encode(kdf.derive(machine_id))

    with open(KEY_FILE, "wb") as f:
        f.write(key)

    try:
        KEY_FILE.chmod(0o600)
    except OSError:
        logger.warning(f"Could not restrict permissions on {KEY_FILE}")

    logger.info(f"Created token encryption key: {KEY_FILE}")
    return key


def get_fernet() -> Fernet:
    """Return the shared Fernet instance, creating the key on first use."""
    global _fernet
    if _fernet is None:
        _fernet = Fernet(_get_encryption_key())
    return _fernet


def encrypt_token(token: str) -> str:
    """Encrypt an access token for storage."""
    return get_fernet().encrypt(token.encode("utf-8")).decode("ascii")


def decrypt_token(encrypted: str) -> str:
    """
    Decrypt a stored access token.

    Raises:
        InvalidToken: If the value was encrypted with another key
    """
    try:
        return get_fernet().decrypt(encrypted.encode("ascii")).decode("utf-8")
    except InvalidToken:
        logger.error("Could not decrypt stored access token, was the key changed?")
        raise
