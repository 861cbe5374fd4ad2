"""
Encryption of stored filesystem credentials.

Passwords are Fernet-encrypted with ``PLUGINS_MASTER_KEY``. Without a usable key
they are stored as given, and values that were never encrypted decrypt to themselves.
"""

import logging
import os
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

logger = logging.getLogger(__name__)

_fernet_instance: Optional[Fernet] = None


def _get_fernet() -> Optional[Fernet]:
    global _fernet_instance
    if _fernet_instance is not None:
        return _fernet_instance

    master_key = os.getenv("PLUGINS_MASTER_KEY")
    if not master_key:
        logger.warning("PLUGINS_MASTER_KEY is not set. Filesystem credentials will be stored unencrypted.")
        return None

    try:
        _fernet_instance = Fernet(master_key.encode("utf-8"))
    except ValueError as e:
        logger.error(f"PLUGINS_MASTER_KEY is not a valid Fernet key ({e}). Filesystem credentials will be stored unencrypted.")
        return None
    return _fernet_instance


def encrypt_secret(val: Optional[str]) -> Optional[str]:
    fernet = _get_fernet() if val else None
    if fernet is None:
        return val
    return fernet.encrypt(val.encode("utf-8")).decode("utf-8")


def decrypt_secret(val: Optional[str]) -> Optional[str]:
    """Decrypt a stored password; values saved before a key was configured pass through."""
    fernet = _get_fernet() if val else None
    if fernet is None:
        return val
    try:
        return fernet.decrypt(val.encode("utf-8")).decode("utf-8")
    except InvalidToken:
        logger.debug("Stored credential is not encrypted with the current key, using it as stored")
        return val
