"""
Storage State - Load persisted cookies/localStorage for a new context.

A state file is either a plain Playwright storage-state document or an
encrypted envelope:

    {"version": 1, "encrypted": true, "iv": "...", "authTag": "...", "data": "..."}

Envelopes are AES-256-GCM with base64 fields, keyed by the 64 hex
characters in AGENT_BROWSER_ENCRYPTION_KEY. Any failure to read or
decrypt means "start fresh" plus a warning, never an error.
"""

import base64
import binascii
import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

logger = logging.getLogger(__name__)

ENCRYPTION_KEY_ENV = "AGENT_BROWSER_ENCRYPTION_KEY"

StorageState = Union[str, Dict[str, Any]]


@dataclass
class StorageStateResult:
    """
    Outcome of loading a state file.
    
    Attributes:
        state: A path (plain files are handed to Playwright as-is), a
            decrypted state dict, or None to start fresh
        warning: Message for the caller when the file could not be used
    """
    state: Optional[StorageState] = None
    warning: Optional[str] = None


def is_encrypted_payload(data: Any) -> bool:
    """Sentinel check for the encrypted envelope."""
    return (
        isinstance(data, dict)
        and data.get("encrypted") is True
        and all(isinstance(data.get(key), str) for key in ("iv", "authTag", "data"))
        and "version" in data
    )


def get_encryption_key() -> Optional[bytes]:
    """Read the 32-byte key from the environment, or None if unset/invalid."""
    raw = os.environ.get(ENCRYPTION_KEY_ENV)
    if not raw:
        return None
    try:
        key = bytes.fromhex(raw.strip())
    except ValueError:
        logger.warning(f"{ENCRYPTION_KEY_ENV} is not valid hex; ignoring it")
        return None
    if len(key) != 32:
        logger.warning(f"{ENCRYPTION_KEY_ENV} must be 64 hex characters; ignoring it")
        return None
    return key


def encrypt_data(plaintext: str, key: bytes) -> Dict[str, Any]:
    """Wrap ``plaintext`` in an encrypted envelope."""
    iv = os.urandom(12)
    sealed = AESGCM(key).encrypt(iv, plaintext.encode("utf-8"), None)
    ciphertext, tag = sealed[:-16], sealed[-16:]
    return {
        "version": 1,
        "encrypted": True,
        "iv": base64.b64encode(iv).decode("ascii"),
        "authTag": base64.b64encode(tag).decode("ascii"),
        "data": base64.b64encode(ciphertext).decode("ascii"),
    }


def decrypt_data(payload: Dict[str, Any], key: bytes) -> str:
    """
    Open an encrypted envelope.
    
    Raises:
        ValueError: On a malformed envelope, wrong key or tampered data
    """
    try:
        iv = base64.b64decode(payload["iv"])
        tag = base64.b64decode(payload["authTag"])
        ciphertext = base64.b64decode(payload["data"])
        return AESGCM(key).decrypt(iv, ciphertext + tag, None).decode("utf-8")
    except (InvalidTag, binascii.Error, KeyError, UnicodeDecodeError) as e:
        raise ValueError(f"Could not decrypt state payload: {e!r}") from e


def load_storage_state(
    path: Union[str, Path],
    encryption_key: Optional[bytes] = None,
) -> StorageStateResult:
    """
    Load a state file for Browser.new_context(storage_state=...).
    
    Args:
        path: State file location
        encryption_key: Decryption key; read from the environment when omitted
        
    Returns:
        The usable state (or None) and an optional warning
    """
    state_path = Path(path)
    if not state_path.exists():
        return StorageStateResult()
    
    try:
        parsed = json.loads(state_path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.debug(f"Failed to load state file, starting fresh: {e}")
        return StorageStateResult()
    
    if not is_encrypted_payload(parsed):
        logger.debug(f"Auto-loading session state: {state_path}")
        return StorageStateResult(state=str(state_path))
    
    key = encryption_key if encryption_key is not None else get_encryption_key()
    if key is None:
        warning = f"State file is encrypted but {ENCRYPTION_KEY_ENV} not set - starting fresh"
        logger.warning(warning)
        return StorageStateResult(warning=warning)
    
    try:
        state = json.loads(decrypt_data(parsed, key))
    except ValueError as e:
        warning = "Failed to decrypt state file - wrong encryption key? Starting fresh."
        logger.warning(warning)
        logger.debug(f"Decryption error: {e}")
        return StorageStateResult(warning=warning)
    
    logger.debug(f"Auto-loading session state (decrypted): {state_path}")
    return StorageStateResult(state=state)
