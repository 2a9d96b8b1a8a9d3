"""
Passphrase -> storage key.

The sync code never leaves the device. What travels is a one-way key:
SHA-256 of the trimmed, lower-cased passphrase, either as plain hex or
reshaped into a version-4 UUID for stores that only accept UUID ids.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Optional

from .digest import DigestProvider, sha256_hex
from .errors import SyncValidationError

logger = logging.getLogger("tasksync.sync.identity")

MIN_SYNC_CODE_LENGTH = 4


class KeyFormat(str, Enum):
    """Shape of the derived key expected by a backend."""

    HEX = "hex"
    UUID = "uuid"


def normalize_passphrase(passphrase: str) -> str:
    """Trim and case-fold so visually identical passphrases collide."""
    return passphrase.strip().lower()


def is_valid_sync_code(passphrase: Optional[str]) -> bool:
    """Whether a passphrase is long enough to be used as a sync code."""
    if not passphrase:
        return False
    return len(normalize_passphrase(passphrase)) >= MIN_SYNC_CODE_LENGTH


def derive_key(
    passphrase: str,
    key_format: KeyFormat = KeyFormat.HEX,
    digest: Optional[DigestProvider] = None,
) -> str:
    """Derive the remote document key for a passphrase.

    Args:
        passphrase: The user's sync code.
        key_format: HEX for a 64-char digest, UUID for a v4-shaped id.
        digest: SHA-256 implementer. Defaults to the probed provider.

    Returns:
        The derived key.

    Raises:
        SyncValidationError: If the passphrase is shorter than
            MIN_SYNC_CODE_LENGTH after normalization.
    """
    if not is_valid_sync_code(passphrase):
        raise SyncValidationError(
            f"Invalid sync code: use at least {MIN_SYNC_CODE_LENGTH} characters"
        )

    hex_digest = sha256_hex(normalize_passphrase(passphrase), digest)
    if KeyFormat(key_format) is KeyFormat.UUID:
        return _uuid4_from_hex(hex_digest)
    return hex_digest


def _uuid4_from_hex(hex_digest: str) -> str:
    """Format the first 128 bits as a UUID with v4 version/variant bits forced.

    xxxxxxxx-xxxx-4xxx-Yxxx-xxxxxxxxxxxx, Y in {8, 9, a, b}
    """
    p1 = hex_digest[0:8]
    p2 = hex_digest[8:12]
    p3 = "4" + hex_digest[13:16]
    variant = (int(hex_digest[16], 16) & 0x3) | 0x8
    p4 = format(variant, "x") + hex_digest[17:20]
    p5 = hex_digest[20:32]
    return f"{p1}-{p2}-{p3}-{p4}-{p5}"
