"""
SHA-256 digest providers.

Two interchangeable implementers of one primitive:

    NativeDigest    -> hashlib (OpenSSL), fast, may be missing or blocked
    SoftwareDigest  -> pure Python FIPS 180-4, always present

A key derived on one device must be found by a device running the other
implementer, so both must produce identical bytes for identical input.
The choice is made once by a capability probe; a native failure at call
time drops to the software path without changing the result.
"""

from __future__ import annotations

import hashlib
import logging
import struct
from abc import ABC, abstractmethod
from typing import Callable, Optional, Union

logger = logging.getLogger("tasksync.sync.digest")

# SHA-256("abc"), FIPS 180-4 appendix B.1
ABC_VECTOR = "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"

_MASK = 0xFFFFFFFF

_H0 = (
    0x6A09E667, 0xBB67AE85, 0x3C6EF372, 0xA54FF53A,
    0x510E527F, 0x9B05688C, 0x1F83D9AB, 0x5BE0CD19,
)

_K = (
    0x428A2F98, 0x71374491, 0xB5C0FBCF, 0xE9B5DBA5, 0x3956C25B, 0x59F111F1, 0x923F82A4, 0xAB1C5ED5,
    0xD807AA98, 0x12835B01, 0x243185BE, 0x550C7DC3, 0x72BE5D74, 0x80DEB1FE, 0x9BDC06A7, 0xC19BF174,
    0xE49B69C1, 0xEFBE4786, 0x0FC19DC6, 0x240CA1CC, 0x2DE92C6F, 0x4A7484AA, 0x5CB0A9DC, 0x76F988DA,
    0x983E5152, 0xA831C66D, 0xB00327C8, 0xBF597FC7, 0xC6E00BF3, 0xD5A79147, 0x06CA6351, 0x14292967,
    0x27B70A85, 0x2E1B2138, 0x4D2C6DFC, 0x53380D13, 0x650A7354, 0x766A0ABB, 0x81C2C92E, 0x92722C85,
    0xA2BFE8A1, 0xA81A664B, 0xC24B8B70, 0xC76C51A3, 0xD192E819, 0xD6990624, 0xF40E3585, 0x106AA070,
    0x19A4C116, 0x1E376C08, 0x2748774C, 0x34B0BCB5, 0x391C0CB3, 0x4ED8AA4A, 0x5B9CCA4F, 0x682E6FF3,
    0x748F82EE, 0x78A5636F, 0x84C87814, 0x8CC70208, 0x90BEFFFA, 0xA4506CEB, 0xBEF9A3F7, 0xC67178F2,
)

Data = Union[bytes, bytearray, str]


def _as_bytes(data: Data) -> bytes:
    if isinstance(data, str):
        return data.encode("utf-8")
    return bytes(data)


def _rotr(value: int, amount: int) -> int:
    return ((value >> amount) | (value << (32 - amount))) & _MASK


class DigestProvider(ABC):
    """A SHA-256 implementation."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Short label used in logs."""

    @abstractmethod
    def digest(self, data: Data) -> bytes:
        """Return the 32-byte SHA-256 digest of ``data`` (str is UTF-8 encoded)."""

    def hexdigest(self, data: Data) -> str:
        return self.digest(data).hex()


class NativeDigest(DigestProvider):
    """Platform SHA-256 via hashlib.

    Args:
        hash_factory: Constructor returning a hashlib-style object.
            Defaults to ``hashlib.sha256``.
    """

    def __init__(self, hash_factory: Optional[Callable] = None):
        self._factory = hash_factory or hashlib.sha256

    @property
    def name(self) -> str:
        return "native"

    def digest(self, data: Data) -> bytes:
        return self._factory(_as_bytes(data)).digest()


class SoftwareDigest(DigestProvider):
    """Pure-Python SHA-256 (FIPS 180-4)."""

    @property
    def name(self) -> str:
        return "software"

    def digest(self, data: Data) -> bytes:
        message = bytearray(_as_bytes(data))
        bit_length = (len(message) * 8) & 0xFFFFFFFFFFFFFFFF
        message.append(0x80)
        message.extend(b"\x00" * ((56 - len(message) % 64) % 64))
        message.extend(bit_length.to_bytes(8, "big"))

        state = list(_H0)
        for offset in range(0, len(message), 64):
            state = self._compress(state, message[offset:offset + 64])
        return struct.pack(">8I", *state)

    @staticmethod
    def _compress(state: list[int], block: bytes) -> list[int]:
        w = list(struct.unpack(">16I", block))
        for i in range(16, 64):
            s0 = _rotr(w[i - 15], 7) ^ _rotr(w[i - 15], 18) ^ (w[i - 15] >> 3)
            s1 = _rotr(w[i - 2], 17) ^ _rotr(w[i - 2], 19) ^ (w[i - 2] >> 10)
            w.append((w[i - 16] + s0 + w[i - 7] + s1) & _MASK)

        a, b, c, d, e, f, g, h = state
        for i in range(64):
            big_s1 = _rotr(e, 6) ^ _rotr(e, 11) ^ _rotr(e, 25)
            choose = (e & f) ^ (~e & g)
            temp1 = (h + big_s1 + choose + _K[i] + w[i]) & _MASK
            big_s0 = _rotr(a, 2) ^ _rotr(a, 13) ^ _rotr(a, 22)
            majority = (a & b) ^ (a & c) ^ (b & c)
            temp2 = (big_s0 + majority) & _MASK

            h = g
            g = f
            f = e
            e = (d + temp1) & _MASK
            d = c
            c = b
            b = a
            a = (temp1 + temp2) & _MASK

        return [
            (x + y) & _MASK
            for x, y in zip(state, (a, b, c, d, e, f, g, h))
        ]


def probe_native(provider: Optional[DigestProvider] = None) -> bool:
    """Check that the native primitive exists and computes SHA-256 correctly.

    Args:
        provider: Native implementer to probe. Defaults to NativeDigest().

    Returns:
        True if the provider reproduces the FIPS test vector.
    """
    try:
        provider = provider or NativeDigest()
        return provider.hexdigest(b"abc") == ABC_VECTOR
    except Exception as exc:
        logger.debug("Native SHA-256 probe failed: %s", exc)
        return False


def select_digest(
    prefer_native: bool = True,
    native: Optional[DigestProvider] = None,
) -> DigestProvider:
    """Pick the digest implementer for this process.

    Args:
        prefer_native: Use the platform primitive when it passes the probe.
        native: Native implementer to probe (for tests).

    Returns:
        The native provider if usable, otherwise SoftwareDigest.
    """
    if prefer_native:
        native = native or NativeDigest()
        if probe_native(native):
            return native
        logger.warning(
            "Native SHA-256 unavailable, using the software implementation"
        )
    return SoftwareDigest()


_default: Optional[DigestProvider] = None


def default_digest() -> DigestProvider:
    """The provider chosen by the startup probe, selected on first use."""
    global _default
    if _default is None:
        _default = select_digest()
        logger.debug("Digest provider: %s", _default.name)
    return _default


def sha256_hex(data: Data, provider: Optional[DigestProvider] = None) -> str:
    """Hex SHA-256 of ``data``, falling back to software if the provider fails.

    Args:
        data: Bytes, or str (UTF-8 encoded).
        provider: Implementer to try first. Defaults to default_digest().

    Returns:
        64-character lowercase hex digest.
    """
    provider = provider or default_digest()
    try:
        return provider.hexdigest(data)
    except Exception as exc:
        if isinstance(provider, SoftwareDigest):
            raise
        logger.warning(
            "%s SHA-256 failed (%s), falling back to software",
            provider.name, exc,
        )
        return SoftwareDigest().hexdigest(data)
