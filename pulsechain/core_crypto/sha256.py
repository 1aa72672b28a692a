"""
SHA-256 Digest Helpers

Thin wrappers around the SHA-256 primitive from the `cryptography` package.
Every block hash in the ledger goes through these two functions so the
digest backend is chosen in exactly one place.

If the backend cannot provide SHA-256 the error from `cryptography`
propagates unchanged: a node without a working hash primitive cannot
validate anything and must not keep running.
"""

from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import hashes


DIGEST_SIZE = 32  # 256-bit output


def sha256(data: bytes) -> bytes:
    """
    Compute the SHA-256 digest of a byte string.

    Args:
        data: Message bytes

    Returns:
        32-byte digest
    """
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise TypeError("sha256 expects bytes")
    digest = hashes.Hash(hashes.SHA256(), backend=default_backend())
    digest.update(bytes(data))
    return digest.finalize()


def sha256_hex(data: bytes) -> str:
    """Compute SHA-256 and return lowercase hexadecimal."""
    return sha256(data).hex()
