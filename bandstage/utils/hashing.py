"""Band Stage - Hashing utilities.

All hash functions return HEX DIGEST ONLY (no prefix).
"""

import hashlib


def sha256_bytes(data: bytes) -> str:
    """Compute SHA256 hash of bytes.

    Args:
        data: Bytes to hash.

    Returns:
        SHA256 hex digest (64 lowercase hex characters, no prefix).
    """
    return hashlib.sha256(data).hexdigest()


def sha256_text(text: str, encoding: str = "utf-8") -> str:
    """Compute SHA256 hash of a string after encoding it."""
    return sha256_bytes(text.encode(encoding))
