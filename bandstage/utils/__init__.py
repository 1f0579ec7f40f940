"""Band Stage - Utility modules."""

from bandstage.utils.atomic_io import atomic_write_bytes, atomic_write_text
from bandstage.utils.hashing import sha256_bytes, sha256_text

__all__ = [
    # atomic_io
    "atomic_write_bytes",
    "atomic_write_text",
    # hashing
    "sha256_bytes",
    "sha256_text",
]
