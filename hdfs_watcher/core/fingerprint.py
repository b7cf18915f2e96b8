"""
File fingerprints.

A fingerprint identifies one version of a file by name, size and modification
time. A rewrite that keeps all three unchanged is treated as the same file.
"""

import hashlib
import logging
import zlib

from .domain_objects import DirectoryEntry

FINGERPRINT_ALGORITHM = "sha256"
FIELD_SEPARATOR = "|"

_degraded_mode_logged = False


def fingerprint(name: str, size: int, mod_time_millis: int) -> str:
    """
    Derive the fingerprint of a file version.

    Returns the lowercase hex SHA-256 of ``name|size|mtime``. When SHA-256 is
    not available on this interpreter a signed 32-bit CRC of the same bytes is
    returned instead, which is far more collision-prone. Degraded fingerprints
    are not comparable with those of other implementations that fall back to a
    different 32-bit string hash.

    Raises:
        ValueError: If name is empty or size is negative.
    """
    if not name:
        raise ValueError("Filename cannot be empty")
    if size < 0:
        raise ValueError(f"File size cannot be negative: {size}")

    payload = FIELD_SEPARATOR.join((name, str(int(size)), str(int(mod_time_millis))))
    data = payload.encode("utf-8")

    try:
        digest = hashlib.new(FINGERPRINT_ALGORITHM)
    except ValueError:
        _log_degraded_mode()
        return str(_to_signed32(zlib.crc32(data)))

    digest.update(data)
    return digest.hexdigest()


def fingerprint_entry(entry: DirectoryEntry) -> str:
    return fingerprint(entry.name, entry.size, entry.modification_time)


def _to_signed32(value: int) -> int:
    return value - (1 << 32) if value >= (1 << 31) else value


def _log_degraded_mode() -> None:
    global _degraded_mode_logged
    if not _degraded_mode_logged:
        logging.warning(
            f"{FINGERPRINT_ALGORITHM} is not available, falling back to a 32-bit "
            "fingerprint. Distinct files may collide and be skipped."
        )
        _degraded_mode_logged = True
