"""
License key generation.

License keys are opaque, globally unique and immutable once issued.
"""

import hashlib
import secrets
import string

KEY_SEGMENTS = 4
SEGMENT_LENGTH = 6


def generate_license_key() -> str:
    """
    Generate a license key in format: XXXXXX-XXXXXX-XXXXXX-XXXXXX.

    Returns:
        Generated license key string
    """
    chars = string.ascii_uppercase + string.digits
    parts = [
        "".join(secrets.choice(chars) for _ in range(SEGMENT_LENGTH))
        for _ in range(KEY_SEGMENTS)
    ]
    return "-".join(parts)


def hash_license_key(key: str) -> str:
    """Return the SHA-256 hex digest stored beside a license key."""
    return hashlib.sha256(key.encode()).hexdigest()
