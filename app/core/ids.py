"""Prefixed public identifiers."""

import secrets
import string

_ALPHABET = string.ascii_letters + string.digits
_ID_LENGTH = 24


def generate_id(object_type: str, length: int = _ID_LENGTH) -> str:
    """
    Generate an opaque public identifier such as ``user_3kTMd9...``.

    Args:
        object_type: Prefix naming the kind of object
        length: Number of random base62 characters

    Returns:
        Prefixed random identifier
    """
    suffix = "".join(secrets.choice(_ALPHABET) for _ in range(length))
    return f"{object_type}_{suffix}"
