"""
Security helpers for user-supplied file names.
"""

import os

from .logging import get_logger

logger = get_logger(__name__, component="security")

_DANGEROUS_CHARS = '<>:"|?*'


def sanitize_filename(filename: str) -> str:
    """
    Reduce a client-supplied file name to a safe base name.

    Strips directory components, null bytes, leading dots, control and
    non-ASCII characters, and characters that are invalid on common file
    systems.

    Example:
        >>> sanitize_filename("../../etc/passwd")
        'passwd'

    Raises:
        ValueError: nothing usable is left
    """
    original = filename
    filename = os.path.basename(filename.replace("\\", "/"))
    filename = filename.replace("\x00", "").lstrip(".")
    filename = "".join(ch for ch in filename if 31 < ord(ch) < 127)
    filename = "".join(ch for ch in filename if ch not in _DANGEROUS_CHARS)
    filename = filename[:255].strip()

    if not filename or not filename.replace(".", ""):
        logger.warning("Filename sanitization left nothing usable", extra={"original": original})
        raise ValueError("Invalid filename after sanitization")

    if filename != original:
        logger.info("Filename sanitized", extra={"original": original, "sanitized": filename})
    return filename
