"""Content hash of files on disk. Hash is SHA-1 of the file body, lowercase hex."""

import hashlib
import logging
from pathlib import Path
from typing import Optional, Union

log = logging.getLogger(__name__)

HASH_ALGORITHM = "sha1"
_CHUNK_SIZE = 4096


def file_sha1(path: Union[str, Path, None]) -> Optional[str]:
    """SHA-1 hex digest of the file at path. Returns None (and logs a warning) when unreadable."""
    if path is None:
        return None
    try:
        digest = hashlib.new(HASH_ALGORITHM)
    except ValueError as e:
        log.warning("Hash algorithm %s unavailable: %s", HASH_ALGORITHM, e)
        return None
    try:
        with open(path, "rb") as f:
            for chunk in iter(lambda: f.read(_CHUNK_SIZE), b""):
                digest.update(chunk)
    except OSError as e:
        log.warning("Could not hash %s: %s", path, e)
        return None
    return digest.hexdigest()
