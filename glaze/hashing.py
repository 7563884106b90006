"""Content-addressed filenames for published assets."""

from __future__ import annotations

import hashlib
import posixpath

DIGEST_SIZE = 4


def content_digest(data: bytes) -> str:
    """Return a short hex digest of ``data`` (8 characters).

    This is a cache-busting token, not a security primitive.
    """
    return hashlib.blake2b(data, digest_size=DIGEST_SIZE).hexdigest()


def apply_digest(filename: str, digest: str) -> str:
    """Splice ``digest`` before the final extension of ``filename``.

    >>> apply_digest("style.css", "a1b2c3d4")
    'style-a1b2c3d4.css'
    >>> apply_digest("LICENSE", "a1b2c3d4")
    'LICENSE-a1b2c3d4'
    """
    stem, ext = posixpath.splitext(filename)
    return f"{stem}-{digest}{ext}"


def published_name(logical_key: str, data: bytes, *, hashed: bool, flatten: bool) -> str:
    """Compute the output path (relative to the assets dir) for one asset."""
    directory, filename = posixpath.split(logical_key)
    if hashed:
        filename = apply_digest(filename, content_digest(data))
    if flatten or not directory:
        return filename
    return f"{directory}/{filename}"


__all__ = ["DIGEST_SIZE", "apply_digest", "content_digest", "published_name"]
