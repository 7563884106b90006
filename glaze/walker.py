"""Asset root discovery and classification."""

from __future__ import annotations

import mimetypes
import os
from pathlib import Path
from typing import Iterator, List, Optional

from .errors import AssetIOError, DirectoryNotFoundError
from .logging import get_logger
from .models import (
    DEFAULT_MEDIA_TYPE,
    STYLESHEET_MEDIA_TYPE,
    Asset,
    AssetKind,
    AssetSource,
)

DEFAULT_IGNORE_PREFIX = "_"

# Operating system droppings that never belong in a published asset tree.
_EXCLUDED_FILES = {
    ".DS_Store",
    "Thumbs.db",
    "desktop.ini",
}

logger = get_logger("walker")


def guess_media_type(path: Path) -> str:
    """Return the declared media type for ``path`` based on its extension."""
    media_type, _ = mimetypes.guess_type(path.name, strict=False)
    return media_type or DEFAULT_MEDIA_TYPE


def classify(path: Path, root: Path) -> Asset:
    """Build an :class:`Asset` for ``path`` located under ``root``."""
    media_type = guess_media_type(path)
    kind = AssetKind.STYLESHEET if media_type == STYLESHEET_MEDIA_TYPE else AssetKind.OPAQUE
    return Asset(
        path=path,
        logical_key=path.relative_to(root).as_posix(),
        kind=kind,
        media_type=media_type,
    )


def is_ignored(filename: str, ignore_prefix: Optional[str]) -> bool:
    """Only the bare filename is tested; parent directory names never match."""
    if not ignore_prefix:
        return False
    return filename.startswith(ignore_prefix)


def _raise_walk_error(error: OSError) -> None:
    path = Path(error.filename) if error.filename else Path(".")
    raise AssetIOError(path, error.strerror or str(error)) from error


def _iter_files(root: Path, ignore_prefix: Optional[str]) -> Iterator[Path]:
    for dirpath, dirnames, filenames in os.walk(root, onerror=_raise_walk_error):
        dirnames.sort()
        current_dir = Path(dirpath)
        for filename in sorted(filenames):
            if filename in _EXCLUDED_FILES:
                continue
            if is_ignored(filename, ignore_prefix):
                logger.debug("Ignoring %s", current_dir / filename)
                continue
            yield current_dir / filename


def scan_assets(
    root: Path | str, *, ignore_prefix: Optional[str] = DEFAULT_IGNORE_PREFIX
) -> AssetSource:
    """Walk ``root`` recursively and partition its files into opaque assets and stylesheets."""
    root_path = Path(root).expanduser().resolve()
    if not root_path.is_dir():
        raise DirectoryNotFoundError(root_path, "asset")

    opaque: List[Asset] = []
    stylesheets: List[Asset] = []
    for path in _iter_files(root_path, ignore_prefix):
        asset = classify(path, root_path)
        if asset.is_stylesheet:
            stylesheets.append(asset)
        else:
            opaque.append(asset)

    logger.debug(
        "Discovered %d opaque asset(s) and %d stylesheet(s) under %s",
        len(opaque),
        len(stylesheets),
        root_path,
    )
    return AssetSource(
        root=root_path,
        opaque=opaque,
        stylesheets=stylesheets,
        ignore_prefix=ignore_prefix,
    )


__all__ = [
    "DEFAULT_IGNORE_PREFIX",
    "classify",
    "guess_media_type",
    "is_ignored",
    "scan_assets",
]
