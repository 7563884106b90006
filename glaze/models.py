"""Core data models shared across the asset pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterator, List, Optional

STYLESHEET_MEDIA_TYPE = "text/css"
DEFAULT_MEDIA_TYPE = "application/octet-stream"


class AssetKind(str, Enum):
    """How an asset is processed: bundled stylesheet or opaque bytes."""

    STYLESHEET = "stylesheet"
    OPAQUE = "opaque"


@dataclass(frozen=True)
class Asset:
    """One discovered source file."""

    path: Path
    logical_key: str
    kind: AssetKind
    media_type: str = DEFAULT_MEDIA_TYPE

    @property
    def is_stylesheet(self) -> bool:
        return self.kind is AssetKind.STYLESHEET


@dataclass
class AssetSource:
    """Discovery result for one asset root."""

    root: Path
    opaque: List[Asset] = field(default_factory=list)
    stylesheets: List[Asset] = field(default_factory=list)
    ignore_prefix: Optional[str] = "_"

    def __iter__(self) -> Iterator[Asset]:
        yield from self.opaque
        yield from self.stylesheets

    def __len__(self) -> int:
        return len(self.opaque) + len(self.stylesheets)

    def logical_keys(self) -> List[str]:
        return [asset.logical_key for asset in self]


@dataclass(frozen=True)
class ReleaseMode:
    """Closed choice between a development run and a release build.

    Development builds copy nothing and serve files straight from their
    source directories. Release builds write an output tree; ``hashed`` and
    ``flatten`` only apply to them.
    """

    release: bool = False
    hashed: bool = False
    flatten: bool = False

    @classmethod
    def development(cls) -> "ReleaseMode":
        return cls(release=False, hashed=False, flatten=False)

    @classmethod
    def for_release(cls, *, hashed: bool = True, flatten: bool = False) -> "ReleaseMode":
        return cls(release=True, hashed=hashed, flatten=flatten)

    @property
    def name(self) -> str:
        return "release" if self.release else "development"

    def __post_init__(self) -> None:
        if not self.release and (self.hashed or self.flatten):
            raise ValueError("hashed/flatten only apply to release builds")


__all__ = [
    "Asset",
    "AssetKind",
    "AssetSource",
    "DEFAULT_MEDIA_TYPE",
    "ReleaseMode",
    "STYLESHEET_MEDIA_TYPE",
]
