"""Logical asset name lookup for application code."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, Mapping, Optional

from .builder import ENV_MANIFEST
from .errors import AssetNotFoundError
from .manifest import Manifest


class AssetResolver:
    """Turns a logical asset key into the URL path application code should emit.

    With a manifest (release builds) keys resolve to their published,
    possibly hashed, path. Without one (development) the key is used as-is
    under the assets prefix.
    """

    def __init__(self, manifest: Optional[Mapping[str, str]] = None, *, prefix: str = "assets") -> None:
        self._entries: Optional[Dict[str, str]] = dict(manifest) if manifest is not None else None
        self.prefix = prefix.strip("/")

    @classmethod
    def from_manifest_file(cls, path: Path | None, *, prefix: str = "assets") -> "AssetResolver":
        if path is None or not path.exists():
            return cls(None, prefix=prefix)
        return cls(Manifest.load(path).as_dict(), prefix=prefix)

    @classmethod
    def from_env(
        cls, environ: Optional[Mapping[str, str]] = None, *, prefix: str = "assets"
    ) -> "AssetResolver":
        env = os.environ if environ is None else environ
        manifest_path = env.get(ENV_MANIFEST)
        return cls.from_manifest_file(Path(manifest_path) if manifest_path else None, prefix=prefix)

    @property
    def release(self) -> bool:
        return self._entries is not None

    def resolve(self, logical_key: str) -> str:
        key = logical_key.lstrip("/")
        if self._entries is None:
            return self._join(key)
        published = self._entries.get(key)
        if published is None:
            raise AssetNotFoundError(key)
        return self._join(published)

    __call__ = resolve

    def _join(self, path: str) -> str:
        return f"{self.prefix}/{path}" if self.prefix else path


__all__ = ["AssetResolver"]
