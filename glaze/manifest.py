"""Logical-key to published-path registry shared by one build."""

from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Tuple

from .errors import ManifestConflictError, ManifestSerializationError

MANIFEST_FILENAME = "glaze-manifest.json"


class Manifest:
    """Thread-safe mapping from logical asset keys to published paths.

    Published paths are relative to the output assets directory. A key maps
    to exactly one published path and a published path is claimed by exactly
    one key; any disagreement raises :class:`ManifestConflictError`.
    """

    def __init__(self, entries: Optional[Mapping[str, str]] = None) -> None:
        self._lock = threading.Lock()
        self._entries: Dict[str, str] = {}
        self._owners: Dict[str, str] = {}
        for key, published in (entries or {}).items():
            self.register(key, published)

    def register(self, logical_key: str, published_path: str) -> None:
        with self._lock:
            current = self._entries.get(logical_key)
            if current == published_path:
                return
            if current is not None:
                raise ManifestConflictError(
                    f"'{logical_key}' already published as '{current}', refusing '{published_path}'"
                )
            owner = self._owners.get(published_path)
            if owner is not None:
                raise ManifestConflictError(
                    f"'{logical_key}' and '{owner}' both publish to '{published_path}'"
                )
            self._entries[logical_key] = published_path
            self._owners[published_path] = logical_key

    def lookup(self, logical_key: str) -> Optional[str]:
        with self._lock:
            return self._entries.get(logical_key)

    def __contains__(self, logical_key: object) -> bool:
        with self._lock:
            return logical_key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def items(self) -> List[Tuple[str, str]]:
        with self._lock:
            return sorted(self._entries.items())

    def as_dict(self) -> Dict[str, str]:
        with self._lock:
            return dict(self._entries)

    def serialize(self) -> bytes:
        with self._lock:
            payload = json.dumps(self._entries, indent=2, sort_keys=True)
        return (payload + "\n").encode("utf-8")

    def write(self, path: Path) -> Path:
        """Persist the manifest to ``path`` in a single write."""
        try:
            data = self.serialize()
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except (OSError, TypeError, ValueError) as exc:
            raise ManifestSerializationError(f"Failed to write manifest {path}: {exc}") from exc
        return path

    @classmethod
    def load(cls, path: Path) -> "Manifest":
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise ManifestSerializationError(f"Failed to read manifest {path}: {exc}") from exc
        if not isinstance(data, dict):
            raise ManifestSerializationError(f"{path} must contain a JSON object")
        entries: Dict[str, str] = {}
        for key, value in data.items():
            if not isinstance(value, str):
                raise ManifestSerializationError(
                    f"{path}: entry '{key}' must map to a string, got {type(value).__name__}"
                )
            entries[key] = value
        return cls(entries)

    def __repr__(self) -> str:
        return f"Manifest({len(self)} entries)"


__all__ = ["MANIFEST_FILENAME", "Manifest"]
