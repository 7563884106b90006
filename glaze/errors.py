"""Exception hierarchy raised by the asset pipeline."""

from __future__ import annotations

from pathlib import Path
from typing import Sequence


class GlazeError(RuntimeError):
    """Base class for every error raised by glaze."""


class DirectoryNotFoundError(GlazeError):
    """Raised when a configured source directory is missing or not a directory."""

    def __init__(self, path: Path, role: str = "asset") -> None:
        super().__init__(f"{role.capitalize()} directory not found: {path}")
        self.path = path
        self.role = role


class AssetIOError(GlazeError):
    """Raised when reading or writing a single asset fails."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


class StylesheetError(GlazeError):
    """Raised when a stylesheet cannot be bundled."""


class UnresolvedReferenceError(StylesheetError):
    """A stylesheet references an asset that is not registered in the manifest."""

    def __init__(self, key: str, referrer: Path, detail: str | None = None) -> None:
        message = detail or "not found in manifest"
        super().__init__(f"{referrer}: cannot resolve '{key}' ({message})")
        self.key = key
        self.referrer = referrer


class DependencyCycleError(StylesheetError):
    """Stylesheets reference each other in a loop and cannot be ordered."""

    def __init__(self, cycle: Sequence[str]) -> None:
        super().__init__("Stylesheet reference cycle: " + " -> ".join(cycle))
        self.cycle = list(cycle)


class ManifestConflictError(GlazeError):
    """Two registrations disagree about a logical key or a published path."""


class ManifestSerializationError(GlazeError):
    """The manifest could not be written or read back."""


class BuildError(GlazeError):
    """Aggregate of per-asset failures collected during a release build."""

    def __init__(self, failures: Sequence[GlazeError]) -> None:
        self.failures = list(failures)
        lines = [f"{len(self.failures)} asset(s) failed to build:"]
        lines.extend(f"  - {failure}" for failure in self.failures)
        super().__init__("\n".join(lines))


class AssetNotFoundError(GlazeError, KeyError):
    """Raised by the asset resolver for a logical key missing from the manifest."""

    def __init__(self, key: str) -> None:
        super().__init__(f"Asset '{key}' not found in manifest")
        self.key = key

    def __str__(self) -> str:
        return str(self.args[0])


__all__ = [
    "AssetIOError",
    "AssetNotFoundError",
    "BuildError",
    "DependencyCycleError",
    "DirectoryNotFoundError",
    "GlazeError",
    "ManifestConflictError",
    "ManifestSerializationError",
    "StylesheetError",
    "UnresolvedReferenceError",
]
