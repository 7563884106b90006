"""Build-time static asset pipeline: discovery, stylesheet bundling, content hashing."""

from .builder import BuildResult, Builder, build
from .config import ConfigError, GlazeConfig, load_config
from .lookup import AssetResolver
from .manifest import MANIFEST_FILENAME, Manifest
from .models import Asset, AssetKind, AssetSource, ReleaseMode
from .walker import scan_assets

__version__ = "0.1.0"

__all__ = [
    "Asset",
    "AssetKind",
    "AssetResolver",
    "AssetSource",
    "BuildResult",
    "Builder",
    "ConfigError",
    "GlazeConfig",
    "MANIFEST_FILENAME",
    "Manifest",
    "ReleaseMode",
    "build",
    "load_config",
    "scan_assets",
]
