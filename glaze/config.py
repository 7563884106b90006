"""Configuration loading for glaze (.glaze.yml)."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from .models import ReleaseMode

CONFIG_FILENAME = ".glaze.yml"
MODE_ENV_VAR = "GLAZE_MODE"

_RELEASE_NAMES = {"release", "production", "prod"}
_DEVELOPMENT_NAMES = {"development", "dev", "debug"}


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed or is inconsistent."""


@dataclass
class ReleaseConfig:
    """Toggles that only apply to release builds."""

    hashed: bool = True
    flatten: bool = False


@dataclass
class CSSConfig:
    """Stylesheet bundling settings."""

    minify: bool = True
    public_url: str = "/"


@dataclass
class ServeConfig:
    """Runtime serving switch settings."""

    host: str = "127.0.0.1"
    port: int = 8000
    assets_prefix: str = "/assets"


@dataclass
class GlazeConfig:
    """Represents the settings defined in .glaze.yml.

    Directory settings are absolute once loaded; ``out_public_dir`` and
    ``out_assets_dir`` stay relative (to ``out_dir`` and ``out_public_dir``).
    """

    root: Path
    assets_dir: Path
    public_dir: Optional[Path]
    out_dir: Path
    out_public_dir: Path = Path("public")
    out_assets_dir: Path = Path("assets")
    ignore_prefix: Optional[str] = "_"
    mode: str = "release"
    jobs: int = 1
    release: ReleaseConfig = field(default_factory=ReleaseConfig)
    css: CSSConfig = field(default_factory=CSSConfig)
    serve: ServeConfig = field(default_factory=ServeConfig)

    @classmethod
    def defaults(cls, root: Path) -> "GlazeConfig":
        root = root.resolve()
        return cls(
            root=root,
            assets_dir=root / "assets",
            public_dir=root / "public",
            out_dir=root / "dist",
        )

    @property
    def release_mode(self) -> ReleaseMode:
        if self.mode == "development":
            return ReleaseMode.development()
        return ReleaseMode.for_release(hashed=self.release.hashed, flatten=self.release.flatten)

    @property
    def dist_dir(self) -> Path:
        """Where the public tree is copied in a release build."""
        return self.out_dir / self.out_public_dir

    @property
    def dist_assets_dir(self) -> Path:
        """Where processed assets are written in a release build."""
        return self.dist_dir / self.out_assets_dir


def load_config(
    config_path: Path, *, environ: Optional[Mapping[str, str]] = None
) -> GlazeConfig:
    """Load configuration from disk, applying the ``GLAZE_MODE`` override."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()
    config = GlazeConfig.defaults(root)

    if config_file.exists():
        data = _read_config(config_file)
        if not isinstance(data, dict):
            raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")
        _apply(config, data)

    env = os.environ if environ is None else environ
    override = env.get(MODE_ENV_VAR)
    if override:
        config.mode = normalise_mode(override)
    return config


def normalise_mode(value: str) -> str:
    lowered = value.strip().lower()
    if lowered in _RELEASE_NAMES:
        return "release"
    if lowered in _DEVELOPMENT_NAMES:
        return "development"
    raise ConfigError(f"Unknown mode '{value}' (expected 'release' or 'development')")


def _apply(config: GlazeConfig, data: Dict[str, Any]) -> None:
    root = config.root

    assets_dir = _as_str(data.get("assets_dir"))
    if assets_dir:
        config.assets_dir = _absolute(root, assets_dir)
    if "public_dir" in data:
        public_dir = _as_str(data.get("public_dir"))
        config.public_dir = _absolute(root, public_dir) if public_dir else None
    out_dir = _as_str(data.get("out_dir"))
    if out_dir:
        config.out_dir = _absolute(root, out_dir)

    out_public_dir = _as_str(data.get("out_public_dir"))
    if out_public_dir is not None:
        config.out_public_dir = _relative(out_public_dir, "out_public_dir")
    out_assets_dir = _as_str(data.get("out_assets_dir"))
    if out_assets_dir is not None:
        config.out_assets_dir = _relative(out_assets_dir, "out_assets_dir")

    if "ignore_prefix" in data:
        config.ignore_prefix = _as_str(data.get("ignore_prefix")) or None

    mode = _as_str(data.get("mode"))
    if mode:
        config.mode = normalise_mode(mode)

    jobs = _as_int(data.get("jobs"))
    if jobs is not None:
        if jobs < 1:
            raise ConfigError("jobs must be a positive integer")
        config.jobs = jobs

    release_data = _as_dict(data.get("release"))
    if release_data:
        hashed = _as_bool(release_data.get("hashed"))
        flatten = _as_bool(release_data.get("flatten"))
        config.release = ReleaseConfig(
            hashed=config.release.hashed if hashed is None else hashed,
            flatten=config.release.flatten if flatten is None else flatten,
        )

    css_data = _as_dict(data.get("css"))
    if css_data:
        minify = _as_bool(css_data.get("minify"))
        public_url = _as_str(css_data.get("public_url"))
        config.css = CSSConfig(
            minify=config.css.minify if minify is None else minify,
            public_url=public_url or config.css.public_url,
        )

    serve_data = _as_dict(data.get("serve"))
    if serve_data:
        prefix = _as_str(serve_data.get("assets_prefix"))
        if prefix is not None and not prefix.startswith("/"):
            raise ConfigError("serve.assets_prefix must start with '/'")
        config.serve = ServeConfig(
            host=_as_str(serve_data.get("host")) or config.serve.host,
            port=_as_int(serve_data.get("port")) or config.serve.port,
            assets_prefix=prefix or config.serve.assets_prefix,
        )


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Any:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded if loaded is not None else {}


def _absolute(root: Path, value: str) -> Path:
    path = Path(value).expanduser()
    if not path.is_absolute():
        path = root / path
    return path.resolve()


def _relative(value: str, name: str) -> Path:
    path = Path(value)
    if path.is_absolute() or ".." in path.parts:
        raise ConfigError(f"{name} must be a relative path inside the output directory")
    return path


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        return value.strip()
    return str(value)


def _as_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Expected an integer, got {value!r}") from exc


def _as_bool(value: Any) -> Optional[bool]:
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "on", "1"}:
            return True
        if lowered in {"false", "no", "off", "0"}:
            return False
    raise ConfigError(f"Expected a boolean, got {value!r}")


__all__ = [
    "CONFIG_FILENAME",
    "CSSConfig",
    "ConfigError",
    "GlazeConfig",
    "MODE_ENV_VAR",
    "ReleaseConfig",
    "ServeConfig",
    "load_config",
    "normalise_mode",
]
