"""Build orchestration for development and release runs."""

from __future__ import annotations

import shutil
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from graphlib import CycleError, TopologicalSorter
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from .config import ConfigError, GlazeConfig
from .css import Bundle, StylesheetBundler, resolve_bundle
from .errors import (
    AssetIOError,
    BuildError,
    DependencyCycleError,
    DirectoryNotFoundError,
    GlazeError,
    StylesheetError,
)
from .hashing import published_name
from .logging import get_logger
from .manifest import MANIFEST_FILENAME, Manifest
from .models import Asset, AssetSource, ReleaseMode
from .walker import scan_assets

ENV_RELEASE_MODE = "GLAZE_RELEASE_MODE"
ENV_PUBLIC_DIR = "GLAZE_PUBLIC_DIR"
ENV_ASSETS_DIR = "GLAZE_ASSETS_DIR"
ENV_MANIFEST = "GLAZE_MANIFEST"


@dataclass
class BuildResult:
    """Outcome of one build, consumed by the serving switch and the resolver."""

    mode: ReleaseMode
    public_dir: Optional[Path]
    assets_dir: Path
    manifest: Manifest
    manifest_path: Optional[Path] = None
    assets: List[Asset] = field(default_factory=list)

    def environment(self) -> Dict[str, str]:
        """Variables the runtime reads to pick its serving and lookup behaviour."""
        env = {
            ENV_RELEASE_MODE: self.mode.name,
            ENV_ASSETS_DIR: str(self.assets_dir),
        }
        if self.public_dir is not None:
            env[ENV_PUBLIC_DIR] = str(self.public_dir)
        if self.manifest_path is not None:
            env[ENV_MANIFEST] = str(self.manifest_path)
        return env


class Builder:
    """Runs the asset pipeline for one configuration.

    Each builder owns its manifest, so two builders never share state.
    """

    def __init__(
        self,
        config: GlazeConfig,
        *,
        manifest: Manifest | None = None,
        bundler: StylesheetBundler | None = None,
    ) -> None:
        self.config = config
        self.manifest = manifest if manifest is not None else Manifest()
        self.bundler = bundler or StylesheetBundler(config.assets_dir, minify=config.css.minify)
        self.logger = get_logger("builder")

    @property
    def mode(self) -> ReleaseMode:
        return self.config.release_mode

    def build(self) -> BuildResult:
        config = self.config
        source = scan_assets(config.assets_dir, ignore_prefix=config.ignore_prefix)
        public_dir = config.public_dir
        if public_dir is not None and not public_dir.is_dir():
            raise DirectoryNotFoundError(public_dir, "public")

        self.logger.info(
            "Starting %s build of %s (%d asset(s))", self.mode.name, source.root, len(source)
        )
        if not self.mode.release:
            return BuildResult(
                mode=self.mode,
                public_dir=public_dir,
                assets_dir=source.root,
                manifest=self.manifest,
                assets=list(source),
            )
        return self._release(source)

    # ------------------------------------------------------------------
    # Release pipeline

    def _release(self, source: AssetSource) -> BuildResult:
        config = self.config
        self._check_output_location(source.root)

        if config.out_dir.exists():
            self.logger.debug("Removing previous output %s", config.out_dir)
            shutil.rmtree(config.out_dir)
        config.dist_assets_dir.mkdir(parents=True, exist_ok=True)

        if config.public_dir is not None:
            self._copy_public(config.public_dir, config.dist_dir)

        failures: List[GlazeError] = []
        failures.extend(self._process_opaque(source.opaque))
        failures.extend(self._process_stylesheets(source.stylesheets))
        if failures:
            raise BuildError(failures)

        manifest_path = self.manifest.write(config.out_dir / MANIFEST_FILENAME)
        self.logger.info(
            "Published %d asset(s); manifest written to %s", len(self.manifest), manifest_path
        )
        return BuildResult(
            mode=self.mode,
            public_dir=config.dist_dir,
            assets_dir=config.dist_assets_dir,
            manifest=self.manifest,
            manifest_path=manifest_path,
            assets=list(source),
        )

    def _check_output_location(self, assets_root: Path) -> None:
        out_dir = self.config.out_dir.resolve()
        source_dirs = [assets_root.resolve()]
        if self.config.public_dir is not None:
            source_dirs.append(self.config.public_dir.resolve())

        for protected in [*source_dirs, self.config.root.resolve()]:
            if protected.is_relative_to(out_dir):
                raise ConfigError(
                    f"Output directory {out_dir} would delete source directory {protected}"
                )
        for source_dir in source_dirs:
            if out_dir.is_relative_to(source_dir):
                raise ConfigError(
                    f"Output directory {out_dir} lies inside source directory {source_dir}"
                )

    def _copy_public(self, public_dir: Path, destination: Path) -> None:
        self.logger.debug("Copying public tree %s -> %s", public_dir, destination)
        try:
            shutil.copytree(public_dir, destination, dirs_exist_ok=True)
        except (OSError, shutil.Error) as exc:
            raise AssetIOError(public_dir, f"failed to copy public tree: {exc}") from exc

    def _process_opaque(self, assets: Sequence[Asset]) -> List[GlazeError]:
        if self.config.jobs > 1 and len(assets) > 1:
            with ThreadPoolExecutor(max_workers=self.config.jobs) as pool:
                outcomes = list(pool.map(self._try_opaque, assets))
        else:
            outcomes = [self._try_opaque(asset) for asset in assets]
        return [failure for failure in outcomes if failure is not None]

    def _try_opaque(self, asset: Asset) -> GlazeError | None:
        try:
            self._publish(asset, self._read_bytes(asset.path))
        except (AssetIOError, StylesheetError) as exc:
            self.logger.error("Failed to publish %s: %s", asset.logical_key, exc)
            return exc
        return None

    def _process_stylesheets(self, stylesheets: Sequence[Asset]) -> List[GlazeError]:
        failures: List[GlazeError] = []
        bundles: Dict[str, Bundle] = {}
        graph: Dict[str, set[str]] = {}
        by_key = {asset.logical_key: asset for asset in stylesheets}

        for asset in stylesheets:
            try:
                bundle = self.bundler.bundle(asset.path)
                references = bundle.local_keys(self.bundler.root)
            except (AssetIOError, StylesheetError) as exc:
                self.logger.error("Failed to bundle %s: %s", asset.logical_key, exc)
                failures.append(exc)
                continue
            bundles[asset.logical_key] = bundle
            graph[asset.logical_key] = {key for key in references if key in by_key}

        try:
            order = list(TopologicalSorter(graph).static_order())
        except CycleError as exc:
            failures.append(DependencyCycleError(exc.args[1]))
            return failures

        for key in order:
            bundle = bundles.get(key)
            if bundle is None:
                # Referenced stylesheet failed to bundle; its dependents fail on lookup.
                continue
            try:
                code = resolve_bundle(
                    bundle,
                    self.manifest,
                    root=self.bundler.root,
                    public_url=self.config.css.public_url,
                )
                self._publish(by_key[key], code.encode("utf-8"))
            except (AssetIOError, StylesheetError) as exc:
                self.logger.error("Failed to publish %s: %s", key, exc)
                failures.append(exc)
        return failures

    def _publish(self, asset: Asset, data: bytes) -> str:
        mode = self.mode
        published = published_name(
            asset.logical_key, data, hashed=mode.hashed, flatten=mode.flatten
        )
        self.manifest.register(asset.logical_key, published)
        target = self.config.dist_assets_dir / published
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as exc:
            raise AssetIOError(target, exc.strerror or str(exc)) from exc
        self.logger.debug("%s -> %s", asset.logical_key, published)
        return published

    @staticmethod
    def _read_bytes(path: Path) -> bytes:
        try:
            return path.read_bytes()
        except OSError as exc:
            raise AssetIOError(path, exc.strerror or str(exc)) from exc


def build(config: GlazeConfig) -> BuildResult:
    """Shortcut for ``Builder(config).build()``."""
    return Builder(config).build()


def write_env_file(result: BuildResult, path: Path) -> Path:
    lines = [f"{key}={value}" for key, value in sorted(result.environment().items())]
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


__all__ = [
    "BuildResult",
    "Builder",
    "ENV_ASSETS_DIR",
    "ENV_MANIFEST",
    "ENV_PUBLIC_DIR",
    "ENV_RELEASE_MODE",
    "build",
    "write_env_file",
]
