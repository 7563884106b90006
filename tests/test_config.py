"""Tests for glaze.config."""

from __future__ import annotations

from pathlib import Path

import pytest

from glaze.config import (
    CONFIG_FILENAME,
    ConfigError,
    GlazeConfig,
    load_config,
    normalise_mode,
)
from tests._fixtures.tree_builder import AssetTreeBuilder


def test_defaults_without_config_file(tmp_path: Path) -> None:
    config = load_config(tmp_path, environ={})

    root = tmp_path.resolve()
    assert config.root == root
    assert config.assets_dir == root / "assets"
    assert config.public_dir == root / "public"
    assert config.out_dir == root / "dist"
    assert config.dist_assets_dir == root / "dist" / "public" / "assets"
    assert config.mode == "release"
    assert config.ignore_prefix == "_"
    assert config.release.hashed is True
    assert config.release.flatten is False
    assert config.css.public_url == "/"


def test_values_are_read_from_yaml(tree: AssetTreeBuilder) -> None:
    tree.write_config(
        """
        assets_dir: static
        out_dir: build
        out_assets_dir: static
        mode: dev
        jobs: 4
        ignore_prefix: "~"
        release:
          hashed: false
          flatten: "yes"
        css:
          minify: false
          public_url: /static/
        serve:
          host: 0.0.0.0
          port: 9000
          assets_prefix: /static
        """
    )

    config = load_config(tree.root, environ={})

    root = tree.root.resolve()
    assert config.assets_dir == root / "static"
    assert config.out_dir == root / "build"
    assert config.dist_assets_dir == root / "build" / "public" / "static"
    assert config.mode == "development"
    assert config.jobs == 4
    assert config.ignore_prefix == "~"
    assert config.release.hashed is False
    assert config.release.flatten is True
    assert config.css.minify is False
    assert config.css.public_url == "/static/"
    assert config.serve.host == "0.0.0.0"
    assert config.serve.port == 9000
    assert config.serve.assets_prefix == "/static"


def test_config_file_path_is_accepted(tree: AssetTreeBuilder) -> None:
    path = tree.write_config("out_dir: out\n")

    config = load_config(path, environ={})

    assert config.out_dir == tree.root.resolve() / "out"


def test_public_dir_can_be_disabled(tree: AssetTreeBuilder) -> None:
    tree.write_config("public_dir: null\nignore_prefix: ''\n")

    config = load_config(tree.root, environ={})

    assert config.public_dir is None
    assert config.ignore_prefix is None


def test_mode_environment_override_wins(tree: AssetTreeBuilder) -> None:
    tree.write_config("mode: development\n")

    config = load_config(tree.root, environ={"GLAZE_MODE": "production"})

    assert config.mode == "release"
    assert config.release_mode.release is True


def test_release_mode_reflects_toggles(tmp_path: Path) -> None:
    config = GlazeConfig.defaults(tmp_path)
    config.mode = "development"
    assert config.release_mode.hashed is False

    config.mode = "release"
    config.release.flatten = True
    mode = config.release_mode
    assert (mode.release, mode.hashed, mode.flatten) == (True, True, True)


@pytest.mark.parametrize(
    "text",
    [
        "- just\n- a list\n",
        "assets_dir: [unclosed\n",
        "jobs: 0\n",
        "jobs: many\n",
        "release:\n  hashed: maybe\n",
        "out_assets_dir: ../escape\n",
        "out_public_dir: /abs\n",
        "serve:\n  assets_prefix: assets\n",
        "mode: staging\n",
    ],
)
def test_invalid_config_raises(tree: AssetTreeBuilder, text: str) -> None:
    tree.write_config(text)

    with pytest.raises(ConfigError):
        load_config(tree.root, environ={})


def test_empty_config_file_uses_defaults(tree: AssetTreeBuilder) -> None:
    (tree.root / CONFIG_FILENAME).write_text("\n", encoding="utf-8")

    config = load_config(tree.root, environ={})

    assert config.assets_dir == tree.root.resolve() / "assets"


def test_normalise_mode() -> None:
    assert normalise_mode(" Release ") == "release"
    assert normalise_mode("debug") == "development"
    with pytest.raises(ConfigError):
        normalise_mode("")
