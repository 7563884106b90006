"""Tests for glaze.cli."""

from __future__ import annotations

import json

import pytest

from glaze import cli
from glaze.manifest import MANIFEST_FILENAME
from tests._fixtures.tree_builder import AssetTreeBuilder


@pytest.fixture(autouse=True)
def _no_mode_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("GLAZE_MODE", raising=False)


def test_parser_accepts_verbosity_before_and_after_command() -> None:
    parser = cli._build_parser()

    args = parser.parse_args(["-v", "build", "site"])
    assert args.verbose is True
    assert args.quiet is False
    assert args.path == "site"

    args = parser.parse_args(["build", "-q", "--no-hash", "--flatten", "--jobs", "3"])
    assert args.quiet is True
    assert args.verbose is False
    assert (args.no_hash, args.flatten, args.jobs) == (True, True, 3)
    assert args.path == "."


def test_release_and_development_flags_are_exclusive() -> None:
    parser = cli._build_parser()

    assert parser.parse_args(["build", "--development"]).mode == "development"
    with pytest.raises(SystemExit):
        parser.parse_args(["build", "--release", "--development"])


def test_build_command_writes_manifest_and_env_file(
    tree: AssetTreeBuilder, capsys: pytest.CaptureFixture[str]
) -> None:
    tree.write_assets({"css/site.css": "body { color: red; }\n"})
    env_file = tree.root / "build.env"

    cli.main(["build", str(tree.root), "--no-hash", "--env-file", str(env_file)])

    manifest = json.loads((tree.out_dir / MANIFEST_FILENAME).read_text(encoding="utf-8"))
    assert manifest == {"css/site.css": "css/site.css"}
    assert "GLAZE_RELEASE_MODE=release" in env_file.read_text(encoding="utf-8").splitlines()
    assert "Published 1 asset(s)" in capsys.readouterr().out


def test_development_build_leaves_no_output(
    tree: AssetTreeBuilder, capsys: pytest.CaptureFixture[str]
) -> None:
    tree.write_assets({"app.js": "1"})

    cli.main(["build", str(tree.root), "--development"])

    assert not tree.out_dir.exists()
    assert "Development build" in capsys.readouterr().out


def test_build_failure_exits_with_status_one(
    tree: AssetTreeBuilder, capsys: pytest.CaptureFixture[str]
) -> None:
    tree.write_assets({"site.css": ".x { background: url(missing.png); }\n"})

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["build", str(tree.root)])

    assert excinfo.value.code == 1
    assert "glaze build failed" in capsys.readouterr().err


def test_invalid_jobs_is_reported(tree: AssetTreeBuilder) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["build", str(tree.root), "--jobs", "0"])

    assert excinfo.value.code == 1


def test_resolve_command_prints_url_path(
    tree: AssetTreeBuilder, capsys: pytest.CaptureFixture[str]
) -> None:
    manifest_path = tree.root / MANIFEST_FILENAME
    manifest_path.write_text(json.dumps({"js/app.js": "js/app-89abcdef.js"}), encoding="utf-8")

    cli.main(["resolve", "js/app.js", str(tree.root), "--manifest", str(manifest_path)])
    assert capsys.readouterr().out.strip() == "/assets/js/app-89abcdef.js"

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["resolve", "js/other.js", str(tree.root), "--manifest", str(manifest_path)])
    assert excinfo.value.code == 1
    assert "not found in manifest" in capsys.readouterr().err


def test_resolve_without_manifest_uses_logical_key(
    tree: AssetTreeBuilder, capsys: pytest.CaptureFixture[str]
) -> None:
    cli.main(
        ["resolve", "img/cat.jpeg", str(tree.root), "--manifest", str(tree.root / "missing.json")]
    )

    assert capsys.readouterr().out.strip() == "/assets/img/cat.jpeg"


def test_resolve_reads_manifest_of_given_project(
    tree: AssetTreeBuilder, capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch
) -> None:
    tree.write_config(
        """
        out_dir: build
        serve:
          assets_prefix: /static
        """
    )
    tree.write_assets({"js/app.js": "1"})
    cli.main(["build", str(tree.root)])
    capsys.readouterr()
    monkeypatch.chdir(tree.root.parent)

    cli.main(["resolve", "js/app.js", str(tree.root)])

    manifest = json.loads((tree.root / "build" / MANIFEST_FILENAME).read_text(encoding="utf-8"))
    assert capsys.readouterr().out.strip() == f"/static/{manifest['js/app.js']}"


def test_resolve_parser_defaults_to_current_project() -> None:
    args = cli._build_parser().parse_args(["resolve", "css/site.css"])

    assert (args.key, args.path, args.manifest) == ("css/site.css", ".", None)
