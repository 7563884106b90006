"""Tests for glaze.manifest."""

from __future__ import annotations

import json
import threading
from pathlib import Path

import pytest

from glaze.errors import ManifestConflictError, ManifestSerializationError
from glaze.manifest import Manifest


def test_register_and_lookup() -> None:
    manifest = Manifest()
    manifest.register("css/style.css", "css/style-a1b2c3d4.css")

    assert manifest.lookup("css/style.css") == "css/style-a1b2c3d4.css"
    assert manifest.lookup("css/missing.css") is None
    assert "css/style.css" in manifest
    assert len(manifest) == 1


def test_register_is_idempotent_for_identical_entries() -> None:
    manifest = Manifest()
    manifest.register("img/cat.jpeg", "img/cat-1.jpeg")
    manifest.register("img/cat.jpeg", "img/cat-1.jpeg")

    assert manifest.items() == [("img/cat.jpeg", "img/cat-1.jpeg")]


def test_register_rejects_a_second_published_path_for_a_key() -> None:
    manifest = Manifest()
    manifest.register("img/cat.jpeg", "img/cat-1.jpeg")

    with pytest.raises(ManifestConflictError):
        manifest.register("img/cat.jpeg", "img/cat-2.jpeg")
    assert manifest.lookup("img/cat.jpeg") == "img/cat-1.jpeg"


def test_register_rejects_two_keys_claiming_one_published_path() -> None:
    manifest = Manifest()
    manifest.register("a/logo.png", "logo.png")

    with pytest.raises(ManifestConflictError) as excinfo:
        manifest.register("b/logo.png", "logo.png")
    assert "a/logo.png" in str(excinfo.value)


def test_serialize_is_a_sorted_flat_json_object() -> None:
    manifest = Manifest({"z.js": "z-1.js", "a.css": "a-2.css"})

    payload = manifest.serialize()

    assert json.loads(payload) == {"a.css": "a-2.css", "z.js": "z-1.js"}
    assert payload.index(b'"a.css"') < payload.index(b'"z.js"')


def test_write_and_load_round_trip(tmp_path: Path) -> None:
    manifest = Manifest({"css/style.css": "css/style-1.css"})
    path = manifest.write(tmp_path / "out" / "glaze-manifest.json")

    loaded = Manifest.load(path)

    assert loaded.as_dict() == {"css/style.css": "css/style-1.css"}


@pytest.mark.parametrize("content", ["[]", '{"a": 1}', "not json"])
def test_load_rejects_malformed_manifest(tmp_path: Path, content: str) -> None:
    path = tmp_path / "glaze-manifest.json"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(ManifestSerializationError):
        Manifest.load(path)


def test_write_failure_is_a_serialization_error(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("file, not a directory", encoding="utf-8")

    with pytest.raises(ManifestSerializationError):
        Manifest({"a": "b"}).write(blocker / "glaze-manifest.json")


def test_concurrent_registration_keeps_every_entry() -> None:
    manifest = Manifest()

    def _register(start: int) -> None:
        for index in range(start, start + 200):
            manifest.register(f"img/{index}.png", f"img/{index}-x.png")

    threads = [threading.Thread(target=_register, args=(n * 200,)) for n in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(manifest) == 1600
