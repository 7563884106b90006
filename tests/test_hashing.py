"""Tests for glaze.hashing."""

from __future__ import annotations

import hashlib

from glaze.hashing import apply_digest, content_digest, published_name


def test_content_digest_is_short_and_deterministic() -> None:
    data = b"body{color:red}"

    digest = content_digest(data)

    assert digest == content_digest(data)
    assert len(digest) == 8
    assert digest == hashlib.blake2b(data, digest_size=4).hexdigest()


def test_content_digest_changes_with_a_single_byte() -> None:
    assert content_digest(b"body{color:red}") != content_digest(b"body{color:ree}")


def test_apply_digest_splices_before_final_extension() -> None:
    assert apply_digest("style.css", "a1b2c3d4") == "style-a1b2c3d4.css"
    assert apply_digest("archive.tar.gz", "a1b2c3d4") == "archive.tar-a1b2c3d4.gz"


def test_apply_digest_without_extension() -> None:
    assert apply_digest("LICENSE", "a1b2c3d4") == "LICENSE-a1b2c3d4"
    assert apply_digest(".htaccess", "a1b2c3d4") == ".htaccess-a1b2c3d4"


def test_apply_digest_twice_is_unambiguous() -> None:
    once = apply_digest("logo.png", "11111111")
    twice = apply_digest(once, "22222222")

    assert twice == "logo-11111111-22222222.png"
    # A different original name never produces the same double-spliced result.
    assert apply_digest(apply_digest("logo-11111111.png", "22222222"), "33333333") != twice


def test_published_name_respects_hash_and_flatten_toggles() -> None:
    data = b"\x89PNG"
    digest = content_digest(data)

    assert published_name("img/cat.png", data, hashed=False, flatten=False) == "img/cat.png"
    assert published_name("img/cat.png", data, hashed=True, flatten=False) == f"img/cat-{digest}.png"
    assert published_name("img/cat.png", data, hashed=True, flatten=True) == f"cat-{digest}.png"
    assert published_name("img/cat.png", data, hashed=False, flatten=True) == "cat.png"
    assert published_name("cat.png", data, hashed=False, flatten=False) == "cat.png"
