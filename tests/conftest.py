from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator

import pytest

from tests._fixtures.tree_builder import AssetTreeBuilder


@pytest.fixture
def tree(tmp_path: Path) -> AssetTreeBuilder:
    """Provide a project with empty assets/ and public/ directories under tmp_path."""
    return AssetTreeBuilder(tmp_path)


@pytest.fixture(autouse=True)
def _reset_glaze_logger() -> Iterator[None]:
    # cli.main() installs handlers bound to the stream captured for that test.
    yield
    logger = logging.getLogger("glaze")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
