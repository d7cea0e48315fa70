from __future__ import annotations

import logging
from pathlib import Path

import pytest


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    """Mark tests under tests/unit as unit tests and tests/smoke as smoke tests."""
    for item in items:
        path = f"/{Path(str(item.fspath)).as_posix()}"
        if "/tests/unit/" in path:
            item.add_marker(pytest.mark.unit)
        elif "/tests/smoke/" in path:
            item.add_marker(pytest.mark.smoke)


@pytest.fixture
def write_catalog(tmp_path):
    """Write catalog lines to a file and return its path."""

    def _write(lines, name="barcodes.txt"):
        path = tmp_path / name
        path.write_text("".join(f"{line}\n" for line in lines), encoding="utf-8")
        return path

    return _write


@pytest.fixture(autouse=True)
def _reset_cbmerge_logger():
    """Undo setup_logging() so caplog keeps seeing cbmerge records."""
    logger = logging.getLogger("cbmerge")
    yield
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
