import logging

import pytest

from cbmerge.logging_utils import get_logger, setup_logging


def test_setup_logging_installs_handlers_once(tmp_path):
    log_file = tmp_path / "logs" / "cbmerge.log"

    setup_logging(level="DEBUG", log_file=log_file)
    setup_logging(level="DEBUG", log_file=log_file)

    logger = logging.getLogger("cbmerge")
    file_handlers = [h for h in logger.handlers if isinstance(h, logging.FileHandler)]
    assert len(file_handlers) == 1
    assert logger.level == logging.DEBUG
    assert logger.propagate is False

    get_logger("cbmerge.merge.catalog").debug("catalog message")
    for handler in logger.handlers:
        handler.flush()
    assert "catalog message" in log_file.read_text()


def test_setup_logging_reconfigure_replaces_handlers():
    setup_logging()
    setup_logging(level=logging.WARNING, reconfigure=True)

    logger = logging.getLogger("cbmerge")
    assert len(logger.handlers) == 1
    assert logger.level == logging.WARNING


def test_unknown_level_raises():
    with pytest.raises(ValueError):
        setup_logging(level="LOUD")
