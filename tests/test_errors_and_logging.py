from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler

import pytest

from modhub.core.errors import ModhubError, ModuleCollisionError, PersistenceError, Severity, UnknownModuleError
from modhub.core.logger import get_logger, setup_logging


def test_error_carries_code_and_message():
    e = ModuleCollisionError("Module 'Blog' already exists", module="Blog")
    assert isinstance(e, ModhubError)
    assert e.code == "collision"
    assert str(e) == "Module 'Blog' already exists"
    assert e.context == {"module": "Blog"}
    with pytest.raises(ModhubError):
        raise UnknownModuleError(module="Ghost")


def test_to_dict_redacts_context():
    e = PersistenceError(path="/x/enabled.json", token="secret-value")
    d = e.to_dict()
    assert d["code"] == "persistence_failed"
    assert d["severity"] == Severity.CRITICAL.value
    assert d["recoverable"] is False
    assert d["context"] == {"path": "/x/enabled.json", "token": "***REDACTED***"}


@pytest.fixture
def clean_modhub_logger():
    logger = logging.getLogger("modhub")
    saved = (list(logger.handlers), logger.level, logger.propagate)
    logger.handlers = []
    yield logger
    for h in logger.handlers:
        h.close()
    logger.handlers, logger.level, logger.propagate = saved[0], saved[1], saved[2]


def test_setup_logging_is_idempotent(tmp_path, clean_modhub_logger):
    setup_logging(str(tmp_path / "logs"))
    setup_logging(str(tmp_path / "logs"))
    handlers = clean_modhub_logger.handlers
    assert sum(isinstance(h, RotatingFileHandler) for h in handlers) == 1
    assert len(handlers) == 2

    get_logger("modules.registry").info("hello from registry")
    for h in handlers:
        h.flush()
    text = (tmp_path / "logs" / "modhub.log").read_text(encoding="utf-8")
    assert "modhub.modules.registry" in text
    assert "hello from registry" in text
