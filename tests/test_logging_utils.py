"""Tests for the loguru bridge."""

import logging

import pytest
from loguru import logger as loguru_logger

from likedmirror.config import load_config
from likedmirror.container import configure_logging
from likedmirror.core.logging_utils import (
    InterceptHandler,
    generate_correlation_id,
    setup_json_logging,
)


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    loguru_logger.remove()
    root.handlers[:] = handlers
    root.setLevel(level)


def test_intercept_handler_forwards_extra_fields():
    messages = []
    sink_id = loguru_logger.add(messages.append, format="{message}", level="DEBUG")
    log = logging.getLogger("likedmirror.test_intercept")
    log.addHandler(InterceptHandler())
    log.setLevel(logging.DEBUG)
    log.propagate = False
    try:
        log.info("liked_tracks_unchanged", extra={"correlation_id": "abc123", "total": 120})
    finally:
        loguru_logger.remove(sink_id)
        log.handlers.clear()

    assert len(messages) == 1
    record = messages[0].record
    assert record["message"] == "liked_tracks_unchanged"
    assert record["level"].name == "INFO"
    assert record["extra"]["correlation_id"] == "abc123"
    assert record["extra"]["total"] == 120
    assert record["extra"]["logger_name"] == "likedmirror.test_intercept"


def test_setup_json_logging_installs_bridge(restore_logging, tmp_path):
    setup_json_logging("DEBUG", log_file=str(tmp_path / "mirror.log"))

    root = logging.getLogger()
    assert any(isinstance(h, InterceptHandler) for h in root.handlers)
    assert root.level == logging.DEBUG
    assert logging.getLogger("httpx").level == logging.WARNING


def test_correlation_ids_are_short_and_unique():
    ids = {generate_correlation_id() for _ in range(50)}
    assert len(ids) == 50
    assert all(len(cid) == 12 for cid in ids)


def test_configure_logging_from_runtime_config(restore_logging, tmp_path):
    config = load_config(runtime={"log_level": "warn", "log_file": str(tmp_path / "sync.log")})

    configure_logging(config)

    assert config.runtime.log_level == "WARNING"
    assert logging.getLogger().level == logging.WARNING
