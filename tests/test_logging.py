"""
Tests for logging configuration and repository log output.

Tests follow AAA (Arrange, Act, Assert) pattern.
"""

import io
import json
import logging

import pytest

from baserepo.core.logging import JSONFormatter, get_logger, setup_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    root.handlers = handlers
    root.setLevel(level)


def make_logger(name):
    stream = io.StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(JSONFormatter())
    logger = logging.getLogger(name)
    logger.handlers = [handler]
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    return logger, stream


class TestJSONFormatter:

    def test_basic_message(self):
        # Arrange
        logger, stream = make_logger("test.json.basic")

        # Act
        logger.info("Created %s", "Post")

        # Assert
        data = json.loads(stream.getvalue().strip())
        assert data["level"] == "INFO"
        assert data["message"] == "Created Post"
        assert data["logger"] == "test.json.basic"
        assert "timestamp" in data

    def test_extra_fields_become_keys(self):
        logger, stream = make_logger("test.json.extra")

        logger.info("Deleted", extra={"model": "Post", "operation": "delete", "count": 2})

        data = json.loads(stream.getvalue().strip())
        assert data["model"] == "Post"
        assert data["operation"] == "delete"
        assert data["count"] == 2
        assert "lineno" not in data

    def test_exception_info(self):
        logger, stream = make_logger("test.json.exc")

        try:
            raise RuntimeError("boom")
        except RuntimeError:
            logger.exception("Failed")

        data = json.loads(stream.getvalue().strip())
        assert "RuntimeError: boom" in data["exception"]


class TestSetupLogging:

    def test_json_handler(self, restore_root_logger):
        setup_logging(level="debug", json_format=True)

        assert restore_root_logger.level == logging.DEBUG
        assert len(restore_root_logger.handlers) == 1
        assert isinstance(restore_root_logger.handlers[0].formatter, JSONFormatter)

    def test_plain_handler_from_settings(self, restore_root_logger):
        setup_logging()

        assert restore_root_logger.level == logging.INFO
        assert not isinstance(restore_root_logger.handlers[0].formatter, JSONFormatter)

    def test_get_logger(self):
        assert get_logger("baserepo.x") is logging.getLogger("baserepo.x")


class TestRepositoryLogging:

    def test_writes_are_logged_with_context(self, posts, caplog):
        caplog.set_level(logging.INFO, logger="baserepo")

        created = posts.create({"title": "hello"})
        posts.delete(created["id"])

        records = [r for r in caplog.records if r.name == "baserepo.repositories.base"]
        assert [r.operation for r in records] == ["create", "delete"]
        assert records[0].model == "Post"
        assert records[0].record_id == created["id"]
        assert records[1].count == 1

    def test_reads_log_at_debug(self, authors, caplog):
        caplog.set_level(logging.DEBUG, logger="baserepo")

        authors.find(1)

        record = next(r for r in caplog.records if getattr(r, "operation", None) == "find")
        assert record.levelno == logging.DEBUG
        assert record.record_id == 1
