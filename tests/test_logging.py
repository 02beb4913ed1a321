"""Tests for logging configuration."""

import json
import logging
import sys
from datetime import datetime
from unittest.mock import patch

import pytest

from assistant_search.config import Environment, Settings
from assistant_search.logging_config import (
    DevFormatter,
    JSONFormatter,
    SearchIdFilter,
    get_logger,
    search_id_var,
    setup_logging,
)


def make_record(msg: str = "Unified search completed", level: int = logging.INFO) -> logging.LogRecord:
    return logging.LogRecord(
        name="assistant_search.retrieval.orchestrator",
        level=level,
        pathname="orchestrator.py",
        lineno=42,
        msg=msg,
        args=(),
        exc_info=None,
    )


class TestJSONFormatter:
    """Tests for JSON log formatter."""

    def test_basic_fields(self) -> None:
        """Level, logger, message and location are always present."""
        data = json.loads(JSONFormatter().format(make_record()))

        assert data["level"] == "INFO"
        assert data["logger"] == "assistant_search.retrieval.orchestrator"
        assert data["message"] == "Unified search completed"
        assert data["file"] == "orchestrator.py:42"
        assert data["search_id"] == "-"
        assert "timestamp" in data

    def test_extra_fields_collected(self) -> None:
        """Fields passed through extra= end up under "extra"."""
        logger = get_logger("test.extra")
        records: list[logging.LogRecord] = []
        handler = logging.Handler()
        handler.emit = records.append  # type: ignore[method-assign]
        logger.addHandler(handler)
        try:
            logger.warning("Source faq failed", extra={"source": "faq", "error_type": "KeyError"})
        finally:
            logger.removeHandler(handler)

        data = json.loads(JSONFormatter().format(records[0]))
        assert data["extra"] == {"source": "faq", "error_type": "KeyError"}

    def test_no_extra_key_without_extras(self) -> None:
        data = json.loads(JSONFormatter().format(make_record()))
        assert "extra" not in data

    def test_exception_included(self) -> None:
        """Exception text is serialized with the record."""
        try:
            raise ValueError("vector store down")
        except ValueError:
            record = make_record("Vector search failed", logging.ERROR)
            record.exc_info = sys.exc_info()

        data = json.loads(JSONFormatter().format(record))
        assert "ValueError: vector store down" in data["exception"]

    def test_non_serializable_extra(self) -> None:
        """Values json cannot encode are stringified."""
        record = make_record()
        record.last_sync = datetime(2026, 1, 1)

        data = json.loads(JSONFormatter().format(record))
        assert data["extra"]["last_sync"] == "2026-01-01 00:00:00"


class TestSearchIdFilter:
    """Tests for search id propagation."""

    def test_search_id_attached(self) -> None:
        """The id set for the current search is copied onto the record."""
        record = make_record()
        token = search_id_var.set("abc123")
        try:
            SearchIdFilter().filter(record)
        finally:
            search_id_var.reset(token)

        data = json.loads(JSONFormatter().format(record))
        assert data["search_id"] == "abc123"
        assert "extra" not in data

    def test_placeholder_outside_search(self) -> None:
        record = make_record()
        SearchIdFilter().filter(record)
        assert record.search_id == "-"


class TestDevFormatter:
    """Tests for development formatter."""

    def test_single_line(self) -> None:
        """Level, search id, logger and message on one line."""
        record = make_record("Source website timed out", logging.WARNING)
        record.search_id = "abc123"

        output = DevFormatter().format(record)

        assert output.endswith(
            "| WARNING  | abc123 | assistant_search.retrieval.orchestrator"
            " | Source website timed out"
        )

    def test_without_filter(self) -> None:
        """Records that skipped the filter still format."""
        assert "| - |" in DevFormatter().format(make_record())


class TestSetupLogging:
    """Tests for logging setup."""

    @pytest.mark.parametrize(
        ("environment", "formatter"),
        [
            (Environment.PRODUCTION, JSONFormatter),
            (Environment.STAGING, JSONFormatter),
            (Environment.DEVELOPMENT, DevFormatter),
        ],
    )
    def test_formatter_by_environment(
        self, environment: Environment, formatter: type[logging.Formatter]
    ) -> None:
        """JSON everywhere except development."""
        with patch(
            "assistant_search.logging_config.get_settings",
            return_value=Settings(environment=environment),
        ):
            root = setup_logging()

        assert root is logging.getLogger()
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, formatter)
        assert any(isinstance(f, SearchIdFilter) for f in root.handlers[0].filters)

    def test_overrides(self) -> None:
        """Explicit level and format win over settings."""
        with patch(
            "assistant_search.logging_config.get_settings",
            return_value=Settings(environment=Environment.DEVELOPMENT),
        ):
            root = setup_logging(level="DEBUG", json_output=True)

        assert root.level == logging.DEBUG
        assert isinstance(root.handlers[0].formatter, JSONFormatter)

    def test_quiets_client_libraries(self) -> None:
        setup_logging(level="DEBUG", json_output=False)
        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("qdrant_client").level == logging.WARNING

    def test_child_inherits_level(self) -> None:
        setup_logging(level="WARNING", json_output=False)
        assert get_logger("assistant_search.retrieval").getEffectiveLevel() == logging.WARNING
