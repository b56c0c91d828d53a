"""
Tests for validators, row helpers and configuration.
"""

import logging

import pytest

from simplerdbms.config import Settings, configure_logging
from simplerdbms.utils.exceptions import InvalidIdentifierError, ParseError
from simplerdbms.utils.row_utils import get_column_value, map_to_row, project_columns, row_to_map
from simplerdbms.utils.validators import is_null_text, quote_string, validate_identifier


class TestValidators:
    """Test identifier and NULL helpers."""

    def test_valid_identifiers(self):
        """Test names that are accepted."""
        assert validate_identifier("users")
        assert validate_identifier("_tmp1")
        assert validate_identifier("a" * 64)

    def test_invalid_identifiers(self):
        """Test names that are rejected."""
        for name in ("", "1abc", "bad-name", "a" * 65, "select", "Table"):
            with pytest.raises(InvalidIdentifierError):
                validate_identifier(name)

    def test_is_null_text(self):
        """Test the spellings of NULL."""
        assert is_null_text(None)
        assert is_null_text("")
        assert is_null_text("  null ")
        assert not is_null_text("nil")
        assert not is_null_text("0")

    def test_quote_string(self):
        """Test quoting with escaped single quotes."""
        assert quote_string("it's") == "'it\\'s'"


class TestRowUtils:
    """Test row conversions."""

    def test_row_map_conversions(self):
        """Test positional and keyed row forms."""
        assert row_to_map(["id", "name"], ["1", "a"]) == {"id": "1", "name": "a"}
        assert map_to_row(["id", "name"], {"NAME": "a"}) == ["NULL", "a"]

    def test_project_columns(self):
        """Test projection, including unknown columns."""
        assert project_columns(["id", "name"], ["1", "a"], ["NAME", "id"]) == ["a", "1"]
        assert project_columns(["id"], ["1"], ["age"]) == [""]

    def test_get_column_value(self):
        """Test qualified and unqualified lookups."""
        row = {"id": 1, "t.id": 2}
        assert get_column_value(row, "ID") == 1
        assert get_column_value(row, "id", "T") == 2
        assert get_column_value(row, "id", "other") == 1
        with pytest.raises(KeyError):
            get_column_value(row, "missing")


class TestExceptions:
    """Test exception messages."""

    def test_parse_error_fields(self):
        """Test that ParseError keeps its position details."""
        error = ParseError("FROM", "IDENTIFIER", "x", 2, 7)
        assert (error.expected, error.actual_text, error.line, error.column) == ("FROM", "x", 2, 7)
        assert str(error) == 'Expected FROM but got IDENTIFIER ("x") at line 2 col 7'


class TestSettings:
    """Test environment configuration and logging setup."""

    def teardown_method(self):
        """Detach handlers installed by configure_logging."""
        logger = logging.getLogger("simplerdbms")
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()

    def test_defaults(self, monkeypatch):
        """Test defaults when no variables are set."""
        for name in ("SIMPLERDBMS_DATA_DIR", "SIMPLERDBMS_LOG_LEVEL", "SIMPLERDBMS_LOG_FILE"):
            monkeypatch.delenv(name, raising=False)
        settings = Settings.from_env()
        assert settings.data_dir == "./data"
        assert settings.log_level == "INFO"
        assert settings.log_file == "./simplerdbms.log"

    def test_from_env(self, monkeypatch):
        """Test overrides from the environment."""
        monkeypatch.setenv("SIMPLERDBMS_DATA_DIR", "/tmp/db")
        monkeypatch.setenv("SIMPLERDBMS_LOG_LEVEL", "debug")
        monkeypatch.setenv("SIMPLERDBMS_LOG_FILE", "")
        settings = Settings.from_env()
        assert settings.data_dir == "/tmp/db"
        assert settings.log_level == "DEBUG"
        assert settings.log_file is None

    def test_configure_logging(self, tmp_path):
        """Test handler installation and the log file."""
        log_file = tmp_path / "db.log"
        configure_logging(Settings(data_dir=str(tmp_path), log_level="DEBUG", log_file=str(log_file)))
        logger = logging.getLogger("simplerdbms")
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 2

        logging.getLogger("simplerdbms.test").info("hello")
        for handler in logger.handlers:
            handler.flush()
        assert "[INFO] simplerdbms.test: hello" in log_file.read_text()

        configure_logging(Settings(log_level="WARNING", log_file=None))
        assert len(logger.handlers) == 1

    def test_configure_logging_bad_level(self):
        """Test that unknown level names are rejected."""
        with pytest.raises(ValueError):
            configure_logging(Settings(log_level="LOUD", log_file=None))
