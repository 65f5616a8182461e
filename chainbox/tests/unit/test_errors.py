"""
Unit tests for the chainbox typed error classes.
"""

import pytest

from chainbox.commands.errors import (
    ChainboxError,
    ChainIOError,
    ConfigurationError,
    ConflictError,
    ContainerRuntimeError,
    DependencyError,
    NotFoundError,
    ValidationError,
)


class TestChainboxError:
    """Tests for the base ChainboxError class."""

    def test_basic_error(self):
        """Test basic error creation with message only."""
        error = ChainboxError("Something went wrong")
        assert str(error) == "Something went wrong"
        assert error.message == "Something went wrong"
        assert error.code is None
        assert error.details == {}

    def test_error_with_code(self):
        error = ChainboxError("Something went wrong", code="ERR_001")
        assert str(error) == "[ERR_001] Something went wrong"

    def test_to_dict(self):
        """Test error serialization to dictionary."""
        error = ChainboxError("Test error", code="TEST_CODE", details={"key": "value"})
        assert error.to_dict() == {
            "type": "ChainboxError",
            "message": "Test error",
            "code": "TEST_CODE",
            "details": {"key": "value"},
        }

    def test_to_dict_minimal(self):
        assert ChainboxError("Test error").to_dict() == {
            "type": "ChainboxError",
            "message": "Test error",
        }


class TestLifecycleErrors:
    @pytest.mark.parametrize(
        "error, code, key, value",
        [
            (NotFoundError("missing", name="devnet"), "NOT_FOUND", "name", "devnet"),
            (ConflictError("taken", name="devnet"), "CONFLICT", "name", "devnet"),
            (
                DependencyError("down", dependency="keys"),
                "DEPENDENCY_NOT_RUNNING",
                "dependency",
                "keys",
            ),
            (ChainIOError("io", path="/g.json"), "IO_FAILED", "path", "/g.json"),
            (
                ContainerRuntimeError("boom", container="c1"),
                "RUNTIME_FAILED",
                "container",
                "c1",
            ),
        ],
    )
    def test_code_and_details(self, error, code, key, value):
        assert error.code == code
        assert error.details[key] == value
        assert isinstance(error, ChainboxError)
        assert str(error).startswith(f"[{code}] ")

    def test_dependency_attribute(self):
        error = DependencyError("Dependency keys is not running", dependency="keys")
        assert error.dependency == "keys"

    def test_optional_context_is_omitted(self):
        assert NotFoundError("missing").details == {}
        assert ContainerRuntimeError("boom").details == {}

    def test_cause_is_kept(self):
        try:
            try:
                raise OSError("disk")
            except OSError as e:
                raise ChainIOError("write failed", path="/x") from e
        except ChainIOError as error:
            assert isinstance(error.__cause__, OSError)


class TestValidationAndConfiguration:
    def test_validation_error(self):
        error = ValidationError("bad number", field="container_number", value=0)
        assert error.code == "VALIDATION_FAILED"
        assert error.details == {"field": "container_number", "value": 0}

    def test_validation_error_custom_code(self):
        assert ValidationError("x", code="CUSTOM").code == "CUSTOM"

    def test_configuration_error(self):
        error = ConfigurationError("bad toml", config_file="/home/x/config.toml")
        assert error.code == "CONFIGURATION_ERROR"
        assert error.config_file == "/home/x/config.toml"
        assert error.details["config_file"] == "/home/x/config.toml"
