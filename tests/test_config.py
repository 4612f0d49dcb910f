"""
Tests for settings, logging configuration and ValidationResult.
"""

import sys

import pytest
from loguru import logger

from flowpipe import ValidationResult, configure, get_settings, reset_settings
from flowpipe import logging_config
from flowpipe.config import FlowpipeSettings
from flowpipe.core import Flowpipe


@pytest.mark.unit
class TestSettings:
    """Tests for FlowpipeSettings and the module helpers."""

    def test_defaults(self):
        """Test defaults without environment variables."""
        settings = get_settings()

        assert settings.step_namespaces == ()
        assert settings.tracing_enabled is True
        assert settings.default_tracer is None
        assert settings.groups_enabled is True
        assert settings.warn_on_group_overwrite is True

    def test_from_env(self, monkeypatch):
        """Test FLOWPIPE_* variables are parsed."""
        monkeypatch.setenv("FLOWPIPE_STEP_NAMESPACE", "app.steps, shared.steps,")
        monkeypatch.setenv("FLOWPIPE_TRACING_ENABLED", "off")
        monkeypatch.setenv("FLOWPIPE_DEFAULT_TRACER", " Debug ")
        monkeypatch.setenv("FLOWPIPE_GROUPS_ENABLED", "0")

        settings = FlowpipeSettings.from_env()

        assert settings.step_namespaces == ("app.steps", "shared.steps")
        assert settings.tracing_enabled is False
        assert settings.default_tracer == "debug"
        assert settings.groups_enabled is False

    def test_unrecognised_flag_keeps_default(self, monkeypatch):
        """Test garbage flag values fall back to the default."""
        monkeypatch.setenv("FLOWPIPE_TRACING_ENABLED", "maybe")

        assert FlowpipeSettings.from_env().tracing_enabled is True

    def test_configure_and_reset(self, monkeypatch):
        """Test overrides last until reset_settings()."""
        configure(step_namespaces=["app.steps"], tracing_enabled=False)

        assert get_settings().step_namespaces == ("app.steps",)
        assert get_settings().tracing_enabled is False

        monkeypatch.setenv("FLOWPIPE_TRACING_ENABLED", "true")
        reset_settings()

        assert get_settings().tracing_enabled is True
        assert get_settings().step_namespaces == ()

    def test_settings_are_frozen(self):
        """Test settings objects are immutable."""
        with pytest.raises(AttributeError):
            get_settings().tracing_enabled = False


@pytest.mark.unit
class TestConfigureLogging:
    """Tests for configure_logging."""

    @pytest.fixture(autouse=True)
    def restore_logger(self, monkeypatch):
        monkeypatch.setattr(logging_config, "_configured", False)
        monkeypatch.delenv("FLOWPIPE_DISABLE_AUTO_LOGGING", raising=False)
        monkeypatch.delenv("FLOWPIPE_LOG_FILE", raising=False)
        monkeypatch.delenv("FLOWPIPE_LOG_LEVEL", raising=False)
        yield
        logger.remove()
        logger.add(sys.stderr)

    def test_disabled_by_environment(self, monkeypatch):
        """Test FLOWPIPE_DISABLE_AUTO_LOGGING skips configuration."""
        monkeypatch.setenv("FLOWPIPE_DISABLE_AUTO_LOGGING", "1")

        assert logging_config.configure_logging() is None
        assert logging_config._configured is False

    def test_console_only_by_default(self):
        """Test no file sink without a log file."""
        assert logging_config.configure_logging() is None
        assert logging_config._configured is True

        # Second call is a no-op
        assert logging_config.configure_logging() is None

    def test_file_sink_from_environment(self, monkeypatch, tmp_path):
        """Test FLOWPIPE_LOG_FILE adds a file sink."""
        target = tmp_path / "logs" / "flowpipe.log"
        monkeypatch.setenv("FLOWPIPE_LOG_FILE", str(target))

        assert logging_config.configure_logging() == target
        assert target.parent.is_dir()

    def test_file_records_carry_flow_id(self, tmp_path):
        """Test records written during a run show the run id."""
        target = tmp_path / "run.log"
        logging_config.configure_logging(level="WARNING", log_file=target, force=True)

        def chatty(payload, next):
            logger.debug("inside step")
            return next(payload)

        pipeline = Flowpipe.make().send("a").through([chatty])
        pipeline.then_return()
        logger.remove()

        lines = [line for line in target.read_text(encoding="utf-8").splitlines() if "inside step" in line]
        assert len(lines) == 1
        assert f"flow={pipeline.context.id}" in lines[0]

        outside = [line for line in target.read_text(encoding="utf-8").splitlines() if "logging configured" in line]
        assert "flow=-" in outside[0]


@pytest.mark.unit
class TestValidationResult:
    """Tests for ValidationResult."""

    def test_valid(self):
        """Test a result without errors."""
        result = ValidationResult("checkout", warnings=["Step 3 is slow"])

        assert result.is_valid
        assert result.has_warnings
        assert result.error_count == 0
        assert result.warning_count == 1
        assert result.first_error is None

    def test_invalid(self):
        """Test a result with errors."""
        result = ValidationResult("checkout", errors=["Step 1 has no type", "Step 2 has no type"])

        assert not result.is_valid
        assert not result.has_warnings
        assert result.error_count == 2
        assert result.first_error == "Step 1 has no type"

    def test_immutable(self):
        """Test lists are frozen into tuples."""
        errors = ["boom"]
        result = ValidationResult("flow", errors=errors)
        errors.append("later")

        assert result.errors == ("boom",)
        with pytest.raises(AttributeError):
            result.flow_name = "other"

    def test_to_dict(self):
        """Test dictionary export."""
        result = ValidationResult("flow", errors=["e"], warnings=["w"])

        assert result.to_dict() == {
            'flow': "flow",
            'valid': False,
            'errors': ["e"],
            'warnings': ["w"],
        }
