"""Unit tests for logging configuration."""

import logging
import os
import sys
from unittest.mock import patch

import pytest

from imagemcp.logging_config import (
    configure_logging,
    get_logger,
    get_verbosity_from_env,
    log_prompts,
    set_verbosity,
)


@pytest.mark.unit
class TestSetVerbosity:
    """Test set_verbosity level and log_prompts flag."""

    def test_level_0_sets_info_no_prompts(self):
        set_verbosity(0)
        root = logging.getLogger("imagemcp")
        assert root.level == logging.INFO
        assert log_prompts() is False

    def test_level_1_sets_info_with_prompts(self):
        set_verbosity(1)
        root = logging.getLogger("imagemcp")
        assert root.level == logging.INFO
        assert log_prompts() is True

    def test_level_2_sets_debug_with_prompts(self):
        set_verbosity(2)
        root = logging.getLogger("imagemcp")
        assert root.level == logging.DEBUG
        assert log_prompts() is True

    def test_negative_treated_as_default(self):
        set_verbosity(-1)
        root = logging.getLogger("imagemcp")
        assert root.level == logging.INFO
        assert log_prompts() is False

    def test_handler_writes_to_stderr(self):
        set_verbosity(0)
        root = logging.getLogger("imagemcp")
        streams = [getattr(h, "stream", None) for h in root.handlers]
        assert all(stream is not sys.stdout for stream in streams)


@pytest.mark.unit
class TestConfigureLogging:
    """Test configure_logging with quiet and verbose_level."""

    def test_quiet_sets_warning_and_no_prompts(self):
        set_verbosity(1)
        configure_logging(verbose_level=1, quiet=True)
        root = logging.getLogger("imagemcp")
        assert root.level == logging.WARNING
        assert log_prompts() is False

    def test_not_quiet_delegates_to_set_verbosity(self):
        configure_logging(verbose_level=2, quiet=False)
        root = logging.getLogger("imagemcp")
        assert root.level == logging.DEBUG
        assert log_prompts() is True

    def test_stdio_transport_moves_stdout_handlers_to_stderr(self):
        host = logging.StreamHandler(sys.stdout)
        logging.getLogger().addHandler(host)
        try:
            configure_logging(stdio_transport=True)
            assert host.stream is sys.stderr
        finally:
            logging.getLogger().removeHandler(host)

    def test_stdout_handlers_untouched_without_stdio_transport(self):
        host = logging.StreamHandler(sys.stdout)
        logging.getLogger("imagemcp").addHandler(host)
        try:
            configure_logging()
            assert host.stream is sys.stdout
        finally:
            logging.getLogger("imagemcp").removeHandler(host)

    def test_server_main_guards_stdout(self):
        host = logging.StreamHandler(sys.stdout)
        logging.getLogger().addHandler(host)
        try:
            with patch("imagemcp.server.mcp") as mcp:
                from imagemcp.server import main

                main()
            mcp.run.assert_called_once_with()
            assert host.stream is sys.stderr
        finally:
            logging.getLogger().removeHandler(host)


@pytest.mark.unit
class TestGetVerbosityFromEnv:
    """Test IMAGEMCP_VERBOSITY parsing."""

    def test_default_missing(self):
        with patch.dict(os.environ, {}, clear=False):
            os.environ.pop("IMAGEMCP_VERBOSITY", None)
            assert get_verbosity_from_env() == 0

    def test_env_1(self):
        with patch.dict(os.environ, {"IMAGEMCP_VERBOSITY": "1"}, clear=False):
            assert get_verbosity_from_env() == 1

    def test_env_2(self):
        with patch.dict(os.environ, {"IMAGEMCP_VERBOSITY": "2"}, clear=False):
            assert get_verbosity_from_env() == 2

    def test_invalid_falls_back_to_0(self):
        with patch.dict(os.environ, {"IMAGEMCP_VERBOSITY": "x"}, clear=False):
            assert get_verbosity_from_env() == 0
        with patch.dict(os.environ, {"IMAGEMCP_VERBOSITY": ""}, clear=False):
            assert get_verbosity_from_env() == 0


@pytest.mark.unit
class TestGetLogger:
    """Test get_logger returns child loggers under imagemcp."""

    def test_returns_imagemcp_child(self):
        log = get_logger("files.manager")
        assert log.name == "imagemcp.files.manager"

    def test_full_name_unchanged(self):
        log = get_logger("imagemcp.core.batch")
        assert log.name == "imagemcp.core.batch"

    def test_root_name_unchanged(self):
        log = get_logger("imagemcp")
        assert log.name == "imagemcp"
