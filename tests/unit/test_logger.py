"""Unit tests for nfl_pickem.utils.logger."""

from __future__ import annotations

import logging
import re
import sys

import pytest

from nfl_pickem.utils.logger import (
    DEBUG,
    NORMAL,
    QUIET,
    VERBOSE,
    configure_logging,
    get_logger,
)

_ROOT = "nfl_pickem"


def _root() -> logging.Logger:
    return logging.getLogger(_ROOT)


@pytest.mark.smoke
class TestConfigureLogging:
    @pytest.mark.parametrize(
        ("name", "expected"),
        [("QUIET", logging.WARNING), ("NORMAL", logging.INFO), ("VERBOSE", 15), ("DEBUG", logging.DEBUG)],
    )
    def test_level_names_map_to_numeric_levels(self, name: str, expected: int) -> None:
        configure_logging(name)
        assert _root().level == expected

    def test_level_name_is_case_insensitive(self) -> None:
        configure_logging("verbose")
        assert _root().level == VERBOSE

    def test_unknown_level_raises(self) -> None:
        with pytest.raises(ValueError, match="Unknown log level 'TRACE'"):
            configure_logging("TRACE")

    def test_single_stderr_handler_after_reconfiguring(self) -> None:
        for level in ("NORMAL", "DEBUG", "QUIET"):
            configure_logging(level)
        handlers = _root().handlers
        assert len(handlers) == 1
        assert isinstance(handlers[0], logging.StreamHandler)
        assert handlers[0].stream is sys.stderr

    def test_records_do_not_propagate_to_the_root_logger(self) -> None:
        configure_logging("NORMAL")
        assert _root().propagate is False

    def test_verbose_level_has_a_name(self) -> None:
        assert logging.getLevelName(VERBOSE) == "VERBOSE"


@pytest.mark.smoke
class TestEnvironmentVariable:
    def test_env_var_used_when_no_level_given(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("NFL_PICKEM_LOG_LEVEL", "debug")
        configure_logging()
        assert _root().level == DEBUG

    def test_explicit_level_wins_over_env_var(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("NFL_PICKEM_LOG_LEVEL", "DEBUG")
        configure_logging("QUIET")
        assert _root().level == QUIET

    def test_defaults_to_normal(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("NFL_PICKEM_LOG_LEVEL", raising=False)
        configure_logging()
        assert _root().level == NORMAL


class TestOutput:
    def test_get_logger_nests_under_package_root(self) -> None:
        assert get_logger("scheduler.service").name == "nfl_pickem.scheduler.service"

    def test_module_loggers_share_the_package_handler(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging("NORMAL")
        logging.getLogger("nfl_pickem.ingest.sync").info("created team KC")
        err = capsys.readouterr().err
        assert " | nfl_pickem.ingest.sync | INFO     | created team KC" in err
        assert re.match(r"\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}", err)

    def test_verbose_records_hidden_at_normal(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging("NORMAL")
        get_logger("ingest").log(VERBOSE, "per-week chatter")
        assert "per-week chatter" not in capsys.readouterr().err

    def test_verbose_records_shown_at_verbose(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging("VERBOSE")
        get_logger("ingest").log(VERBOSE, "per-week chatter")
        assert "VERBOSE  | per-week chatter" in capsys.readouterr().err
