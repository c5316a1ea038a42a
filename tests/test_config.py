"""Tests for LauncherOptions and the logging bootstrap."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from cmdlaunch.config import LauncherOptions
from cmdlaunch.core.splitter import SharedFlagPolicy
from cmdlaunch.logging import configure_logging, resolve_level


class TestLauncherOptions:
    def test_defaults(self) -> None:
        options = LauncherOptions()
        assert options.cmds_dir == "cmds"
        assert options.prog == "cmdlaunch"
        assert options.version is None
        assert options.cache_enabled is True
        assert options.shared_flag_policy is SharedFlagPolicy.PARENT

    def test_coercion(self, tmp_path: Path) -> None:
        options = LauncherOptions(
            base_dir=str(tmp_path),  # type: ignore[arg-type]
            cache_dir=str(tmp_path / "cache"),  # type: ignore[arg-type]
            shared_flag_policy="both",  # type: ignore[arg-type]
        )
        assert options.base_dir == tmp_path
        assert options.cache_dir == tmp_path / "cache"
        assert options.shared_flag_policy is SharedFlagPolicy.BOTH

    def test_unknown_policy_rejected(self) -> None:
        with pytest.raises(ValueError):
            LauncherOptions(shared_flag_policy="sometimes")  # type: ignore[arg-type]

    @pytest.mark.parametrize(
        "field_name", ["stat_concurrency", "metadata_concurrency", "validation_concurrency"]
    )
    def test_concurrency_must_be_positive(self, field_name: str) -> None:
        with pytest.raises(ValueError, match=field_name):
            LauncherOptions(**{field_name: 0})

    def test_on_error_ignored_in_equality(self) -> None:
        assert LauncherOptions(on_error=print) == LauncherOptions()


class TestFromEnv:
    def test_empty_environment(self) -> None:
        assert LauncherOptions.from_env({}) == LauncherOptions()

    def test_reads_variables(self, tmp_path: Path) -> None:
        options = LauncherOptions.from_env(
            {
                "CMDLAUNCH_CMDS_DIR": "commands",
                "CMDLAUNCH_CACHE_DIR": str(tmp_path),
                "CMDLAUNCH_NO_CACHE": "Yes",
                "CMDLAUNCH_LOG_LEVEL": "debug",
            }
        )
        assert options.cmds_dir == "commands"
        assert options.cache_dir == tmp_path
        assert options.cache_enabled is False
        assert options.log_level == "debug"

    @pytest.mark.parametrize("value", ["0", "false", "", "off"])
    def test_no_cache_falsy(self, value: str) -> None:
        assert LauncherOptions.from_env({"CMDLAUNCH_NO_CACHE": value}).cache_enabled is True

    def test_overrides_win(self) -> None:
        options = LauncherOptions.from_env(
            {"CMDLAUNCH_CMDS_DIR": "commands"}, cmds_dir="other", prog="tool"
        )
        assert options.cmds_dir == "other"
        assert options.prog == "tool"

    def test_process_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CMDLAUNCH_CMDS_DIR", "from-env")
        assert LauncherOptions.from_env().cmds_dir == "from-env"


class TestLogging:
    @pytest.mark.parametrize(
        ("level", "verbose", "expected"),
        [
            (None, False, logging.WARNING),
            (None, True, logging.DEBUG),
            ("info", False, logging.INFO),
            (" Error ", True, logging.ERROR),
            (logging.CRITICAL, False, logging.CRITICAL),
            ("chatty", False, logging.WARNING),
        ],
    )
    def test_resolve_level(self, level: int | str | None, verbose: bool, expected: int) -> None:
        assert resolve_level(level, verbose=verbose) == expected

    def test_existing_handlers_kept(self, monkeypatch: pytest.MonkeyPatch) -> None:
        root = logging.getLogger()
        handler = logging.NullHandler()
        monkeypatch.setattr(root, "handlers", [handler])
        monkeypatch.setattr(root, "level", root.level)

        configure_logging(logging.INFO)

        assert root.handlers == [handler]
        assert root.level == logging.INFO

    def test_installs_rich_handler(self, monkeypatch: pytest.MonkeyPatch) -> None:
        from rich.logging import RichHandler

        root = logging.getLogger()
        monkeypatch.setattr(root, "handlers", [])
        monkeypatch.setattr(root, "level", root.level)

        configure_logging(logging.DEBUG)

        assert [type(handler) for handler in root.handlers] == [RichHandler]
        assert root.level == logging.DEBUG
