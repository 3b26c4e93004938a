"""Tests for the command line entry point."""

import io
import json
from collections.abc import Iterator
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from vim_stacktrace.__main__ import main, parse_args, run_server


class TestParseArgs:
    """Test parse_args."""

    def test_defaults(self) -> None:
        args = parse_args([])
        assert args.config is None
        assert args.debug is False
        assert args.format == "json"
        assert args.histerrs is None

    def test_options(self) -> None:
        args = parse_args(["-c", "conf.yaml", "-d", "--format", "console", "--histerrs", "-"])
        assert args.config == Path("conf.yaml")
        assert args.debug is True
        assert args.format == "console"
        assert args.histerrs == "-"

    def test_version(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            parse_args(["--version"])

        assert exc_info.value.code == 0
        assert capsys.readouterr().out.startswith("vim-stacktrace ")


class TestHisterrs:
    """Test offline extraction of errors."""

    def test_from_file(
        self, tmp_path: Path, sample_msghist: str, capsys: pytest.CaptureFixture[str]
    ) -> None:
        path = tmp_path / "messages.txt"
        path.write_text(sample_msghist)

        assert main(["--histerrs", str(path)]) == 0

        errors = json.loads(capsys.readouterr().out)
        assert [error["throwpoint"] for error in errors] == [
            "function Main[2]..<SNR>96_test[1]..<SNR>96_test2[1]..F[3]",
            "function Main[2]..<SNR>96_test[1]..<SNR>96_test2[1]..F[4]",
            "/path/to/file.vim[33]",
        ]
        assert errors[2]["messages"] == ["E605: Exception not caught: 0"]

    def test_from_stdin(
        self,
        monkeypatch: pytest.MonkeyPatch,
        sample_msghist: str,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        monkeypatch.setattr("sys.stdin", io.StringIO(sample_msghist))

        assert main(["--histerrs", "-"]) == 0

        assert len(json.loads(capsys.readouterr().out)) == 3

    def test_missing_file(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert main(["--histerrs", str(tmp_path / "missing.txt")]) == 1
        assert capsys.readouterr().out == ""


class TestServerStartup:
    """Test failures before the server starts."""

    def test_missing_config_file(self, tmp_path: Path) -> None:
        assert main(["-c", str(tmp_path / "missing.yaml")]) == 1

    def test_invalid_config_file(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("channel:\n  call_timeout: -1\n")

        assert main(["-c", str(path)]) == 1


class TestRunServerLogging:
    """Test which logging settings the server runs with."""

    @pytest.fixture
    def no_channel(self) -> Iterator[AsyncMock]:
        """Stop startup right after logging is configured."""
        with patch(
            "vim_stacktrace.adapters.vim.channel.open_stdio_channel",
            AsyncMock(side_effect=OSError("stdin closed")),
        ) as mock:
            yield mock

    async def test_environment_settings_applied(
        self, monkeypatch: pytest.MonkeyPatch, no_channel: AsyncMock
    ) -> None:
        monkeypatch.setenv("VIM_STACKTRACE_LOGGING__LEVEL", "WARNING")

        with patch("vim_stacktrace.utils.logging.configure_logging") as configure:
            assert await run_server(None) == 1

        configure.assert_called_once()
        assert configure.call_args.kwargs["level"] == "WARNING"

    async def test_debug_flag_keeps_debug_level(
        self, monkeypatch: pytest.MonkeyPatch, no_channel: AsyncMock
    ) -> None:
        monkeypatch.setenv("VIM_STACKTRACE_LOGGING__LEVEL", "WARNING")

        with patch("vim_stacktrace.utils.logging.configure_logging") as configure:
            await run_server(None, debug=True)

        assert configure.call_args.kwargs["level"] == "DEBUG"

    async def test_defaults_keep_cli_logging(
        self, monkeypatch: pytest.MonkeyPatch, no_channel: AsyncMock
    ) -> None:
        """Test that logging is left alone without file or environment settings."""
        monkeypatch.delenv("VIM_STACKTRACE_LOGGING__LEVEL", raising=False)
        monkeypatch.delenv("VIM_STACKTRACE_LOGGING__FORMAT", raising=False)

        with patch("vim_stacktrace.utils.logging.configure_logging") as configure:
            await run_server(None)

        configure.assert_not_called()
