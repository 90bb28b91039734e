"""Unit tests for the CLI in main.py (runtime and prompt patched)."""

from __future__ import annotations

import asyncio
import threading
from contextlib import asynccontextmanager
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest

import main
from src.core.config import Settings
from src.core.errors import OracleError
from src.core.runner import MissingApiKey


def _runtime(send_message=None):
    session = SimpleNamespace(send_message=send_message or AsyncMock(return_value="ok"))
    return SimpleNamespace(session=session, memory_tool_count=12, log_tool_count=3)


def _fake_open_runtime(runtime=None, error=None):
    @asynccontextmanager
    async def fake(settings=None, **kwargs):
        if error is not None:
            raise error
        yield runtime
    return fake


def _inputs(*lines):
    return AsyncMock(side_effect=list(lines))


class TestRunShell:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("command", ["exit", "quit", "QUIT"])
    async def test_exit_commands(self, command, capsys):
        runtime = _runtime()
        with patch.object(main, "open_runtime", _fake_open_runtime(runtime)), \
             patch.object(main, "_prompt", _inputs(command)):
            assert await main.run_shell() == 0
        out = capsys.readouterr().out
        assert "Ready - 12 memory tools + 3 log tools loaded." in out
        assert "Shutting down..." in out
        runtime.session.send_message.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_eof_exits_cleanly(self):
        with patch.object(main, "open_runtime", _fake_open_runtime(_runtime())), \
             patch.object(main, "_prompt", _inputs(None)):
            assert await main.run_shell() == 0

    @pytest.mark.asyncio
    async def test_blank_lines_ignored(self):
        runtime = _runtime()
        with patch.object(main, "open_runtime", _fake_open_runtime(runtime)), \
             patch.object(main, "_prompt", _inputs("", "what broke?", "exit")):
            assert await main.run_shell() == 0
        runtime.session.send_message.assert_awaited_once()
        assert runtime.session.send_message.await_args.args[0] == "what broke?"

    @pytest.mark.asyncio
    async def test_message_failure_reported_and_loop_continues(self, capsys):
        send = AsyncMock(side_effect=[OracleError("LLM request failed: 503"), "fine"])
        with patch.object(main, "open_runtime", _fake_open_runtime(_runtime(send))), \
             patch.object(main, "_prompt", _inputs("first", "second", "exit")):
            assert await main.run_shell() == 0
        assert send.await_count == 2
        assert "Error: LLM request failed: 503" in capsys.readouterr().err

    @pytest.mark.asyncio
    async def test_missing_api_key_is_fatal(self, capsys):
        error = MissingApiKey("Set FR_GROQ_API_KEY in the environment or .env file")
        with patch.object(main, "open_runtime", _fake_open_runtime(error=error)):
            assert await main.run_shell() == 1
        assert "Fatal error: Set FR_GROQ_API_KEY" in capsys.readouterr().err

    @pytest.mark.asyncio
    async def test_log_server_connect_failure_is_fatal(self, capsys):
        error = FileNotFoundError("npx not found")
        with patch.object(main, "open_runtime", _fake_open_runtime(error=error)):
            assert await main.run_shell() == 1
        assert "Fatal error: npx not found" in capsys.readouterr().err


class TestPrompt:
    @pytest.mark.asyncio
    async def test_strips_line(self):
        with patch("builtins.input", return_value="  checkout is down \n"):
            assert await main._prompt() == "checkout is down"

    @pytest.mark.asyncio
    async def test_eof_is_none(self):
        with patch("builtins.input", side_effect=EOFError):
            assert await main._prompt() is None

    @pytest.mark.asyncio
    async def test_cancel_does_not_wait_for_stdin(self):
        release = threading.Event()

        def blocked_input(prompt=""):
            release.wait(5)
            raise EOFError

        with patch("builtins.input", side_effect=blocked_input):
            try:
                with pytest.raises(asyncio.TimeoutError):
                    await asyncio.wait_for(main._prompt(), timeout=0.05)
            finally:
                release.set()
                # Let the reader thread settle the cancelled future while the loop is open.
                await asyncio.sleep(0.1)


class TestPrintReport:
    @pytest.mark.asyncio
    async def test_unknown_incident(self, tmp_path, capsys):
        settings = Settings(_env_file=None, memory_dir=str(tmp_path))
        with patch.object(main, "get_settings", return_value=settings):
            assert await main.print_report("inc_missing") == 1
        assert "Error: Incident inc_missing not found" in capsys.readouterr().err

    @pytest.mark.asyncio
    async def test_prints_postmortem(self, store, checkout_incident, capsys):
        settings = Settings(_env_file=None, memory_dir=str(store.directory))
        with patch.object(main, "get_settings", return_value=settings):
            assert await main.print_report(checkout_incident.incident_id) == 0
        assert capsys.readouterr().out.startswith("# Postmortem: Checkout 500 Errors")

    def test_main_report_exit_code(self, tmp_path):
        settings = Settings(_env_file=None, memory_dir=str(tmp_path))
        with patch.object(main, "get_settings", return_value=settings), \
             patch.object(main, "configure_logging"), \
             patch.object(main.sys, "argv", ["main.py", "report", "inc_missing"]):
            with pytest.raises(SystemExit) as exc:
                main.main()
        assert exc.value.code == 1
