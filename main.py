"""FirstResponder — interactive incident investigation CLI.

Usage:
    python main.py                      # interactive investigation shell
    python main.py report <incident_id> # print a markdown postmortem
"""

from __future__ import annotations

import asyncio
import json
import sys
import threading

from src.agents.session import AgentEventHandlers
from src.core.config import get_settings
from src.core.errors import FirstResponderError
from src.core.logging import configure_logging, get_logger
from src.core.runner import open_runtime
from src.memory import operations as ops
from src.memory.storage import IncidentStore
from src.reports.generator import generate_postmortem

EXIT_COMMANDS = {"exit", "quit"}


def _on_text(text: str) -> None:
    sys.stdout.write(text)
    sys.stdout.flush()


def _on_tool_start(name: str, tool_input: dict) -> None:
    preview = json.dumps(tool_input, default=str)[:120]
    sys.stdout.write(f"\n  [tool] {name}({preview})...")
    sys.stdout.flush()


def _on_tool_end(name: str, result, is_error: bool) -> None:
    print(" ERROR" if is_error else " ok")


AGENT_EVENTS = AgentEventHandlers(
    on_text=_on_text,
    on_tool_start=_on_tool_start,
    on_tool_end=_on_tool_end,
)


def _settle(future: asyncio.Future, line: str | None, error: BaseException | None) -> None:
    if future.done():
        return
    if error is not None:
        future.set_exception(error)
    else:
        future.set_result(line)


def _read_line(loop: asyncio.AbstractEventLoop, future: asyncio.Future) -> None:
    line, error = None, None
    try:
        line = input("\nyou> ")
    except EOFError:
        pass
    except Exception as e:
        error = e
    loop.call_soon_threadsafe(_settle, future, line, error)


async def _prompt() -> str | None:
    """Read one line of input; None on EOF.

    The read runs on a daemon thread so Ctrl+C can end the process while it
    is still blocked on stdin.
    """
    loop = asyncio.get_running_loop()
    future = loop.create_future()
    threading.Thread(target=_read_line, args=(loop, future), daemon=True).start()
    line = await future
    return None if line is None else line.strip()


async def run_shell() -> int:
    """Interactive loop. Returns the process exit code."""
    logger = get_logger("main")
    settings = get_settings()

    print("FirstResponder v0.1.0")
    print("AI-powered incident response agent\n")
    print("Commands:")
    print("  exit / quit  - shut down the agent")
    print("  Ctrl+C       - force quit\n")

    try:
        print("Initializing agent (connecting to log-query server)...")
        async with open_runtime(settings) as runtime:
            print(
                f"Ready - {runtime.memory_tool_count} memory tools + "
                f"{runtime.log_tool_count} log tools loaded.\n"
            )

            while True:
                user_input = await _prompt()
                if user_input is None or user_input.lower() in EXIT_COMMANDS:
                    print("Shutting down...")
                    break
                if not user_input:
                    continue

                try:
                    sys.stdout.write("\nfirst-responder> ")
                    await runtime.session.send_message(user_input, AGENT_EVENTS)
                    sys.stdout.write("\n")
                except Exception as e:
                    logger.error("message_failed", error=str(e), error_type=type(e).__name__)
                    print(f"\nError: {e}", file=sys.stderr)
    except Exception as e:
        logger.error("startup_failed", error=str(e))
        print(f"Fatal error: {e}", file=sys.stderr)
        return 1

    return 0


async def print_report(incident_id: str) -> int:
    settings = get_settings()
    store = IncidentStore(settings.memory_dir)
    try:
        memory = await ops.get_incident(store, incident_id)
    except FirstResponderError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    print(generate_postmortem(memory))
    return 0


def main() -> None:
    """CLI entry point."""
    settings = get_settings()
    configure_logging(json_output=settings.log_json, level=settings.log_level)

    args = sys.argv[1:]
    if args and args[0] == "report":
        if len(args) != 2:
            print("Usage: python main.py report <incident_id>", file=sys.stderr)
            sys.exit(1)
        sys.exit(asyncio.run(print_report(args[1])))

    if args:
        print(f"Unknown command: {args[0]}", file=sys.stderr)
        print("Available: report <incident_id>", file=sys.stderr)
        sys.exit(1)

    try:
        sys.exit(asyncio.run(run_shell()))
    except KeyboardInterrupt:
        sys.exit(0)


if __name__ == "__main__":
    main()
