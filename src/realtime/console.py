"""Interactive terminal front end for a realtime voice session.

Commands:
    connect            fetch a key and open the session
    talk               toggle the microphone (push-to-talk, click-to-toggle)
    disconnect         tear the session down
    scenario <name>    choose the role-play preset for the next connection
    scenarios          list the presets
    status             print the connection status
    quit               disconnect and exit
"""

from __future__ import annotations

import argparse
import asyncio
import logging

from config.settings import get_settings
from realtime.events import ActivityLog, render_entry
from realtime.scenarios import SCENARIO_INSTRUCTIONS
from realtime.schemas import LogEntry, SessionState
from realtime.session import RealtimeSession

LOGGER = logging.getLogger(__name__)

PROMPT = "> "


class ConsoleController:
    """Maps typed commands onto the session's UI affordances."""

    def __init__(self, session: RealtimeSession) -> None:
        self.session = session

    async def handle_command(self, line: str) -> bool:
        """Run one command. Returns False when the user asked to quit."""

        command, _, argument = line.strip().partition(" ")
        command = command.lower()
        session = self.session

        if not command:
            return True
        if command in {"quit", "exit", "q"}:
            return False
        if command in {"connect", "c"}:
            if session.state is SessionState.DISCONNECTED:
                # A dropped session must be torn down before it can be rebuilt.
                await session.cleanup()
            await session.connect()
        elif command in {"disconnect", "d"}:
            await session.cleanup()
        elif command in {"talk", "t"}:
            if not session.toggle_talking():
                print("Talk controls are disabled until the session is connected.")
        elif command == "scenario":
            try:
                session.select_scenario(argument or None)
            except ValueError as exc:
                print(exc)
            else:
                print(f"Scenario: {session.scenario or 'none'}")
        elif command == "scenarios":
            for name, instructions in SCENARIO_INSTRUCTIONS.items():
                print(f"  {name:<18} {instructions}")
        elif command == "status":
            controls = "enabled" if session.talk_controls_enabled else "disabled"
            print(f"Status: {session.status} (talk controls {controls})")
        else:
            print(__doc__)
        return True


def _print_entry(entry: LogEntry) -> None:
    print(render_entry(entry), flush=True)


def _parse_args() -> argparse.Namespace:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Push-to-talk client for a realtime voice session")
    parser.add_argument("--relay-url", default=settings.relay_token_url)
    parser.add_argument(
        "--scenario",
        default=settings.default_scenario,
        choices=sorted(SCENARIO_INSTRUCTIONS),
    )
    parser.add_argument("--connect", action="store_true", help="Connect immediately on start.")
    return parser.parse_args()


async def _amain() -> None:
    args = _parse_args()
    settings = get_settings().model_copy(update={"relay_token_url": args.relay_url})
    session = RealtimeSession(
        settings,
        log=ActivityLog(listener=_print_entry),
        scenario=args.scenario,
    )
    controller = ConsoleController(session)

    try:
        if args.connect:
            await session.connect()
        while True:
            line = await asyncio.to_thread(input, PROMPT)
            if not await controller.handle_command(line):
                break
    except (EOFError, KeyboardInterrupt):
        pass
    finally:
        await session.cleanup()


def main() -> None:
    logging.basicConfig(
        level=get_settings().log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    try:
        asyncio.run(_amain())
    except KeyboardInterrupt:
        LOGGER.info("Interrupted")


if __name__ == "__main__":
    main()
