"""Clapper entry point — CLI args, async loop, and gesture reporting."""

import argparse
import asyncio
import logging
import shlex
import subprocess
from collections.abc import Callable

from clapper.config import get_config, merge_config
from clapper.engine.session import SessionState
from clapper.service import ClapperService
from clapper.utils.logger import console, setup_logging

logger = logging.getLogger(__name__)

# How often the main loop checks whether the session has ended
_POLL_INTERVAL_S = 0.5


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="clapper",
        description="Clapper — run a command when you clap twice",
    )
    parser.add_argument(
        "--debug", "-v",
        action="store_true",
        help="Enable debug logging and engine diagnostics",
    )
    parser.add_argument(
        "--input",
        help="Engine input option, e.g. --input=-iadc:hw:1 (default: -iadc)",
    )
    parser.add_argument(
        "--spacing",
        type=float,
        help="Target gap between the two claps, in seconds",
    )
    parser.add_argument(
        "--tolerance",
        type=float,
        help="Allowed deviation from the spacing, in seconds",
    )
    parser.add_argument(
        "--threshold",
        type=float,
        help="Minimum clap power",
    )
    parser.add_argument(
        "--command", "-c",
        help="Shell command to launch on every double clap",
    )
    parser.add_argument(
        "--list-devices",
        action="store_true",
        help="List audio input devices and exit",
    )
    return parser.parse_args(argv)


def _overrides(args: argparse.Namespace) -> dict:
    """Collect the settings given on the command line."""
    overrides: dict = {}
    if args.debug:
        overrides["debug"] = True
    if args.input:
        overrides["engine_input"] = args.input
    clap = {
        key: value
        for key, value in (
            ("spacing", args.spacing),
            ("rhythm_tolerance", args.tolerance),
            ("power_threshold", args.threshold),
        )
        if value is not None
    }
    if clap:
        overrides["clap"] = clap
    return overrides


def make_callback(command: str | None) -> Callable[[], None]:
    """Build the double-clap callback.

    Without a command the gesture is only reported on the console.  The
    command is launched without waiting, so the callback never blocks the
    event loop.
    """
    def _on_double_clap() -> None:
        console.print("[bold green]👏 Double clap![/]")
        if command:
            logger.debug("Launching: %s", command)
            subprocess.Popen(shlex.split(command))

    return _on_double_clap


def _list_devices() -> None:
    """Print the audio input devices seen by PortAudio."""
    import sounddevice as sd

    console.print("\n[bold]Audio input devices[/]\n")
    for index, device in enumerate(sd.query_devices()):
        if device["max_input_channels"] > 0:
            console.print(
                f"  [cyan]{index:>3}[/] {device['name']} "
                f"({device['max_input_channels']} ch, {device['default_samplerate']:.0f} Hz)"
            )
    console.print()


async def _async_main(args: argparse.Namespace) -> int:
    """Async entry point; returns the process exit code."""
    service = ClapperService()
    if not service.init(make_callback(args.command), merge_config(get_config(), _overrides(args))):
        return 1
    if not service.start():
        return 1

    console.print("[bold green]Clapper[/] listening. Clap twice, Ctrl+C to quit.\n")
    try:
        while service.state not in (SessionState.STOPPED, SessionState.FAILED):
            await asyncio.sleep(_POLL_INTERVAL_S)
    except asyncio.CancelledError:
        service.stop()
        raise
    return 0 if service.state is SessionState.STOPPED else 1


def main(argv: list[str] | None = None) -> int:
    """Synchronous entry point."""
    args = _parse_args(argv)

    config = get_config()
    setup_logging(debug=args.debug or config.debug, log_level=config.log_level)

    if args.list_devices:
        _list_devices()
        return 0

    try:
        return asyncio.run(_async_main(args))
    except KeyboardInterrupt:
        console.print("\n[bold green]Bye![/]")
        return 0


if __name__ == "__main__":
    raise SystemExit(main())
