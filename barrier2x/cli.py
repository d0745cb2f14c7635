"""barrier2x command-line interface"""

import argparse
import sys
from typing import NoReturn, Optional, Sequence

from barrier2x import __version__

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def arguments_parse(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """
    Parse command line arguments

    Args:
        argv: Argument list, None for sys.argv

    Returns:
        Parsed CLI arguments.
    """
    parser = argparse.ArgumentParser(
        prog="barrier2x",
        description="Barrier client - receives remote input and injects it into X11",
    )

    parser.add_argument("--version", action="version", version=f"barrier2x {__version__}")

    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to config file (default: search standard locations)",
    )

    parser.add_argument(
        "--server",
        type=str,
        metavar="HOST[:PORT]",
        default=None,
        help="Barrier server to connect to; enables the client (overrides config)",
    )

    parser.add_argument(
        "--name",
        type=str,
        default=None,
        help="Screen name announced to the server (overrides config)",
    )

    parser.add_argument(
        "--keymap",
        type=str.lower,
        choices=["generic", "x11"],
        default=None,
        help="Scan code dialect of the server: x11 for Linux servers, generic otherwise",
    )

    parser.add_argument(
        "--display", type=str, default=None, help="X11 display name (default: $DISPLAY)"
    )

    parser.add_argument(
        "--engine",
        type=str,
        metavar="MODULE:ATTR",
        default=None,
        help="Protocol engine factory (overrides config)",
    )

    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        default=None,
        dest="log_level",
        help="Log level (overrides config)",
    )

    return parser.parse_args(argv)


def main() -> NoReturn:
    """Main entry point for the barrier2x command"""
    args = arguments_parse()

    try:
        from barrier2x.client.main import client_run

        client_run(args)
    except KeyboardInterrupt:
        print("\nShutting down...")
        sys.exit(0)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    sys.exit(0)


if __name__ == "__main__":
    main()
