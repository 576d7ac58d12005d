"""
Pigeon native host CLI.

Chrome starts this program when the extension connects, passing the
caller's origin (and on Windows a --parent-window handle) as arguments.
Both are accepted and ignored: origin checking is done by Chrome using the
allowed_origins list of the host manifest.
"""

import argparse
import logging
import sys

from .. import __version__
from ..config import (
    ConfigError,
    get_tmux_config,
    load_config,
    read_legacy_target_override,
)
from ..host import (
    EXIT_ERROR,
    EXIT_SUCCESS,
    NativeHost,
    setup_logging,
)
from ..services.target_resolver import TargetResolver
from ..services.tmux_bridge import TmuxBridge

logger = logging.getLogger(__name__)


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="pigeon-host",
        description=(
            "Native messaging host that delivers code selections from the "
            "Pigeon browser extension to tmux sessions."
        ),
    )
    parser.add_argument(
        "origin",
        nargs="?",
        default=None,
        help="Caller origin supplied by the browser (chrome-extension://<id>/)",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config.yaml (default: $PIGEON_CONFIG or ~/.config/pigeon/config.yaml)",
    )
    parser.add_argument(
        "--list-sessions",
        action="store_true",
        default=False,
        dest="list_sessions",
        help="Print the tmux sessions the host can see and exit",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    return parser


def cmd_list_sessions(bridge: TmuxBridge) -> int:
    """Print session names one per line (diagnostic, not used by the browser)."""
    result = bridge.list_sessions()
    if not result.success:
        print(f"Error: {result.error_message}", file=sys.stderr)
        return EXIT_ERROR
    for name in result.sessions:
        print(name)
    return EXIT_SUCCESS


def main(args: list[str] | None = None) -> int:
    """
    Main entry point for the native host.

    Args:
        args: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code
    """
    parser = create_parser()
    # Browsers may append platform-specific flags (e.g. --parent-window=N)
    parsed, unknown = parser.parse_known_args(args)

    try:
        config = load_config(parsed.config)
    except ConfigError as e:
        print(f"pigeon-host: {e}", file=sys.stderr)
        return EXIT_ERROR

    try:
        setup_logging(config)
    except (OSError, ValueError) as e:
        print(f"pigeon-host: cannot set up logging: {e}", file=sys.stderr)
        return EXIT_ERROR

    if parsed.origin:
        logger.debug(f"Launched by {parsed.origin}")
    if unknown:
        logger.debug(f"Ignoring browser arguments: {unknown}")

    bridge = TmuxBridge.from_config(get_tmux_config(config))
    logger.debug(f"Using tmux binary {bridge.binary}")

    if parsed.list_sessions:
        return cmd_list_sessions(bridge)

    resolver = TargetResolver(legacy_override=read_legacy_target_override())
    host = NativeHost(bridge=bridge, resolver=resolver, config=config)
    try:
        return host.run()
    except KeyboardInterrupt:
        return EXIT_SUCCESS


if __name__ == "__main__":
    sys.exit(main())
