"""
spike-mastodon Core Module.

This module provides the main entry point for spike-mastodon, a small
harness that exercises Mastodon.py against a live Mastodon instance.

A run goes through these steps:
1. Load credentials.toml from the per-user config folder
2. If that fails, register an app, open the authorization page in the
   browser, exchange the pasted code for a token and save the credentials
3. Verify the credentials
4. Fetch the home timeline and log the URIs of its statuses
5. Walk forward through the timeline (timeline.next_pages times), then
   back (timeline.prev_pages times), logging every page

Functions:
    main(argv) -> int:
        Entry point for the console script.
    run(config) -> None:
        Runs the steps above; raises SpikeError on failure.

Example:
    $ spike-mastodon --debug
    Enter server name:
    mastodon.social
"""
import argparse
import logging
import os
import signal
import sys
import threading
import webbrowser
from typing import Any, Callable, Dict, List, Optional, TextIO

from config import SpikeError, config_folder, load_config
from credentials import CredentialsError, load_credentials, save_credentials
from mastodon_client import MastodonClient, TimelinePager

from .logging_config import configure_logging

logger = logging.getLogger(__name__)

DEBUG_ENV = "SPIKE_MASTODON_DEBUG"

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INTERRUPTED = 130

# Set by SIGINT/SIGTERM; run() checks it between steps
shutdown_event = threading.Event()


class ShutdownRequested(SpikeError):
    """Raised when a shutdown signal arrives while run() is in progress."""
    pass


def install_signal_handlers(event: threading.Event = shutdown_event) -> None:
    """Make SIGINT and SIGTERM request a graceful shutdown.

    The first signal sets the event so run() stops at the next step
    boundary. A second SIGINT raises KeyboardInterrupt to abort a blocking
    call (e.g. a prompt waiting for input).
    """
    def handle_signal(signum, frame):
        if event.is_set() and signum == signal.SIGINT:
            raise KeyboardInterrupt
        logger.info(f"Received {signal.Signals(signum).name}, shutting down after current step")
        event.set()

    signal.signal(signal.SIGINT, handle_signal)
    if hasattr(signal, "SIGTERM"):
        signal.signal(signal.SIGTERM, handle_signal)


def _check_shutdown(event: threading.Event) -> None:
    if event.is_set():
        raise ShutdownRequested("Shutdown requested")


def _prompt(message: str, input_fn: Callable[[], str], output: TextIO) -> str:
    output.write(f"{message}\n")
    output.flush()
    try:
        return input_fn().strip()
    except EOFError as e:
        raise SpikeError("failed to read input") from e


def get_server_name(
    input_fn: Callable[[], str] = input,
    output: Optional[TextIO] = None
) -> str:
    """Ask the user which Mastodon server to use.

    Raises:
        SpikeError: If no server name is entered
    """
    server = _prompt("Enter server name:", input_fn, output or sys.stdout)
    if not server:
        raise SpikeError("No server name entered")
    return server


def get_authorization_code(
    input_fn: Callable[[], str] = input,
    output: Optional[TextIO] = None
) -> str:
    """Ask the user for the authorization code shown after consent."""
    return _prompt("Paste the authorization code here:", input_fn, output or sys.stdout)


def open_browser(url: str, output: Optional[TextIO] = None, launch: bool = True) -> bool:
    """Open the authorization URL in the user's default browser.

    The URL is always printed, so the flow still works on headless machines
    and when launch is False.

    Returns:
        True if a browser was launched
    """
    output = output or sys.stdout
    output.write(f"Open this URL to authorize the app:\n{url}\n")
    output.flush()
    if not launch:
        return False
    try:
        opened = webbrowser.open(url)
    except webbrowser.Error as e:
        logger.warning(f"Couldn't open browser: {e}")
        return False
    if not opened:
        logger.warning("No browser available; open the URL manually")
    return opened


def register_and_authenticate(
    config: Dict[str, Any],
    input_fn: Callable[[], str] = input,
    output: Optional[TextIO] = None
) -> MastodonClient:
    """Run the interactive registration and OAuth flow.

    Args:
        config: Configuration dictionary from load_config()
        input_fn: Reads one line of user input
        output: Stream prompts are written to (default: stdout)

    Returns:
        Authenticated MastodonClient

    Raises:
        SpikeError: If any step of the flow fails
    """
    mastodon_config = config.get("mastodon", {})
    timeout = mastodon_config.get("request_timeout", 30)

    server = mastodon_config.get("server") or get_server_name(input_fn, output)
    registration = MastodonClient.register_app(
        server,
        app_name=mastodon_config.get("app_name", "spike-mastodon"),
        scopes=mastodon_config.get("scopes"),
        redirect_uri=mastodon_config.get("redirect_uri", "urn:ietf:wg:oauth:2.0:oob"),
        website=mastodon_config.get("website"),
        request_timeout=timeout
    )

    url = MastodonClient.authorization_url(registration, request_timeout=timeout)
    open_browser(url, output, launch=mastodon_config.get("open_browser", True))

    code = get_authorization_code(input_fn, output)
    return MastodonClient.authenticate(registration, code, request_timeout=timeout)


def _log_items(label: str, page: List[Dict[str, Any]]) -> None:
    items = TimelinePager.uris(page)
    logger.info(f"{label}: {items}", extra={"items": items})


def run(
    config: Dict[str, Any],
    input_fn: Callable[[], str] = input,
    output: Optional[TextIO] = None,
    event: threading.Event = shutdown_event
) -> None:
    """Exercise the Mastodon API once.

    Args:
        config: Configuration dictionary from load_config()
        input_fn: Reads one line of user input (for registration prompts)
        output: Stream prompts are written to (default: stdout)
        event: Shutdown flag checked between steps

    Raises:
        SpikeError: If any step fails
        ShutdownRequested: If a shutdown signal arrived
    """
    folder = config_folder()
    timeout = config.get("mastodon", {}).get("request_timeout", 30)

    try:
        client = MastodonClient.from_credentials(load_credentials(folder), request_timeout=timeout)
    except CredentialsError as reason:
        logger.info(
            f"No credentials found. This is fine if you're running this for the first time. ({reason})"
        )
        _check_shutdown(event)
        client = register_and_authenticate(config, input_fn, output)
        save_credentials(client.credentials, folder)

    _check_shutdown(event)
    client.verify_credentials()

    _check_shutdown(event)
    timeline = client.home_timeline()
    _log_items("initial items", timeline.initial_items)

    timeline_config = config.get("timeline", {})
    for _ in range(timeline_config.get("next_pages", 3)):
        _check_shutdown(event)
        _log_items("next items", timeline.next_page())

    for _ in range(timeline_config.get("prev_pages", 1)):
        _check_shutdown(event)
        _log_items("prev items", timeline.prev_page())


def _parse_args(argv: Optional[List[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="spike-mastodon",
        description="Exercise the Mastodon API with Mastodon.py"
    )
    parser.add_argument("--config", help="Path to config.yml (default: search from cwd)")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the spike-mastodon console command.

    Args:
        argv: Command line arguments (default: sys.argv[1:])

    Returns:
        Process exit code: 0 on success, 1 on error, 130 when interrupted
    """
    args = _parse_args(argv)
    debug = args.debug or os.environ.get(DEBUG_ENV, "").lower() in ("true", "1", "yes")

    config = load_config(args.config)
    try:
        configure_logging(config, debug=debug)
    except SpikeError as e:
        sys.stderr.write(f"error: {e}\n")
        return EXIT_ERROR

    if debug:
        logger.info("Debug mode enabled")

    shutdown_event.clear()
    install_signal_handlers(shutdown_event)

    try:
        run(config)
        logger.info("Done")
        return EXIT_OK
    except (ShutdownRequested, KeyboardInterrupt):
        logger.warning("Interrupted")
        return EXIT_INTERRUPTED
    except SpikeError as e:
        # Messages carry their cause, e.g. "Couldn't get account: 401 Unauthorized"
        logger.error(f"error: {e}", exc_info=debug)
        return EXIT_ERROR
    finally:
        logging.shutdown()


def console_main() -> None:
    sys.exit(main())
