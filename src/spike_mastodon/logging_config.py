"""
Logging setup for spike-mastodon.

Three handlers hang off the root logger:

- spike-mastodon.log: human readable, rotated at logging.max_bytes
- spike-mastodon.json: one JSON object per line, rotated the same way
- stderr: INFO and above (DEBUG with --debug)

Per-logger levels come from a filter string such as
"urllib3=info,mastodon_client=debug,info": each "name=level" directive sets that
logger's level, and a bare level sets the root level. The
SPIKE_MASTODON_LOG environment variable replaces the configured filter.
"""
import json
import logging
import os
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from config import ConfigError

LOG_FILTER_ENV = "SPIKE_MASTODON_LOG"
LOG_BASENAME = "spike-mastodon"
TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_LEVELS = {
    "trace": logging.DEBUG,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
    "off": logging.CRITICAL + 10,
}

# Attributes every LogRecord has; anything else was passed via extra=
_RECORD_ATTRS = set(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}


class JsonFormatter(logging.Formatter):
    """Format records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        for key, value in record.__dict__.items():
            if key not in _RECORD_ATTRS and not key.startswith("_"):
                payload[key] = value
        return json.dumps(payload, default=str)


def _parse_level(text: str) -> int:
    try:
        return _LEVELS[text.strip().lower()]
    except KeyError:
        raise ConfigError(f"Unknown log level '{text.strip()}'") from None


def parse_log_filter(directives: str) -> Tuple[int, List[Tuple[str, int]]]:
    """Parse a comma separated filter string.

    Args:
        directives: e.g. "urllib3=info,mastodon=debug,warn"

    Returns:
        Tuple of (root level, [(logger name, level), ...]). The root level
        defaults to INFO when no bare level is given.

    Raises:
        ConfigError: If a directive names an unknown level

    Example:
        >>> parse_log_filter("mastodon=debug,warn")
        (30, [('mastodon', 10)])
    """
    root_level = logging.INFO
    targets: List[Tuple[str, int]] = []
    for directive in (directives or "").split(","):
        directive = directive.strip()
        if not directive:
            continue
        if "=" in directive:
            name, level = directive.split("=", 1)
            if not name.strip():
                raise ConfigError(f"Invalid log directive '{directive}'")
            targets.append((name.strip(), _parse_level(level)))
        else:
            root_level = _parse_level(directive)
    return root_level, targets


def configure_logging(
    config: Dict[str, Any],
    debug: bool = False,
    log_filter: Optional[str] = None
) -> None:
    """Configure the root logger from the logging section of the config.

    Args:
        config: Configuration dictionary from load_config()
        debug: Lower the root and stderr levels to DEBUG
        log_filter: Filter string; defaults to $SPIKE_MASTODON_LOG, then
            config["logging"]["filter"]

    Raises:
        ConfigError: If the filter string is invalid or the log files
            cannot be opened
    """
    log_config = config.get("logging", {})
    if log_filter is None:
        log_filter = os.environ.get(LOG_FILTER_ENV) or log_config.get("filter", "")
    root_level, targets = parse_log_filter(log_filter)
    if debug:
        root_level = logging.DEBUG

    directory = Path(log_config.get("directory", "."))
    max_bytes = log_config.get("max_bytes", 10 * 1024 * 1024)
    backup_count = log_config.get("backup_count", 3)

    # Open both files before touching the root logger so a failure leaves
    # the existing handlers in place
    text_handler = None
    try:
        directory.mkdir(parents=True, exist_ok=True)
        text_handler = RotatingFileHandler(
            directory / f"{LOG_BASENAME}.log",
            maxBytes=max_bytes,
            backupCount=backup_count
        )
        json_handler = RotatingFileHandler(
            directory / f"{LOG_BASENAME}.json",
            maxBytes=max_bytes,
            backupCount=backup_count
        )
    except OSError as e:
        if text_handler is not None:
            text_handler.close()
        raise ConfigError(f"Can't open log files in {directory}: {e}") from e

    text_handler.setFormatter(logging.Formatter(TEXT_FORMAT))
    json_handler.setFormatter(JsonFormatter())

    root_logger = logging.getLogger()
    root_logger.setLevel(root_level)

    # Clear any existing handlers to avoid duplicates
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    root_logger.addHandler(text_handler)
    root_logger.addHandler(json_handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(logging.DEBUG if debug else logging.INFO)
    console_handler.setFormatter(logging.Formatter(TEXT_FORMAT))
    root_logger.addHandler(console_handler)

    for name, level in targets:
        logging.getLogger(name).setLevel(level)

    logging.getLogger(__name__).debug(
        f"Logging configured: root={logging.getLevelName(root_level)}, filter={log_filter!r}"
    )
