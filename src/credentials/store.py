"""
TOML-backed storage for Mastodon credentials.

The record mirrors what is needed to rebuild an authenticated client:

    base = "https://mastodon.social"
    client_id = "..."
    client_secret = "..."
    redirect = "urn:ietf:wg:oauth:2.0:oob"
    token = "..."

Reading uses the standard library tomllib; writing uses the toml package.
Every payload is validated against CREDENTIALS_SCHEMA before it is trusted.

Security:
    - The file is written with 0600 permissions on POSIX systems
    - Credentials.__repr__ masks the secret fields so they never reach logs
"""
from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any, Dict

import toml
from jsonschema import ValidationError, validate

from config import SpikeError
from schema import CREDENTIALS_SCHEMA

logger = logging.getLogger(__name__)

CREDENTIALS_FILENAME = "credentials.toml"


class CredentialsError(SpikeError):
    """Raised when credentials cannot be loaded, validated or stored."""
    pass


def _mask(value: str) -> str:
    if len(value) <= 4:
        return "****"
    return f"{value[:2]}...{value[-2:]}"


@dataclass(frozen=True)
class Credentials:
    """Registration plus access token for one Mastodon instance.

    Attributes:
        base: Base URL of the instance (e.g., https://mastodon.social)
        client_id: OAuth client ID from app registration
        client_secret: OAuth client secret from app registration
        redirect: Redirect URI the app was registered with
        token: OAuth access token
    """

    base: str
    client_id: str
    client_secret: str
    redirect: str
    token: str

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "Credentials":
        """Build a record from a validated payload, ignoring unknown keys."""
        validate_credentials(payload)
        return cls(
            base=payload["base"],
            client_id=payload["client_id"],
            client_secret=payload["client_secret"],
            redirect=payload["redirect"],
            token=payload["token"],
        )

    def __repr__(self) -> str:
        return (
            f"Credentials(base={self.base!r}, client_id={_mask(self.client_id)!r}, "
            f"client_secret={_mask(self.client_secret)!r}, redirect={self.redirect!r}, "
            f"token={_mask(self.token)!r})"
        )


def validate_credentials(payload: Dict[str, Any]) -> None:
    """Validate a credentials payload against the JSON schema.

    Raises:
        CredentialsError: If validation fails, naming the offending field
    """
    try:
        validate(instance=payload, schema=CREDENTIALS_SCHEMA)
    except ValidationError as e:
        path_str = ".".join(str(p) for p in e.path)
        raise CredentialsError(
            f"Invalid credentials: {e.message} at path: {path_str}"
        ) from e


def credentials_path(folder: Path) -> Path:
    return Path(folder) / CREDENTIALS_FILENAME


def load_credentials(folder: Path) -> Credentials:
    """Load credentials.toml from the given configuration folder.

    Args:
        folder: Configuration folder (see config.config_folder())

    Returns:
        Credentials record

    Raises:
        CredentialsError: If the file is missing, unreadable, not valid TOML,
            or does not match the credentials schema
    """
    path = credentials_path(folder)
    try:
        with open(path, "rb") as f:
            payload = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise CredentialsError(f"cannot load file {path}: {e}") from e

    try:
        credentials = Credentials.from_dict(payload)
    except CredentialsError as e:
        raise CredentialsError(f"cannot load file {path}: {e}") from e

    logger.debug(f"Loaded credentials for {credentials.base} from {path}")
    return credentials


def save_credentials(credentials: Credentials, folder: Path) -> Path:
    """Write credentials.toml into the configuration folder.

    The folder (and any missing parents) is created first.

    Args:
        credentials: Record to persist
        folder: Configuration folder (see config.config_folder())

    Returns:
        Path of the written file

    Raises:
        CredentialsError: If the folder or file cannot be written
    """
    folder = Path(folder)
    try:
        folder.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise CredentialsError(f"Can't create config folder {folder}: {e}") from e

    path = credentials_path(folder)
    try:
        # Create with restrictive permissions (600 = rw-------) before any secret is written
        fd = os.open(path, os.O_CREAT | os.O_WRONLY | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(toml.dumps(credentials.to_dict()))
        if os.name != "nt":
            os.chmod(path, 0o600)
    except OSError as e:
        raise CredentialsError(f"cannot save file {path}: {e}") from e

    logger.info(f"Saved credentials for {credentials.base} to {path}")
    return path
