"""
Credentials Module for spike-mastodon.

This module persists the Mastodon app registration and access token as a
TOML file (credentials.toml) inside the per-user configuration folder.

Usage:
    >>> from config import config_folder
    >>> from credentials import load_credentials, CredentialsError
    >>> try:
    ...     creds = load_credentials(config_folder())
    ... except CredentialsError as e:
    ...     print(f"No credentials yet: {e}")
"""

from .store import (
    CREDENTIALS_FILENAME,
    Credentials,
    CredentialsError,
    credentials_path,
    load_credentials,
    save_credentials,
    validate_credentials,
)

__all__ = [
    "CREDENTIALS_FILENAME",
    "Credentials",
    "CredentialsError",
    "credentials_path",
    "load_credentials",
    "save_credentials",
    "validate_credentials",
]
