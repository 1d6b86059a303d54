"""
Mastodon Integration Module for spike-mastodon.

This module exercises a live Mastodon instance through Mastodon.py.

The module handles:
- Mastodon app registration
- User authentication via OAuth (out-of-band authorization code)
- Credential verification
- Home timeline fetching and next/previous page walking

Usage:
    >>> from credentials import load_credentials
    >>> client = MastodonClient.from_credentials(load_credentials(folder))
    >>> client.verify_credentials()
    >>> timeline = client.home_timeline()
    >>> timeline.next_page()
"""

from .mastodon_client import (
    MastodonClient,
    MastodonClientError,
    Registration,
    normalize_base_url,
)
from .pager import TimelinePager

__all__ = [
    "MastodonClient",
    "MastodonClientError",
    "Registration",
    "TimelinePager",
    "normalize_base_url",
]
