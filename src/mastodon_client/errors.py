"""Exceptions raised by the Mastodon integration."""
from config import SpikeError


class MastodonClientError(SpikeError):
    """Raised when a Mastodon API call fails.

    The message says which step failed (e.g. "Couldn't get timeline");
    the underlying MastodonError is chained as __cause__.
    """
    pass
