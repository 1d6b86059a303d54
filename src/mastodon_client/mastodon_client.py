"""
Mastodon Client for spike-mastodon.

This module wraps Mastodon.py to register an application with a Mastodon
instance, authorize it for a user account, and exercise a few read-only
API calls against the live instance.

Authentication Flow:
    1. Register app with Mastodon instance using register_app()
       - Returns a Registration carrying client_id and client_secret
    2. Generate authorization URL using authorization_url()
       - User visits URL (opened in their browser) and authorizes the app
    3. Exchange authorization code for access token using authenticate()
       - Returns an authenticated MastodonClient
    4. Persist client.credentials with credentials.save_credentials()

Usage:
    >>> registration = MastodonClient.register_app("https://mastodon.social")
    >>> url = MastodonClient.authorization_url(registration)
    >>> code = input("Enter authorization code: ")
    >>> client = MastodonClient.authenticate(registration, code)
    >>> client.verify_credentials()["username"]
    'alice'

API Reference:
    Mastodon API: https://docs.joinmastodon.org/api/
    Mastodon.py: https://mastodonpy.readthedocs.io/
"""
import logging
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List
from urllib.parse import urlparse
from mastodon import Mastodon, MastodonError

from credentials import Credentials
from .errors import MastodonClientError
from .pager import TimelinePager


logger = logging.getLogger(__name__)

# Out-of-band redirect: the instance shows the code for the user to paste
OOB_REDIRECT_URI = "urn:ietf:wg:oauth:2.0:oob"

DEFAULT_APP_NAME = "spike-mastodon"
DEFAULT_SCOPES = ["read"]
DEFAULT_REQUEST_TIMEOUT = 30


def normalize_base_url(server: str) -> str:
    """Turn a user-entered server name into an instance base URL.

    Args:
        server: Server name or URL (e.g., "mastodon.social" or "https://mastodon.social/")

    Returns:
        Base URL with scheme and without trailing slashes

    Raises:
        ValueError: If the server name is empty

    Example:
        >>> normalize_base_url(" mastodon.social/ ")
        'https://mastodon.social'
    """
    server = (server or "").strip().rstrip("/")
    if not server:
        raise ValueError("Server name must not be empty")
    if not urlparse(server).scheme:
        server = f"https://{server}"
    return server


@dataclass(frozen=True)
class Registration:
    """An application registered with a Mastodon instance, not yet authorized.

    Attributes:
        base: Base URL of the instance
        client_id: OAuth client ID returned by the instance
        client_secret: OAuth client secret returned by the instance
        redirect: Redirect URI the app was registered with
        scopes: OAuth scopes requested at registration
    """

    base: str
    client_id: str
    client_secret: str = field(repr=False)
    redirect: str = OOB_REDIRECT_URI
    scopes: List[str] = field(default_factory=lambda: list(DEFAULT_SCOPES))


class MastodonClient:
    """Authenticated client for one Mastodon account.

    Attributes:
        credentials: Credentials the client was built from
        api: Mastodon.py API client instance

    Example:
        >>> client = MastodonClient.from_credentials(credentials)
        >>> account = client.verify_credentials()
        >>> timeline = client.home_timeline()
    """

    def __init__(self, credentials: Credentials, request_timeout: int = DEFAULT_REQUEST_TIMEOUT):
        """Initialize the Mastodon API client from stored credentials.

        Args:
            credentials: Instance base URL, client credentials and access token
            request_timeout: Per-request timeout in seconds

        Raises:
            MastodonClientError: If the instance cannot be reached
        """
        self.credentials = credentials
        try:
            self.api = Mastodon(
                client_id=credentials.client_id,
                client_secret=credentials.client_secret,
                access_token=credentials.token,
                api_base_url=credentials.base,
                request_timeout=request_timeout
            )
        except MastodonError as e:
            raise MastodonClientError(f"Couldn't create client for {credentials.base}: {e}") from e
        logger.info(f"Mastodon client initialized for {credentials.base}")

    @classmethod
    def from_credentials(
        cls,
        credentials: Credentials,
        request_timeout: int = DEFAULT_REQUEST_TIMEOUT
    ) -> "MastodonClient":
        return cls(credentials, request_timeout=request_timeout)

    @staticmethod
    def register_app(
        server: str,
        app_name: str = DEFAULT_APP_NAME,
        scopes: Optional[List[str]] = None,
        redirect_uri: str = OOB_REDIRECT_URI,
        website: Optional[str] = None,
        request_timeout: int = DEFAULT_REQUEST_TIMEOUT
    ) -> Registration:
        """Register a new application with a Mastodon instance.

        Args:
            server: Server name or base URL of the instance
            app_name: Name of the application shown to the user
            scopes: List of OAuth scopes (default: ['read'])
            redirect_uri: OAuth redirect URI (default: out-of-band)
            website: Website shown on the authorization page
            request_timeout: Per-request timeout in seconds

        Returns:
            Registration with the client credentials

        Raises:
            MastodonClientError: If app registration fails
        """
        if scopes is None:
            scopes = list(DEFAULT_SCOPES)

        try:
            base = normalize_base_url(server)
        except ValueError as e:
            raise MastodonClientError(f"Couldn't register app: {e}") from e

        try:
            client_id, client_secret = Mastodon.create_app(
                app_name,
                scopes=scopes,
                redirect_uris=redirect_uri,
                website=website,
                api_base_url=base,
                request_timeout=request_timeout
            )
        except MastodonError as e:
            raise MastodonClientError(f"Couldn't register app on {base}: {e}") from e

        registration = Registration(
            base=base,
            client_id=client_id,
            client_secret=client_secret,
            redirect=redirect_uri,
            scopes=list(scopes)
        )
        logger.info(f"Registration complete: {registration}")
        return registration

    @staticmethod
    def _unauthorized_api(
        registration: Registration,
        request_timeout: int = DEFAULT_REQUEST_TIMEOUT
    ) -> Mastodon:
        return Mastodon(
            client_id=registration.client_id,
            client_secret=registration.client_secret,
            api_base_url=registration.base,
            request_timeout=request_timeout
        )

    @staticmethod
    def authorization_url(
        registration: Registration,
        request_timeout: int = DEFAULT_REQUEST_TIMEOUT
    ) -> str:
        """Generate the OAuth authorization URL the user has to visit.

        Raises:
            MastodonClientError: If the URL cannot be built
        """
        try:
            return MastodonClient._unauthorized_api(registration, request_timeout).auth_request_url(
                scopes=registration.scopes,
                redirect_uris=registration.redirect
            )
        except MastodonError as e:
            raise MastodonClientError(f"Couldn't get authorize URL: {e}") from e

    @classmethod
    def authenticate(
        cls,
        registration: Registration,
        code: str,
        request_timeout: int = DEFAULT_REQUEST_TIMEOUT
    ) -> "MastodonClient":
        """Exchange an authorization code for an access token.

        Args:
            registration: Registration the code was issued for
            code: Authorization code shown by the instance after consent
            request_timeout: Per-request timeout in seconds for the code exchange
                and the returned client

        Returns:
            Authenticated MastodonClient

        Raises:
            MastodonClientError: If the code is empty or the exchange fails
        """
        code = (code or "").strip()
        if not code:
            raise MastodonClientError("Couldn't authenticate: empty authorization code")

        try:
            token = cls._unauthorized_api(registration, request_timeout).log_in(
                code=code,
                redirect_uri=registration.redirect,
                scopes=registration.scopes
            )
        except MastodonError as e:
            raise MastodonClientError(f"Couldn't authenticate: {e}") from e

        credentials = Credentials(
            base=registration.base,
            client_id=registration.client_id,
            client_secret=registration.client_secret,
            redirect=registration.redirect,
            token=token
        )
        logger.info(f"Authenticated: {credentials!r}")
        return cls(credentials, request_timeout=request_timeout)

    def verify_credentials(self) -> Dict[str, Any]:
        """Verify that the access token is valid and get account information.

        Returns:
            Dictionary containing account information

        Raises:
            MastodonClientError: If verification fails
        """
        try:
            account = self.api.account_verify_credentials()
        except MastodonError as e:
            raise MastodonClientError(f"Couldn't get account: {e}") from e

        logger.info(f"Verified credentials for @{account['username']}")
        logger.debug(f"Account: {dict(account)}")
        return account

    def home_timeline(self, limit: Optional[int] = None) -> TimelinePager:
        """Fetch the first page of the home timeline.

        Args:
            limit: Optional page size (server default when None)

        Returns:
            TimelinePager positioned on the first page

        Raises:
            MastodonClientError: If the timeline cannot be fetched
        """
        try:
            page = self.api.timeline_home(limit=limit)
        except MastodonError as e:
            raise MastodonClientError(f"Couldn't get timeline: {e}") from e

        logger.info("Got timeline")
        return TimelinePager(self.api, page)
