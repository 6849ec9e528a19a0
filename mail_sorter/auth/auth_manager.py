"""
Delegated sign-in for Microsoft Graph.

Implements the OAuth 2.0 authorization code flow with MSAL for a desktop
user: the browser is sent to the Microsoft sign-in page and the redirect is
caught by a local loopback server.
"""

import logging
import os
import webbrowser
from datetime import datetime, timedelta
from pathlib import Path
from typing import Dict, List, Optional
from urllib.parse import urlparse

from msal import ConfidentialClientApplication, PublicClientApplication, SerializableTokenCache

from ..core.config import GraphAPIConfig
from ..core.exceptions import AuthenticationError
from .loopback import DEFAULT_GRACE_SECONDS, DEFAULT_TIMEOUT_SECONDS, await_authorization_code


logger = logging.getLogger(__name__)


# MSAL adds these itself and rejects them when passed explicitly
RESERVED_SCOPES = {"openid", "profile", "offline_access"}


class GraphAuthenticator:
    """
    Signs the user in and supplies access tokens for GraphAPIClient.

    Features:
    - PublicClientApplication, or ConfidentialClientApplication when a client secret is set
    - Loopback redirect capture (see auth.loopback)
    - Optional persistent token cache so later runs sign in silently
    - Token refresh through acquire_token_silent

    Usage:
        auth = GraphAuthenticator(config.graph_api)
        await auth.sign_in()
        client = GraphAPIClient(token_provider=auth.get_access_token)
    """

    def __init__(
        self,
        config: GraphAPIConfig,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        grace_period: float = DEFAULT_GRACE_SECONDS,
        open_browser: bool = True,
    ):
        """
        Initialize the authenticator.

        Args:
            config: GraphAPIConfig with the app registration
            timeout: Seconds to wait for the browser redirect
            grace_period: Seconds the missing-code page stays up
            open_browser: Try to open the sign-in page automatically
        """
        self.config = config
        self.timeout = timeout
        self.grace_period = grace_period
        self.open_browser = open_browser

        self._access_token: Optional[str] = None
        self._token_expires_at: Optional[datetime] = None

        self._cache = SerializableTokenCache()
        self._load_cache()

        if config.is_confidential:
            logger.debug("Using ConfidentialClientApplication with client secret")
            self.app = ConfidentialClientApplication(
                client_id=config.client_id,
                client_credential=config.client_secret,
                authority=config.authority,
                token_cache=self._cache,
            )
        else:
            logger.debug("Using PublicClientApplication without client secret")
            self.app = PublicClientApplication(
                client_id=config.client_id,
                authority=config.authority,
                token_cache=self._cache,
            )

    @property
    def scopes(self) -> List[str]:
        """Requested scopes minus the ones MSAL reserves."""
        return [s for s in self.config.scopes if s not in RESERVED_SCOPES]

    @property
    def redirect_port(self) -> int:
        """Port of the redirect URI (falls back to redirect_port)."""
        return urlparse(self.config.redirect_uri).port or self.config.redirect_port

    # ------------------------------------------------------------------
    # Token cache
    # ------------------------------------------------------------------

    def _load_cache(self) -> None:
        path = self.config.token_cache_path
        if path and os.path.exists(path):
            try:
                self._cache.deserialize(Path(path).read_text(encoding="utf-8"))
                logger.debug(f"Loaded token cache from {path}")
            except Exception as e:
                logger.warning(f"Ignoring unreadable token cache {path}: {e}")

    def _save_cache(self) -> None:
        path = self.config.token_cache_path
        if path and self._cache.has_state_changed:
            Path(path).write_text(self._cache.serialize(), encoding="utf-8")
            logger.debug(f"Saved token cache to {path}")

    # ------------------------------------------------------------------
    # Sign-in
    # ------------------------------------------------------------------

    def get_auth_url(self) -> str:
        """Authorization URL the user opens in a browser."""
        return self.app.get_authorization_request_url(self.scopes, redirect_uri=self.config.redirect_uri)

    def try_silent(self, force_refresh: bool = False) -> Optional[str]:
        """
        Get a token from the cache or a refresh token, without user interaction.

        Returns:
            Access token, or None when an interactive sign-in is required
        """
        accounts = self.app.get_accounts()
        if not accounts:
            return None

        result = self.app.acquire_token_silent(self.scopes, account=accounts[0], force_refresh=force_refresh)
        if not result or "access_token" not in result:
            return None

        logger.debug("Access token acquired silently")
        return self._store(result)

    async def sign_in(self) -> str:
        """
        Sign the user in, silently if the token cache allows it.

        Returns:
            Access token

        Raises:
            AuthenticationError: If the redirect fails, times out or the
                code cannot be exchanged
        """
        token = self.try_silent()
        if token:
            logger.info("Signed in from token cache")
            return token

        auth_url = self.get_auth_url()

        logger.info("🌐 Open this link in your browser to sign in:")
        logger.info(auth_url)
        logger.info("⏳ Waiting for authorization...")

        if self.open_browser:
            self._launch_browser(auth_url)

        code = await await_authorization_code(
            self.redirect_port,
            timeout=self.timeout,
            grace_period=self.grace_period,
        )

        return self.exchange_code(code)

    def exchange_code(self, code: str) -> str:
        """
        Exchange an authorization code for an access token.

        Raises:
            AuthenticationError: If the token endpoint returns no access token
        """
        result = self.app.acquire_token_by_authorization_code(
            code,
            scopes=self.scopes,
            redirect_uri=self.config.redirect_uri,
        )

        if not result or "access_token" not in result:
            error_desc = (result or {}).get("error_description", (result or {}).get("error", "Unknown error"))
            raise AuthenticationError(f"Unable to obtain access token: {error_desc}")

        logger.info("✅ Authentication successful!")
        return self._store(result)

    def get_access_token(self, force_refresh: bool = False) -> str:
        """
        Token provider for GraphAPIClient.

        Args:
            force_refresh: Skip the in-memory token (previous one was rejected)

        Raises:
            AuthenticationError: If not signed in or the refresh fails
        """
        if not force_refresh and self._access_token and self._token_expires_at:
            if datetime.now() < self._token_expires_at - timedelta(minutes=5):
                return self._access_token

        token = self.try_silent(force_refresh=force_refresh)
        if token:
            return token

        if self._access_token and not force_refresh:
            return self._access_token

        raise AuthenticationError("Client not authenticated. Call sign_in() first.")

    def _store(self, result: Dict) -> str:
        self._access_token = result["access_token"]
        expires_in = int(result.get("expires_in", 3600))
        self._token_expires_at = datetime.now() + timedelta(seconds=expires_in)
        self._save_cache()
        return self._access_token

    @staticmethod
    def _launch_browser(url: str) -> None:
        try:
            if webbrowser.open(url):
                logger.debug("Browser opened automatically")
            else:
                logger.debug("Automatic opening failed, use the link above")
        except webbrowser.Error as e:
            logger.debug(f"Automatic opening failed, use the link above ({e})")
