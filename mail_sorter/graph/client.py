"""
Microsoft Graph API Client

Provides authenticated access to Microsoft Graph API with a delegated
(signed-in user) access token.
Handles token refresh on 401, rate limiting, retry logic and mapping of
Graph error payloads onto exceptions.
"""

import logging
import time
from typing import Any, Callable, Dict, Optional
import requests

from ..core.exceptions import GraphAPIError, GraphAPIRateLimitError, ItemNotFoundError


logger = logging.getLogger(__name__)


# Graph error code for messages/folders that no longer exist
ITEM_NOT_FOUND_CODE = "ErrorItemNotFound"

# Called with force_refresh=True after a 401
TokenProvider = Callable[[bool], str]


def _parse_error(response: requests.Response):
    """Extract (code, message) from a Graph error body."""
    try:
        error_data = response.json().get("error", {})
        return error_data.get("code"), error_data.get("message", response.text)
    except ValueError:
        return None, response.text


class GraphAPIClient:
    """
    Microsoft Graph API client for the signed-in user's mailbox.

    Supports:
    - Delegated bearer tokens from a token provider
    - Token refresh and retry on 401 responses
    - Retry logic with exponential backoff on 5xx
    - Rate limit handling (429 responses with Retry-After)
    - ItemNotFoundError for ErrorItemNotFound / 404

    Usage:
        client = GraphAPIClient(token_provider=authenticator.get_access_token)
        response = client.get('/me/mailFolders')
    """

    BASE_URL = "https://graph.microsoft.com/v1.0"

    def __init__(self, token_provider: TokenProvider, max_retries: int = 3, timeout: int = 30):
        """
        Initialize Graph API client.

        Args:
            token_provider: Callable returning an access token; receives
                force_refresh=True when the previous token was rejected
            max_retries: Maximum retry attempts for 401/429/5xx
            timeout: Per-request timeout in seconds
        """
        self.token_provider = token_provider
        self.base_url = self.BASE_URL
        self.max_retries = max_retries
        self.timeout = timeout
        self._session = requests.Session()

    def _request(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
        retry_count: int = 0,
        force_refresh: bool = False,
    ) -> requests.Response:
        """
        Make authenticated request to Graph API with retry logic.

        Args:
            method: HTTP method (GET, POST, PATCH, DELETE)
            endpoint: API endpoint (e.g., '/me/messages' or full URL)
            params: Query parameters
            json: JSON body (for POST/PATCH)
            retry_count: Current retry attempt (internal)
            force_refresh: Ask the token provider for a new token (internal)

        Returns:
            requests.Response object

        Raises:
            ItemNotFoundError: If the item does not exist
            GraphAPIRateLimitError: If rate limited and max retries exceeded
            GraphAPIError: If request fails after retries
        """
        token = self.token_provider(force_refresh)

        if endpoint.startswith("http"):
            url = endpoint
        else:
            url = f"{self.base_url}{endpoint}" if endpoint.startswith("/") else f"{self.base_url}/{endpoint}"

        headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

        logger.debug(f"{method} {url} (retry {retry_count}/{self.max_retries})")

        try:
            response = self._session.request(
                method=method,
                url=url,
                params=params,
                json=json,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise GraphAPIError(f"{method} {url} failed: {e}") from e

        # Handle rate limiting (429)
        if response.status_code == 429:
            retry_after = int(response.headers.get("Retry-After", 60))

            if retry_count < self.max_retries:
                logger.warning(
                    f"Rate limited (429), waiting {retry_after}s before retry {retry_count + 1}/{self.max_retries}"
                )
                time.sleep(retry_after)
                return self._request(method, endpoint, params, json, retry_count + 1)
            raise GraphAPIRateLimitError(
                f"Rate limit exceeded after {self.max_retries} retries", status_code=429
            )

        # Handle authentication errors (401)
        if response.status_code == 401:
            error_code, error_msg = _parse_error(response)
            logger.error(f"401 Unauthorized: {error_msg}")

            if retry_count < self.max_retries:
                logger.warning(
                    f"Authentication failed (401), refreshing token and retrying {retry_count + 1}/{self.max_retries}"
                )
                return self._request(method, endpoint, params, json, retry_count + 1, force_refresh=True)
            raise GraphAPIError(
                f"Authentication failed after {self.max_retries} retries: {error_msg}",
                status_code=401,
                error_code=error_code,
            )

        # Handle server errors (500-599) with exponential backoff
        if 500 <= response.status_code < 600:
            if retry_count < self.max_retries:
                wait_time = min(2 ** retry_count, 30)  # Exponential backoff, max 30s
                logger.warning(
                    f"Server error ({response.status_code}), waiting {wait_time}s "
                    f"before retry {retry_count + 1}/{self.max_retries}"
                )
                time.sleep(wait_time)
                return self._request(method, endpoint, params, json, retry_count + 1)
            raise GraphAPIError(
                f"Server error after {self.max_retries} retries: {response.status_code} {response.text}",
                status_code=response.status_code,
            )

        # Handle client errors (400-499, except 401 and 429 handled above)
        if 400 <= response.status_code < 500:
            error_code, error_detail = _parse_error(response)
            error_msg = f"Graph API request failed: {response.status_code} - {error_detail}"

            if error_code == ITEM_NOT_FOUND_CODE or response.status_code == 404:
                logger.debug(f"{method} {url}: item not found ({error_code})")
                raise ItemNotFoundError(error_msg, status_code=response.status_code, error_code=error_code)

            logger.error(f"{method} {url} failed: {error_msg}")
            raise GraphAPIError(error_msg, status_code=response.status_code, error_code=error_code)

        return response

    def get(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        GET request to Graph API.

        Args:
            endpoint: API endpoint
            params: Query parameters

        Returns:
            JSON response as dictionary
        """
        response = self._request("GET", endpoint, params=params)
        return response.json()

    def post(self, endpoint: str, json: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        POST request to Graph API.

        Args:
            endpoint: API endpoint
            json: JSON body

        Returns:
            JSON response as dictionary (empty for 202/204)
        """
        response = self._request("POST", endpoint, json=json)
        return response.json() if response.content else {}

    def patch(self, endpoint: str, json: Dict[str, Any]) -> Dict[str, Any]:
        """
        PATCH request to Graph API.

        Args:
            endpoint: API endpoint
            json: JSON body with fields to update

        Returns:
            JSON response as dictionary
        """
        response = self._request("PATCH", endpoint, json=json)
        return response.json() if response.content else {}
