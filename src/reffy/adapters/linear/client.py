"""
Linear API Client - Low-level GraphQL client for the Linear API.

This handles the raw HTTP communication with Linear.
The LinearGateway uses this to implement the RemoteGatewayPort.

Linear API documentation:
https://developers.linear.app/docs/graphql/working-with-the-graphql-api
"""

import logging
import random
import time
from typing import Any

import requests
from requests.adapters import HTTPAdapter

from reffy.core.exceptions import (
    AccessDeniedError,
    AuthenticationError,
    RateLimitError,
    ResourceNotFoundError,
    TrackerError,
    TransientError,
)


RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


def get_retry_after(response: requests.Response) -> int | None:
    """Parse the Retry-After header (seconds) if present."""
    value = response.headers.get("Retry-After")
    if value is None:
        return None
    try:
        return max(0, int(float(value)))
    except (TypeError, ValueError):
        return None


def calculate_delay(
    attempt: int,
    initial_delay: float,
    max_delay: float,
    backoff_factor: float,
    jitter: float,
    retry_after: int | None = None,
) -> float:
    """
    Calculate delay before next retry using exponential backoff with jitter.

    Args:
        attempt: Current attempt number (0-indexed)
        initial_delay: Delay for the first retry in seconds
        max_delay: Upper bound for any delay
        backoff_factor: Multiplier applied per attempt
        jitter: Random jitter factor (0.1 = up to 10% extra)
        retry_after: Optional Retry-After header value in seconds

    Returns:
        Delay in seconds
    """
    if retry_after is not None:
        base_delay = min(float(retry_after), max_delay)
    else:
        base_delay = min(initial_delay * (backoff_factor**attempt), max_delay)
    return base_delay + base_delay * jitter * random.random()


class LinearApiClient:
    """
    Low-level Linear GraphQL API client.

    Handles authentication, request/response, retries, and error handling.

    Features:
    - OAuth bearer token (preferred) or personal API key authentication
    - Automatic retry with exponential backoff for transient failures
    - Connection pooling for performance
    """

    API_URL = "https://api.linear.app/graphql"

    # Default retry configuration
    DEFAULT_MAX_RETRIES = 3
    DEFAULT_INITIAL_DELAY = 1.0
    DEFAULT_MAX_DELAY = 60.0
    DEFAULT_BACKOFF_FACTOR = 2.0
    DEFAULT_JITTER = 0.1

    # Connection pool settings
    DEFAULT_POOL_CONNECTIONS = 10
    DEFAULT_POOL_MAXSIZE = 10
    DEFAULT_TIMEOUT = 30.0

    def __init__(
        self,
        api_key: str | None = None,
        oauth_token: str | None = None,
        api_url: str = API_URL,
        max_retries: int = DEFAULT_MAX_RETRIES,
        initial_delay: float = DEFAULT_INITIAL_DELAY,
        max_delay: float = DEFAULT_MAX_DELAY,
        backoff_factor: float = DEFAULT_BACKOFF_FACTOR,
        jitter: float = DEFAULT_JITTER,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        """
        Initialize the Linear client.

        Args:
            api_key: Linear personal API key
            oauth_token: OAuth access token, sent as a bearer token; wins over api_key
            api_url: GraphQL endpoint
            max_retries: Maximum retry attempts for transient failures
            initial_delay: Initial retry delay in seconds
            max_delay: Maximum retry delay in seconds
            backoff_factor: Multiplier for exponential backoff
            jitter: Random jitter factor (0.1 = 10%)
            timeout: Request timeout in seconds
        """
        self.api_key = api_key
        self.oauth_token = oauth_token
        self.api_url = api_url
        self.timeout = timeout
        self.logger = logging.getLogger("LinearApiClient")

        # Retry configuration
        self.max_retries = max_retries
        self.initial_delay = initial_delay
        self.max_delay = max_delay
        self.backoff_factor = backoff_factor
        self.jitter = jitter

        self.headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        if oauth_token:
            self.headers["Authorization"] = f"Bearer {oauth_token}"
        elif api_key:
            self.headers["Authorization"] = api_key

        # Configure session with connection pooling
        self._session = requests.Session()
        self._session.headers.update(self.headers)

        adapter = HTTPAdapter(
            pool_connections=self.DEFAULT_POOL_CONNECTIONS,
            pool_maxsize=self.DEFAULT_POOL_MAXSIZE,
        )
        self._session.mount("https://", adapter)
        self._session.mount("http://", adapter)

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key or self.oauth_token)

    # -------------------------------------------------------------------------
    # Core Request Methods
    # -------------------------------------------------------------------------

    def execute(self, document: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
        """
        Execute a GraphQL document with retry.

        Args:
            document: GraphQL query or mutation
            variables: Variables for the document

        Returns:
            The response's `data` object

        Raises:
            TrackerError: On transport, HTTP or GraphQL errors
        """
        payload = {"query": document, "variables": variables or {}}
        last_exception: Exception | None = None

        for attempt in range(self.max_retries + 1):
            try:
                response = self._session.post(self.api_url, json=payload, timeout=self.timeout)

                if response.status_code in RETRYABLE_STATUS_CODES:
                    retry_after = get_retry_after(response)
                    if attempt < self.max_retries:
                        delay = calculate_delay(
                            attempt,
                            initial_delay=self.initial_delay,
                            max_delay=self.max_delay,
                            backoff_factor=self.backoff_factor,
                            jitter=self.jitter,
                            retry_after=retry_after,
                        )
                        self.logger.warning(
                            f"Retryable error {response.status_code} from Linear, "
                            f"attempt {attempt + 1}/{self.max_retries + 1}, "
                            f"retrying in {delay:.2f}s"
                        )
                        time.sleep(delay)
                        continue

                    if response.status_code == 429:
                        raise RateLimitError("Linear rate limit exceeded", retry_after=retry_after)
                    raise TransientError(f"Linear server error {response.status_code}")

                return self._handle_response(response)

            except requests.exceptions.ConnectionError as e:
                last_exception = e
                if attempt < self.max_retries:
                    delay = self._retry_delay(attempt)
                    self.logger.warning(f"Connection error to Linear, retrying in {delay:.2f}s")
                    time.sleep(delay)
                    continue
                raise TrackerError(f"Connection failed: {e}", cause=e) from e

            except requests.exceptions.Timeout as e:
                last_exception = e
                if attempt < self.max_retries:
                    delay = self._retry_delay(attempt)
                    self.logger.warning(f"Timeout talking to Linear, retrying in {delay:.2f}s")
                    time.sleep(delay)
                    continue
                raise TrackerError(f"Request timed out: {e}", cause=e) from e

        raise TrackerError(
            f"Request failed after {self.max_retries + 1} attempts", cause=last_exception
        )

    def query(self, document: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
        """Execute a GraphQL query."""
        return self.execute(document, variables)

    def mutate(self, document: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
        """Execute a GraphQL mutation."""
        return self.execute(document, variables)

    def put_file(self, url: str, content: bytes, headers: dict[str, str]) -> None:
        """
        Upload raw bytes to a pre-signed URL.

        The upload URL is not the GraphQL endpoint and must not receive the
        Linear Authorization header, so this bypasses the session.
        """
        try:
            response = requests.put(url, data=content, headers=headers, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise TrackerError(f"Attachment upload failed: {e}", cause=e) from e
        if not response.ok:
            raise TrackerError(f"attachment_upload_{response.status_code}")

    def _retry_delay(self, attempt: int) -> float:
        return calculate_delay(
            attempt,
            initial_delay=self.initial_delay,
            max_delay=self.max_delay,
            backoff_factor=self.backoff_factor,
            jitter=self.jitter,
        )

    # -------------------------------------------------------------------------
    # Response Handling
    # -------------------------------------------------------------------------

    def _handle_response(self, response: requests.Response) -> dict[str, Any]:
        """Handle API response and convert errors to typed exceptions."""
        status = response.status_code

        if status == 401:
            raise AuthenticationError("Linear authentication failed. Check your API key or token.")
        if status == 403:
            raise AccessDeniedError("Permission denied by Linear. Check token scopes.")
        if status == 404:
            raise ResourceNotFoundError("Linear endpoint not found")
        if not response.ok:
            error_body = response.text[:500] if response.text else ""
            raise TrackerError(f"linear_http_{status}: {error_body}")

        try:
            payload = response.json()
        except ValueError as e:
            raise TrackerError("Linear returned a non-JSON response", cause=e) from e

        if not isinstance(payload, dict):
            raise TrackerError("Linear returned an unexpected payload")

        errors = payload.get("errors")
        if errors:
            messages = [
                str(err.get("message", err)) if isinstance(err, dict) else str(err)
                for err in (errors if isinstance(errors, list) else [errors])
            ]
            joined = "; ".join(messages)
            if "not found" in joined.lower():
                raise ResourceNotFoundError(f"Linear: {joined}")
            raise TrackerError(f"Linear GraphQL error: {joined}")

        data = payload.get("data")
        if not isinstance(data, dict):
            raise TrackerError("linear_empty_data")
        return data

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def close(self) -> None:
        """Close the HTTP session."""
        self._session.close()

    def __enter__(self) -> "LinearApiClient":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
