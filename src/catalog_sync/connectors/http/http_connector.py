"""
HTTP connector for fetching feed documents and image binaries.
"""

import logging
import time
from typing import Optional
from urllib.parse import urlencode

import requests

from ...core.connector import Connector, ConnectorRequest, ConnectorResponse


logger = logging.getLogger(__name__)


class HttpConnector(Connector):
    """
    Generic HTTP connector.
    
    Supports:
    - GET and HEAD requests
    - Custom headers
    - A bounded timeout on every call
    - Rate limiting
    - Retries with exponential backoff on transport errors
    """

    def __init__(
        self,
        name: str = "http",
        rate_limit_delay: float = 0.0,
        timeout: int = 30,
        max_retries: int = 3,
        user_agent: Optional[str] = None,
        backoff_base: float = 1.0,
    ):
        """
        Initialize the HTTP connector.
        
        Args:
            name: Connector name
            rate_limit_delay: Minimum seconds between requests
            timeout: Request timeout in seconds
            max_retries: Maximum attempts for requests that fail in transport
            user_agent: Custom User-Agent header
            backoff_base: Seconds of the first backoff; doubles per retry
        """
        self.name = name
        self.rate_limit_delay = rate_limit_delay
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.user_agent = user_agent or "CatalogSync/1.4"
        self.backoff_base = backoff_base
        self.last_request_time = 0.0
        self.session = requests.Session()

    def fetch(self, request: ConnectorRequest) -> ConnectorResponse:
        """
        Fetch a URL.
        
        Non-2xx responses are returned as-is; only transport errors are
        retried. After the last failed attempt the response carries
        status_code 0 and an error message.
        """
        self._wait_for_rate_limit()

        headers = dict(request.headers or {})
        if "User-Agent" not in headers:
            headers["User-Agent"] = self.user_agent

        url = request.uri
        if request.params:
            url = f"{url}?{urlencode(request.params)}"

        method = request.method.upper()
        if method not in ("GET", "HEAD"):
            raise ValueError(f"Unsupported HTTP method: {request.method}")

        last_error = None
        for attempt in range(self.max_retries):
            try:
                start_time = time.time()
                response = self.session.request(
                    method,
                    url,
                    headers=headers,
                    timeout=self.timeout,
                )
                duration_ms = int((time.time() - start_time) * 1000)

                return ConnectorResponse(
                    status_code=response.status_code,
                    body=response.content,
                    headers=dict(response.headers),
                    duration_ms=duration_ms,
                )

            except requests.exceptions.RequestException as e:
                last_error = str(e)
                logger.warning(
                    f"Request to {url} failed (attempt {attempt + 1}/{self.max_retries}): {e}"
                )

                if attempt < self.max_retries - 1:
                    time.sleep(self.backoff_base * (2 ** attempt))

        return ConnectorResponse(
            status_code=0,
            error_message=f"Request failed after {self.max_retries} attempts: {last_error}",
        )

    def _wait_for_rate_limit(self) -> None:
        """Enforce rate limiting between requests."""
        if self.rate_limit_delay > 0:
            elapsed = time.time() - self.last_request_time
            if elapsed < self.rate_limit_delay:
                time.sleep(self.rate_limit_delay - elapsed)
        self.last_request_time = time.time()

    def get_name(self) -> str:
        """Return the connector name."""
        return self.name

    def close(self) -> None:
        """Close the session."""
        if self.session:
            self.session.close()
