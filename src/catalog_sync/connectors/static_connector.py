"""
Static connector for tests and offline runs.

Serves fixed documents from memory without any network access. Useful for
exercising the whole sync path against a known feed.
"""

import logging
import time
from typing import Dict, List, Optional, Union

from ..core.connector import Connector, ConnectorRequest, ConnectorResponse

logger = logging.getLogger(__name__)


class StaticConnector(Connector):
    """
    Deterministic in-memory connector.

    Features:
    - Responses keyed by exact URL
    - 404 for unknown URLs
    - Simulated transport errors for selected URLs
    - Request history for assertions
    """

    def __init__(
        self,
        documents: Optional[Dict[str, Union[str, bytes]]] = None,
        error_urls: Optional[List[str]] = None,
        status_overrides: Optional[Dict[str, int]] = None,
        simulate_latency_ms: int = 0,
    ):
        """
        Initialize the static connector.

        Args:
            documents: URL -> body served with status 200
            error_urls: URLs that fail as if the host were unreachable
            status_overrides: URL -> status code to return instead of 200
            simulate_latency_ms: Simulated latency in milliseconds
        """
        self.documents: Dict[str, bytes] = {}
        for url, body in (documents or {}).items():
            self.set_document(url, body)
        self.error_urls = set(error_urls or [])
        self.status_overrides = dict(status_overrides or {})
        self.simulate_latency_ms = simulate_latency_ms
        self.request_history: List[ConnectorRequest] = []

    def set_document(self, url: str, body: Union[str, bytes]) -> None:
        """Serve body at url."""
        self.documents[url] = body.encode("utf-8") if isinstance(body, str) else body

    def fetch(self, request: ConnectorRequest) -> ConnectorResponse:
        start_time = time.time()
        self.request_history.append(request)

        if self.simulate_latency_ms > 0:
            time.sleep(self.simulate_latency_ms / 1000.0)

        url = request.uri
        if url in self.error_urls:
            logger.debug(f"Simulated transport error for {url}")
            return ConnectorResponse(
                status_code=0,
                error_message=f"Simulated connection error for {url}",
            )

        duration_ms = int((time.time() - start_time) * 1000)

        if url in self.status_overrides:
            return ConnectorResponse(
                status_code=self.status_overrides[url],
                body=self.documents.get(url, b""),
                duration_ms=duration_ms,
            )

        if url not in self.documents:
            return ConnectorResponse(status_code=404, body=b"Not Found", duration_ms=duration_ms)

        return ConnectorResponse(
            status_code=200,
            body=self.documents[url],
            headers={"Content-Type": "application/xml"},
            duration_ms=duration_ms,
        )

    def get_name(self) -> str:
        return "static"

    def reset(self) -> None:
        """Clear request history."""
        self.request_history = []
