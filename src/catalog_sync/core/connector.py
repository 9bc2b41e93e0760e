"""
Connector interface for fetching documents and binaries from remote sources.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass
class ConnectorRequest:
    """
    Request to be sent by a connector.
    
    Attributes:
        uri: The URI to fetch
        method: HTTP method (GET, HEAD)
        headers: Optional request headers
        params: Optional query parameters
        metadata: Additional connector-specific metadata
    """
    uri: str
    method: str = "GET"
    headers: Optional[Dict[str, str]] = None
    params: Optional[Dict[str, Any]] = None
    metadata: Optional[Dict[str, Any]] = None


@dataclass
class ConnectorResponse:
    """
    Response from a connector.
    
    Attributes:
        status_code: HTTP status code (0 when no response was received)
        body: Raw response body
        headers: Response headers
        duration_ms: Time taken for the request in milliseconds
        error_message: Error message if request failed
    """
    status_code: int
    body: bytes = b""
    headers: Optional[Dict[str, str]] = None
    duration_ms: Optional[int] = None
    error_message: Optional[str] = None

    @property
    def ok(self) -> bool:
        """True for a 2xx response without a transport error."""
        return self.error_message is None and 200 <= self.status_code < 300


class Connector(ABC):
    """
    Abstract base class for all connectors.
    
    Connectors fetch raw bytes from external sources; parsing is left
    to the caller.
    """

    @abstractmethod
    def fetch(self, request: ConnectorRequest) -> ConnectorResponse:
        """
        Fetch data from the external source.
        
        Transport failures are reported through the response
        (status_code 0 and error_message) rather than raised.
        
        Args:
            request: The request to execute
            
        Returns:
            ConnectorResponse with the result
        """
        pass

    @abstractmethod
    def get_name(self) -> str:
        """Return the connector name/identifier."""
        pass

    def close(self) -> None:
        """Close any open resources. Optional."""
        pass
