"""HTTP transport for the Instagram Graph API."""

from typing import Optional

import httpx

from mediadisplay.core.exceptions import RemoteAPIError, RemoteRequestFailed
from mediadisplay.utils.config import CONNECT_TIMEOUT, GRAPH_API_URL, READ_TIMEOUT, USER_AGENT
from mediadisplay.utils.logging import get_logger

logger = get_logger(__name__)


class GraphClient:
    """
    Issues GET requests against the Graph API and returns parsed JSON.

    Can be used as an async context manager; otherwise the underlying
    ``httpx.AsyncClient`` is created on first use and released by ``aclose``.
    """

    def __init__(
        self,
        base_url: str = GRAPH_API_URL,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the client.

        Args:
            base_url: Graph API root including the version
            transport: Optional httpx transport (tests pass a MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self.transport = transport
        self.client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        self._get_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    def _get_client(self) -> httpx.AsyncClient:
        if self.client is None:
            self.client = httpx.AsyncClient(
                timeout=httpx.Timeout(CONNECT_TIMEOUT, read=READ_TIMEOUT),
                follow_redirects=True,
                headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
                transport=self.transport,
            )
        return self.client

    async def aclose(self) -> None:
        if self.client is not None:
            await self.client.aclose()
            self.client = None

    def build_url(self, endpoint: str) -> str:
        """Absolute URLs (paging links) are used as they are."""
        if "://" in endpoint:
            return endpoint
        return f"{self.base_url}/{endpoint.lstrip('/')}"

    async def get_json(self, endpoint: str, params: Optional[dict] = None) -> dict:
        """
        GET an endpoint and decode the JSON body.

        Args:
            endpoint: Path relative to the base URL, or an absolute URL
            params: Query parameters

        Returns:
            Decoded JSON object

        Raises:
            RemoteAPIError: If the body carries an ``error`` object
            RemoteRequestFailed: On transport errors, non-2xx status or a malformed body
        """
        url = self.build_url(endpoint)

        try:
            response = await self._get_client().get(url, params=params or None)
        except httpx.HTTPError as e:
            raise RemoteRequestFailed(f"Network error requesting {endpoint}: {e}")

        try:
            data = response.json()
        except ValueError:
            logger.debug(f"Response preview: {response.text[:500]}")
            raise RemoteRequestFailed(
                f"Invalid JSON response (HTTP {response.status_code})",
                status=response.status_code,
                response=response.text[:500],
            )

        # The Graph API reports most failures as an error object with a 4xx status
        if isinstance(data, dict) and isinstance(data.get("error"), dict):
            raise RemoteAPIError(
                data["error"].get("message", "API error"),
                error=data["error"],
                status=response.status_code,
            )

        if not response.is_success:
            raise RemoteRequestFailed(
                f"HTTP {response.status_code}",
                status=response.status_code,
                response=data,
            )

        if not isinstance(data, dict):
            raise RemoteRequestFailed(
                "Unexpected response body",
                status=response.status_code,
                response=data,
            )

        return data

    async def download(self, url: str) -> bytes:
        """
        Download a media file, e.g. to read image dimensions.

        Raises:
            RemoteRequestFailed: On transport errors or non-2xx status
        """
        try:
            response = await self._get_client().get(url)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise RemoteRequestFailed(f"HTTP {e.response.status_code} downloading {url}", status=e.response.status_code)
        except httpx.HTTPError as e:
            raise RemoteRequestFailed(f"Network error downloading {url}: {e}")
        return response.content
