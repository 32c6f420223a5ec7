"""Cached access to the Graph API."""

import hashlib
import re
from typing import Awaitable, Callable, Optional

from mediadisplay.core.exceptions import RemoteAPIError, RemoteRequestFailed
from mediadisplay.core.graph_client import GraphClient
from mediadisplay.core.notifier import AdminNotifier
from mediadisplay.storage.cache import CacheStore
from mediadisplay.utils.config import CACHE_TTL, CACHE_TTL_CEILING
from mediadisplay.utils.logging import get_logger, log_error

logger = get_logger(__name__)

TokenRenewer = Callable[[str], Awaitable[str]]

_TOKEN_PATTERN = re.compile(r"(access_token=)[^&\s]+")


def redact(endpoint: str, params: Optional[dict] = None) -> tuple:
    """Strip access tokens from an endpoint and its params for logging."""
    endpoint = _TOKEN_PATTERN.sub(r"\1***", endpoint)
    if params and "access_token" in params:
        params = {**params, "access_token": "***"}
    return endpoint, params


class CachedFetcher:
    """
    GETs Graph API endpoints through the response cache.

    Before a cached request carrying an access token goes out, the token
    renewer (the credential manager) gets a chance to swap in a refreshed
    token, unless the caller has renewed it already. Uncached requests (the
    refresh itself) skip the renewer.
    """

    def __init__(
        self,
        client: GraphClient,
        cache: CacheStore,
        notifier: Optional[AdminNotifier] = None,
        token_renewer: Optional[TokenRenewer] = None,
    ):
        self.client = client
        self.cache = cache
        self.notifier = notifier
        self.token_renewer = token_renewer

    def cache_key(self, endpoint: str, params: Optional[dict] = None, username: Optional[str] = None) -> str:
        """Page size and username are part of the key so users and page sizes never collide."""
        name = endpoint.replace(self.client.base_url, "")
        if params and "limit" in params:
            name += str(params["limit"])
        if username:
            name += username
        return hashlib.md5(name.encode("utf-8")).hexdigest()

    @staticmethod
    def resolve_ttl(ttl: Optional[int] = None) -> int:
        ttl = ttl or CACHE_TTL
        # Week-long or longer requests would serve stale media
        if ttl >= CACHE_TTL_CEILING:
            return CACHE_TTL
        return ttl

    async def fetch(
        self,
        endpoint: str,
        params: Optional[dict] = None,
        *,
        use_cache: bool = True,
        ttl: Optional[int] = None,
        username: Optional[str] = None,
        renewed: bool = False,
    ) -> dict:
        """
        Fetch an endpoint, from the cache when possible.

        Args:
            endpoint: Path relative to the Graph API root, or an absolute paging URL
            params: Query parameters
            use_cache: False for requests that must always hit the network
            ttl: Cache lifetime in seconds (default: CACHE_TTL)
            username: The account the request is made for, part of the cache key
            renewed: The caller already renewed the token, skip the token renewer

        Returns:
            Decoded JSON object

        Raises:
            RemoteAPIError: If the API answered with an error object
            RemoteRequestFailed: If the request itself failed
        """
        params = dict(params or {})

        if use_cache and not renewed and params.get("access_token") and self.token_renewer is not None:
            params["access_token"] = await self.token_renewer(params["access_token"])

        try:
            if not use_cache:
                return await self.client.get_json(endpoint, params)

            return await self.cache.get_or_compute(
                self.cache_key(endpoint, params, username),
                lambda: self.client.get_json(endpoint, params),
                ttl=self.resolve_ttl(ttl),
            )

        except (RemoteAPIError, RemoteRequestFailed) as e:
            safe_endpoint, safe_params = redact(endpoint, params)
            log_error(logger, "API Request Failed", {
                "endpoint": safe_endpoint,
                "data": safe_params,
                "useCache": use_cache,
                "response": e.error if isinstance(e, RemoteAPIError) else e.response,
                "status": e.status,
                "message": str(e),
            })

            if isinstance(e, RemoteAPIError) and e.is_oauth and self.notifier is not None:
                await self.notifier.notify_oauth_error(e.error)

            raise
