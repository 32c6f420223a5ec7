"""Access token lookup and proactive long-lived token renewal."""

from datetime import timedelta
from typing import Optional, Union

from mediadisplay.core.exceptions import (
    NotAuthorized,
    RefreshFailed,
    RemoteAPIError,
    RemoteRequestFailed,
)
from mediadisplay.core.fetcher import CachedFetcher
from mediadisplay.models.schema import Account, utcnow
from mediadisplay.storage.database import SessionFactory, session_scope
from mediadisplay.storage.repository import AccountRepository
from mediadisplay.utils.config import RENEWAL_WINDOW_DAYS
from mediadisplay.utils.logging import get_logger

logger = get_logger(__name__)


class CredentialManager:
    """
    Resolves the access token for a user and keeps it alive.

    Long-lived tokens last 60 days. Once a token is inside the renewal
    window it is exchanged for a fresh one before it is used. The
    read-refresh-write sequence is not atomic: two calls racing on the
    same account may both refresh, and the last token written wins.
    """

    def __init__(
        self,
        fetcher: CachedFetcher,
        session_factory: Optional[SessionFactory] = None,
        renewal_window_days: int = RENEWAL_WINDOW_DAYS,
    ):
        self.fetcher = fetcher
        self.session_factory = session_factory
        self.renewal_window = timedelta(days=renewal_window_days)
        self.refresh_count = 0

    async def get_account(self, key: Union[str, int, None] = None) -> Account:
        """
        Look up an account.

        Args:
            key: Username, user ID, or None for the default account

        Returns:
            Account instance

        Raises:
            NotAuthorized: If no such account is stored
        """
        async with session_scope(self.session_factory) as session:
            account = await AccountRepository.get(session, key)
        if account is None:
            raise NotAuthorized(f"{key or 'default user'} is not an authorized user.")
        return account

    async def resolve(self, username: Optional[str] = None) -> str:
        """
        Get a usable access token for a user, renewing it when due.

        Args:
            username: Instagram username (default: the first account)

        Returns:
            Access token

        Raises:
            NotAuthorized: If no such account is stored
        """
        account = await self.get_account(username)
        return await self.renew_if_due(account)

    def is_due(self, account: Account) -> bool:
        if account.token_renews is None:
            return True
        return account.token_renews - self.renewal_window < utcnow()

    async def renew_if_due(self, account: Account) -> str:
        """
        Refresh the account's token if it is inside the renewal window.

        A failed refresh is not fatal, the current token is returned and
        the refresh is attempted again on the next request.

        Args:
            account: The account whose token is about to be used

        Returns:
            The token to use for the request
        """
        if not self.is_due(account):
            return account.token

        try:
            new_token = await self._refresh(account.token)
        except (RefreshFailed, RemoteAPIError, RemoteRequestFailed) as e:
            logger.warning(f"Could not refresh long-lived access token for {account.username}: {e}")
            return account.token

        async with session_scope(self.session_factory) as session:
            await AccountRepository.update_token(session, account.username, new_token)

        self.refresh_count += 1
        logger.info(f"Long-lived access token refreshed for {account.username}")
        return new_token

    async def renew_for_token(self, token: str) -> str:
        """
        Renew a token found in an outgoing request, if it belongs to a stored account.

        Tokens are encrypted with a random IV so accounts are compared in memory.
        """
        async with session_scope(self.session_factory) as session:
            accounts = await AccountRepository.get_all(session)

        for account in accounts:
            if account.token == token:
                return await self.renew_if_due(account)

        return token

    async def _refresh(self, token: str) -> str:
        response = await self.fetcher.fetch(
            "refresh_access_token",
            {"grant_type": "ig_refresh_token", "access_token": token},
            use_cache=False,
        )
        new_token = response.get("access_token")
        if not new_token:
            raise RefreshFailed("Refresh response did not include an access token")
        return new_token
