"""Profile retrieval for authorized users."""

from typing import Optional

from mediadisplay.core.credentials import CredentialManager
from mediadisplay.core.exceptions import MediaDisplayError, NotAuthorized
from mediadisplay.core.fetcher import CachedFetcher
from mediadisplay.storage.database import SessionFactory, session_scope
from mediadisplay.storage.repository import AccountRepository
from mediadisplay.utils.config import PROFILE_FIELDS
from mediadisplay.utils.logging import get_logger, log_error

logger = get_logger(__name__)


class ProfileService:
    """Fetches a user's profile and keeps the stored media count current."""

    def __init__(
        self,
        fetcher: CachedFetcher,
        credentials: CredentialManager,
        session_factory: Optional[SessionFactory] = None,
    ):
        self.fetcher = fetcher
        self.credentials = credentials
        self.session_factory = session_factory

    async def get_profile(self, username: Optional[str] = None, access_token: Optional[str] = None) -> dict:
        """
        Get a user's profile.

        Args:
            username: Instagram username (default: the first account)
            access_token: Token to use instead of the stored one, e.g. when
                checking a token before the account is added

        Returns:
            Profile dict (id, user_id, username, account_type, media_count,
            profile_picture_url), or an empty dict on any failure
        """
        params = {"fields": ",".join(PROFILE_FIELDS)}
        account = None

        try:
            if access_token is None:
                account = await self.credentials.get_account(username)
                params["access_token"] = await self.credentials.renew_if_due(account)
                profile = await self.fetcher.fetch("me", params, username=account.username, renewed=True)
            else:
                # A token that is not stored yet is never served from the cache
                params["access_token"] = access_token
                profile = await self.fetcher.fetch("me", params, use_cache=False, username=username)

        except NotAuthorized as e:
            log_error(logger, str(e))
            return {}
        except MediaDisplayError as e:
            logger.debug(f"Profile request failed: {e}")
            return {}

        if not profile.get("username"):
            log_error(logger, "Could not get profile", {"username": username})
            return {}

        if account is not None:
            async with session_scope(self.session_factory) as session:
                await AccountRepository.update_media_count(
                    session, account.username, profile.get("media_count", 0)
                )

        return profile
