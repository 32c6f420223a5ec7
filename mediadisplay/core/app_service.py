"""Application service layer: the public media, profile and account operations."""

import dataclasses
from typing import Dict, List, Optional, Union

from mediadisplay.core.assembler import MediaAssembler
from mediadisplay.core.credentials import CredentialManager
from mediadisplay.core.exceptions import MediaDisplayError, NoData, NotAuthorized
from mediadisplay.core.fetcher import CachedFetcher
from mediadisplay.core.graph_client import GraphClient
from mediadisplay.core.notifier import AdminNotifier
from mediadisplay.core.pagination import CursorStore, PaginationAccumulator
from mediadisplay.core.profile_service import ProfileService
from mediadisplay.core.serializers import to_dicts, to_json
from mediadisplay.models.data_models import (
    OUTPUT_DICT,
    OUTPUT_JSON,
    NormalizedMedia,
    PageCursor,
    RetrievalOptions,
)
from mediadisplay.storage.cache import CacheStore
from mediadisplay.storage.database import SessionFactory, session_scope
from mediadisplay.storage.repository import AccountRepository
from mediadisplay.utils.config import (
    DEFAULT_IMAGE_COUNT,
    DEFAULT_PAGE_LIMIT,
    MAX_LIMIT,
    MEDIA_TYPE_ALBUM,
    MEDIA_TYPE_IMAGE,
    MEDIA_TYPE_VIDEO,
    MEDIA_TYPES,
    TAG_SEARCH_MAX_PAGES,
)
from mediadisplay.utils.logging import get_logger, log_error

logger = get_logger(__name__)

MediaResult = Union[List[NormalizedMedia], List[dict], str]


class MediaService:
    """
    Main application service for displaying a user's Instagram media.

    Retrieval never raises for remote or authorization failures: the
    caller gets an empty value of the declared shape and the failure is
    in the log.
    """

    def __init__(
        self,
        session_factory: Optional[SessionFactory] = None,
        client: Optional[GraphClient] = None,
        cache: Optional[CacheStore] = None,
        notifier: Optional[AdminNotifier] = None,
        cursors: Optional[CursorStore] = None,
    ):
        """
        Initialize service.

        Args:
            session_factory: Database session factory (default: the configured one)
            client: Graph API transport
            cache: Response cache
            notifier: Operator notifier for authorisation errors
            cursors: Cursor slots for "load more" pagination
        """
        self.session_factory = session_factory
        self.client = client or GraphClient()
        self.cache = cache or CacheStore(session_factory)
        self.notifier = notifier or AdminNotifier(self.cache)
        self.cursors = cursors or CursorStore()

        self.fetcher = CachedFetcher(self.client, self.cache, self.notifier)
        self.credentials = CredentialManager(self.fetcher, session_factory)
        self.fetcher.token_renewer = self.credentials.renew_for_token

        self.accumulator = PaginationAccumulator(self.fetcher)
        self.assembler = MediaAssembler(self.fetcher)
        self.profiles = ProfileService(self.fetcher, self.credentials, session_factory)

        self.image_count = DEFAULT_IMAGE_COUNT
        self.max_limit = MAX_LIMIT
        self.page_limit = DEFAULT_PAGE_LIMIT

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    async def aclose(self) -> None:
        await self.client.aclose()

    def set_image_count(self, image_count: int = DEFAULT_IMAGE_COUNT) -> "MediaService":
        self.image_count = int(image_count)
        return self

    def set_max_limit(self, max_limit: int = MAX_LIMIT) -> "MediaService":
        self.max_limit = int(max_limit)
        return self

    # ------------------------------------------------------------------
    # Media
    # ------------------------------------------------------------------

    async def get_images(self, username: Optional[str] = None, count: int = 0) -> List[NormalizedMedia]:
        """
        Get images for a user. Videos are included as their thumbnails.

        Args:
            username: Instagram username (default: the first account)
            count: Number of images, 0 for all found in the first request
        """
        return await self._get_media_by_type(MEDIA_TYPE_IMAGE, username, count)

    async def get_videos(self, username: Optional[str] = None, count: int = DEFAULT_IMAGE_COUNT) -> List[NormalizedMedia]:
        return await self._get_media_by_type(MEDIA_TYPE_VIDEO, username, count or self.image_count)

    async def get_video(self, username: Optional[str] = None) -> Optional[NormalizedMedia]:
        """The most recent video, or None."""
        videos = await self.get_videos(username, 1)
        return videos[0] if videos else None

    async def get_albums(self, username: Optional[str] = None, count: int = DEFAULT_IMAGE_COUNT) -> List[NormalizedMedia]:
        """
        Get carousel albums with their children.

        Args:
            username: Instagram username (default: the first account)
            count: Number of albums, 0 for the image count
        """
        return await self._get_media_by_type(MEDIA_TYPE_ALBUM, username, count or self.image_count)

    async def get_album(self, username: Optional[str] = None) -> Optional[NormalizedMedia]:
        """The most recent carousel album, or None."""
        albums = await self.get_albums(username, 1)
        return albums[0] if albums else None

    get_carousel_albums = get_albums
    get_carousel_album = get_album

    async def get_media(
        self,
        username: Optional[str] = None,
        options: Optional[RetrievalOptions] = None,
    ) -> MediaResult:
        """
        Get media for a user.

        Prefer the typed shortcuts such as ``get_images`` where they fit.

        Args:
            username: Instagram username (default: the first account)
            options: Retrieval options; ``output`` selects NormalizedMedia
                objects, plain dicts, or a JSON string

        Returns:
            Media in the requested output shape, empty on failure
        """
        options = self.prepare_options(options or RetrievalOptions(limit=self.page_limit))
        items = await self._retrieve(username, options)

        if options.output == OUTPUT_JSON:
            return to_json(items)
        if options.output == OUTPUT_DICT:
            return to_dicts(items)
        return items

    def prepare_options(self, options: RetrievalOptions) -> RetrievalOptions:
        """Normalize type and tag; tag searches read full pages under a page ceiling."""
        options = dataclasses.replace(options)

        if options.type:
            options.type = options.type.upper()
            if options.type not in MEDIA_TYPES:
                logger.warning(f"Unknown media type ignored: {options.type}")
                options.type = ""

        if options.tag:
            options.tag = options.tag.lstrip("#")
            options.count = options.count or options.limit
            options.limit = self.max_limit
            if options.max_pages is None:
                options.max_pages = TAG_SEARCH_MAX_PAGES

        return options

    async def _get_media_by_type(self, media_type: str, username: Optional[str], count: int) -> List[NormalizedMedia]:
        if media_type == MEDIA_TYPE_IMAGE and count:
            # Nearly everything converts to an image, so the count is the page size
            options = RetrievalOptions(count=0, limit=count, type=media_type)
        else:
            options = RetrievalOptions(
                count=count,
                limit=self.max_limit if count else self.page_limit,
                type=media_type,
            )
        return await self.get_media(username, options)

    async def _retrieve(self, username: Optional[str], options: RetrievalOptions) -> List[NormalizedMedia]:
        context = options.context
        if not options.continuation:
            self.cursors.clear(context)

        try:
            account = await self.credentials.get_account(username)
        except NotAuthorized as e:
            log_error(logger, str(e))
            return []

        if not account.user_id:
            log_error(logger, "Could not get user ID", {"username": username})
            return []

        cursor = self.cursors.get(context) if options.continuation else None
        if cursor is not None and cursor.exhausted:
            logger.debug(f"Media feed exhausted for context {context!r}, no request made")
            return []

        token = await self.credentials.renew_if_due(account)

        try:
            page = await self.accumulator.accumulate(
                account.user_id, token, options, cursor=cursor, username=account.username
            )
        except NoData:
            log_error(logger, "Could not process user media", {"username": account.username})
            if options.continuation:
                self.cursors.set(context, PageCursor.exhausted_marker())
            return []
        except MediaDisplayError as e:
            logger.debug(f"Could not get user media for {account.username}: {e}")
            return []

        if options.continuation:
            self.cursors.set(context, page.cursor)

        # One album at a time, in feed order
        items = []
        for item in page.items:
            items.append(await self.assembler.assemble(item, options, token, account.username))
        return items

    # ------------------------------------------------------------------
    # Profile
    # ------------------------------------------------------------------

    async def get_profile(self, username: Optional[str] = None, access_token: Optional[str] = None) -> dict:
        """
        Get a user's profile: id, user_id, username, account_type,
        media_count and profile_picture_url. Empty on failure.
        """
        return await self.profiles.get_profile(username, access_token)

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    async def add_account(self, username: str, token: str) -> bool:
        """
        Authorize a user with a freshly generated long-lived token.

        The token is checked against the API before it is stored.

        Args:
            username: Instagram username
            token: Long-lived access token

        Returns:
            True if the account was stored
        """
        profile = await self.get_profile(username, token)
        if "id" not in profile:
            log_error(logger, f"Could not add user account {username}", profile)
            return False

        async with session_scope(self.session_factory) as session:
            await AccountRepository.upsert(session, {
                "username": username,
                "token": token,
                "user_id": str(profile["id"]),
                "account_type": profile.get("account_type", ""),
                "media_count": int(profile.get("media_count") or 0),
            })

        logger.info(f"Added user account: {username}")
        return True

    async def remove_account(self, username: str) -> bool:
        async with session_scope(self.session_factory) as session:
            removed = await AccountRepository.delete(session, username)

        if not removed:
            log_error(logger, f"{username} is not an authorized user.")
            return False

        logger.info(f"Removed user account: {username}")
        return True

    async def get_account(self, key: Union[str, int, None] = None) -> dict:
        """
        Get an account as a dict.

        Args:
            key: Username, user ID, or None for the default account

        Returns:
            Account dict, empty if not found
        """
        async with session_scope(self.session_factory) as session:
            account = await AccountRepository.get(session, key)
        return account.to_dict() if account else {}

    async def get_accounts(self, refresh: bool = False) -> Dict[str, dict]:
        """
        Get all accounts keyed by username.

        Args:
            refresh: Also request each profile, updating media counts

        Returns:
            Dictionary of account dicts
        """
        async with session_scope(self.session_factory) as session:
            accounts = await AccountRepository.get_all(session)

        result = {}
        for account in accounts:
            row = account.to_dict()
            if refresh:
                row.update(await self.get_profile(account.username))
            result[account.username] = row
        return result

    async def get_user_id(self, username: Optional[str] = None) -> int:
        account = await self.get_account(username)
        try:
            return int(account.get("user_id") or 0)
        except ValueError:
            return 0

    async def clear_cache(self) -> int:
        """Drop all cached API responses."""
        return await self.cache.delete()
