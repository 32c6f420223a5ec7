"""Repository layer for database operations."""

from datetime import datetime
from typing import List, Optional, Union

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from mediadisplay.models.schema import Account, CacheEntry, renewal_date, utcnow
from mediadisplay.utils.logging import get_logger

logger = get_logger(__name__)


class AccountRepository:
    """Repository for Account operations."""

    @staticmethod
    async def get(session: AsyncSession, key: Union[str, int, None] = None) -> Optional[Account]:
        """
        Get an account by username or Instagram user ID.

        Args:
            session: Database session
            key: Username, numeric user ID, or empty for the default (first) account

        Returns:
            Account instance or None
        """
        query = select(Account)
        if key:
            if isinstance(key, int) or str(key).isdigit():
                query = query.where(Account.user_id == str(key))
            else:
                query = query.where(Account.username == key)
        result = await session.execute(query.limit(1))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_all(session: AsyncSession) -> List[Account]:
        """
        Get all accounts.

        Args:
            session: Database session

        Returns:
            List of Account instances
        """
        result = await session.execute(select(Account))
        return list(result.scalars().all())

    @staticmethod
    async def upsert(session: AsyncSession, account_data: dict) -> Account:
        """
        Insert or update an account.

        The token renewal date is always reset, a newly stored token
        is good for another renewal period.

        Args:
            session: Database session
            account_data: Account data dictionary (username, token, user_id...)

        Returns:
            Account instance
        """
        username = account_data.get("username")
        account = await session.get(Account, username)

        if account:
            for key, value in account_data.items():
                if hasattr(account, key) and key != "username":
                    setattr(account, key, value)
            account.token_renews = renewal_date()
            logger.debug(f"Updated account: {username}")
        else:
            account = Account(**account_data)
            account.token_renews = renewal_date()
            session.add(account)
            logger.debug(f"Created new account: {username}")

        await session.flush()
        return account

    @staticmethod
    async def update_token(session: AsyncSession, username: str, token: str) -> bool:
        """
        Store a refreshed access token.

        Args:
            session: Database session
            username: Instagram username
            token: The new long-lived token

        Returns:
            True if the account exists and was updated
        """
        account = await session.get(Account, username)
        if account is None:
            return False
        account.token = token
        account.token_renews = renewal_date()
        account.modified = utcnow()
        await session.flush()
        logger.debug(f"Updated token for: {username}")
        return True

    @staticmethod
    async def update_media_count(session: AsyncSession, username: str, media_count: int) -> bool:
        """
        Store the last known media count.

        Args:
            session: Database session
            username: Instagram username
            media_count: Number of media items reported by the API

        Returns:
            True if the account exists and was updated
        """
        account = await session.get(Account, username)
        if account is None:
            return False
        account.media_count = int(media_count or 0)
        account.modified = utcnow()
        await session.flush()
        return True

    @staticmethod
    async def delete(session: AsyncSession, username: str) -> bool:
        """
        Delete an account.

        Args:
            session: Database session
            username: Instagram username

        Returns:
            True if an account was deleted
        """
        result = await session.execute(delete(Account).where(Account.username == username))
        await session.flush()
        return result.rowcount > 0


class CacheRepository:
    """Repository for CacheEntry operations."""

    @staticmethod
    async def get(session: AsyncSession, name: str, now: Optional[datetime] = None) -> Optional[CacheEntry]:
        """
        Get an unexpired cache entry.

        Args:
            session: Database session
            name: Cache entry name
            now: Reference time (default: now)

        Returns:
            CacheEntry instance or None
        """
        result = await session.execute(
            select(CacheEntry)
            .where(CacheEntry.name == name)
            .where(CacheEntry.expires > (now or utcnow()))
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def set(session: AsyncSession, name: str, data: str, expires: datetime) -> CacheEntry:
        """
        Insert or replace a cache entry.

        Args:
            session: Database session
            name: Cache entry name
            data: Serialized value
            expires: Expiry time

        Returns:
            CacheEntry instance
        """
        entry = await session.get(CacheEntry, name)
        if entry:
            entry.data = data
            entry.expires = expires
            entry.created_at = utcnow()
        else:
            entry = CacheEntry(name=name, data=data, expires=expires)
            session.add(entry)
        await session.flush()
        return entry

    @staticmethod
    async def delete(session: AsyncSession, name: Optional[str] = None) -> int:
        """
        Delete one cache entry, or all of them when no name is given.

        Returns:
            Number of entries deleted
        """
        query = delete(CacheEntry)
        if name is not None:
            query = query.where(CacheEntry.name == name)
        result = await session.execute(query)
        await session.flush()
        return result.rowcount

    @staticmethod
    async def purge_expired(session: AsyncSession) -> int:
        """
        Delete expired cache entries.

        Returns:
            Number of entries deleted
        """
        result = await session.execute(delete(CacheEntry).where(CacheEntry.expires <= utcnow()))
        await session.flush()
        count = result.rowcount
        if count:
            logger.debug(f"Purged {count} expired cache entries")
        return count
