"""SQLAlchemy ORM models for mediadisplay."""

from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

from mediadisplay.core.auth_helpers import decrypt_token, encrypt_token
from mediadisplay.utils.config import ACCOUNT_TABLE, TOKEN_RENEWAL_DAYS


def utcnow() -> datetime:
    """Naive UTC now, the form stored in DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def renewal_date(days: int = TOKEN_RENEWAL_DAYS) -> datetime:
    """The token renewal date for a token stored now."""
    return utcnow() + timedelta(days=days)


class EncryptedToken(TypeDecorator):
    """Text column transparently encrypted with Fernet."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return encrypt_token(value)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return decrypt_token(value)


class Base(DeclarativeBase):
    """Base class for all ORM models."""
    pass


class Account(Base):
    """An authorized Instagram user and its long-lived access token."""

    __tablename__ = ACCOUNT_TABLE

    username: Mapped[str] = mapped_column(String(32), primary_key=True)
    token: Mapped[str] = mapped_column(EncryptedToken, nullable=False)
    user_id: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    account_type: Mapped[str] = mapped_column(String(32), nullable=False, default="")
    media_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Added after the first release, see storage.database.migrate_schema
    token_renews: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=renewal_date)

    modified: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self) -> dict:
        return {
            "username": self.username,
            "token": self.token,
            "user_id": self.user_id,
            "account_type": self.account_type,
            "media_count": self.media_count,
            "token_renews": self.token_renews,
            "modified": self.modified,
        }

    def __repr__(self) -> str:
        return f"<Account(username='{self.username}', user_id='{self.user_id}')>"


class CacheEntry(Base):
    """A cached API response or gate value with its expiry."""

    __tablename__ = "instagram_media_display_cache"

    name: Mapped[str] = mapped_column(String(64), primary_key=True)
    data: Mapped[str] = mapped_column(Text, nullable=False)
    expires: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    created_at: Mapped[Optional[datetime]] = mapped_column(DateTime, default=utcnow)

    def __repr__(self) -> str:
        return f"<CacheEntry(name='{self.name}', expires='{self.expires}')>"
