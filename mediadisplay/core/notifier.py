"""Operator notification when the Graph API rejects an access token."""

import asyncio
import json
import smtplib
from email.message import EmailMessage
from typing import Callable, Optional

from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from mediadisplay.core.exceptions import NotificationError
from mediadisplay.storage.cache import CacheStore
from mediadisplay.utils.config import (
    ADMIN_EMAIL,
    HTTP_HOST,
    MAIL_FROM,
    MAX_RETRIES,
    NOTIFY_TTL,
    RETRY_INITIAL_WAIT,
    RETRY_MAX_WAIT,
    RETRY_MULTIPLIER,
    SMTP_HOST,
    SMTP_PORT,
)
from mediadisplay.utils.logging import get_logger

logger = get_logger(__name__)

NOTIFY_CACHE_NAME = "notify_admin"

# Gate values kept in the cache for the day
NOTIFIED_LOGGED = 1
NOTIFIED_MAILED = 2

Sender = Callable[[EmailMessage], None]


class AdminNotifier:
    """
    E-mails the site administrator about authorisation errors.

    The cache entry NOTIFY_CACHE_NAME acts as a daily gate: however many
    errors occur, at most one message goes out per NOTIFY_TTL.
    """

    def __init__(
        self,
        cache: CacheStore,
        admin_email: str = ADMIN_EMAIL,
        http_host: str = HTTP_HOST,
        sender: Optional[Sender] = None,
    ):
        """
        Initialize notifier.

        Args:
            cache: Cache used for the daily gate
            admin_email: Recipient, notification is only logged when empty
            http_host: Site name used in the subject
            sender: Delivery function (default: SMTP)
        """
        self.cache = cache
        self.admin_email = admin_email
        self.http_host = http_host
        self.sender = sender or self._send_smtp
        self.sent_count = 0

    async def notify_oauth_error(self, error: dict) -> int:
        """
        Notify about an OAuthException unless already done today.

        Args:
            error: The ``error`` object returned by the API

        Returns:
            The gate value: NOTIFIED_MAILED or NOTIFIED_LOGGED
        """
        async def compute() -> int:
            if not self.admin_email:
                logger.info("Authorisation error not e-mailed, no admin e-mail configured")
                return NOTIFIED_LOGGED
            try:
                await asyncio.to_thread(self.sender, self.build_message(error))
            except NotificationError as e:
                logger.warning(f"Could not notify administrator: {e}")
                return NOTIFIED_LOGGED
            self.sent_count += 1
            logger.info(f"Authorisation error e-mailed to {self.admin_email}")
            return NOTIFIED_MAILED

        return await self.cache.get_or_compute(NOTIFY_CACHE_NAME, compute, ttl=NOTIFY_TTL)

    def build_message(self, error: dict) -> EmailMessage:
        message = EmailMessage()
        message["To"] = self.admin_email
        message["From"] = MAIL_FROM
        message["Subject"] = f"Instagram Media Display authorisation error on {self.http_host}"
        message.set_content("\n\n".join([
            "The Instagram API has returned an authorisation error.",
            "Please check your access token.",
            json.dumps({"error": error}, indent=4, ensure_ascii=False),
        ]))
        return message

    @staticmethod
    def _send_smtp(message: EmailMessage) -> None:
        """
        Deliver a message through the configured SMTP server.

        Raises:
            NotificationError: If delivery keeps failing
        """
        try:
            _deliver(message)
        except (smtplib.SMTPException, OSError) as e:
            raise NotificationError(f"SMTP delivery failed: {e}")


@retry(
    retry=retry_if_exception_type((smtplib.SMTPException, OSError)),
    stop=stop_after_attempt(MAX_RETRIES),
    wait=wait_exponential(
        multiplier=RETRY_MULTIPLIER,
        min=RETRY_INITIAL_WAIT,
        max=RETRY_MAX_WAIT,
    ),
    reraise=True,
)
def _deliver(message: EmailMessage) -> None:
    with smtplib.SMTP(SMTP_HOST, SMTP_PORT, timeout=30) as smtp:
        smtp.send_message(message)
