"""Configuration management for mediadisplay."""

import os
from pathlib import Path

# Working directory for the database, logs and the token key
HOME_DIR = Path(os.getenv("MEDIADISPLAY_HOME", Path.home() / ".mediadisplay"))
HOME_DIR.mkdir(parents=True, exist_ok=True)

# Database configuration
DB_PATH = HOME_DIR / "mediadisplay.db"
DB_URL = os.getenv("MEDIADISPLAY_DB_URL", f"sqlite+aiosqlite:///{DB_PATH}")
ACCOUNT_TABLE = "instagram_media_display"

# Logs configuration
LOG_DIR = HOME_DIR / "logs"
LOG_DIR.mkdir(exist_ok=True)
LOG_FILE = LOG_DIR / "mediadisplay.log"

# Token encryption
KEY_FILE = HOME_DIR / ".key"
SECRET_KEY = os.getenv("MEDIADISPLAY_SECRET_KEY")

# Instagram Graph API
GRAPH_API_URL = "https://graph.instagram.com/v20.0"
MEDIA_FIELDS = [
    "caption",  # Not returnable for media in albums
    "id",
    "media_type",  # IMAGE, VIDEO or CAROUSEL_ALBUM
    "media_url",
    "permalink",
    "thumbnail_url",  # VIDEO only
    "timestamp",  # ISO 8601
    "username",
]
CHILD_FIELDS = [field for field in MEDIA_FIELDS if field != "caption"]
PROFILE_FIELDS = [
    "user_id",
    "username",
    "account_type",  # BUSINESS, MEDIA_CREATOR or PERSONAL
    "media_count",
    "profile_picture_url",
]

# Media types
MEDIA_TYPE_IMAGE = "IMAGE"
MEDIA_TYPE_VIDEO = "VIDEO"
MEDIA_TYPE_ALBUM = "CAROUSEL_ALBUM"
MEDIA_TYPES = (MEDIA_TYPE_ALBUM, MEDIA_TYPE_IMAGE, MEDIA_TYPE_VIDEO)

# Retrieval defaults
DEFAULT_IMAGE_COUNT = 4
DEFAULT_PAGE_LIMIT = 24
MAX_LIMIT = 100
TAG_SEARCH_MAX_PAGES = 25

# Cache configuration
CACHE_TTL = 3600  # Seconds
CACHE_TTL_CEILING = 86400 * 7  # Requested TTLs at or above this use CACHE_TTL
NOTIFY_TTL = 86400  # At most one operator e-mail per day

# Token renewal
TOKEN_RENEWAL_DAYS = 60
RENEWAL_WINDOW_DAYS = 7
MIGRATION_RENEWAL_DAYS = 1

# HTTP configuration
CONNECT_TIMEOUT = 10.0  # Seconds
READ_TIMEOUT = 30.0  # Seconds

# Operator notification
ADMIN_EMAIL = os.getenv("MEDIADISPLAY_ADMIN_EMAIL", "")
HTTP_HOST = os.getenv("MEDIADISPLAY_HTTP_HOST", "localhost")
SMTP_HOST = os.getenv("MEDIADISPLAY_SMTP_HOST", "localhost")
SMTP_PORT = int(os.getenv("MEDIADISPLAY_SMTP_PORT", "25"))
MAIL_FROM = os.getenv("MEDIADISPLAY_MAIL_FROM", f"mediadisplay@{HTTP_HOST}")

# Retry configuration (operator e-mail only)
MAX_RETRIES = 3
RETRY_INITIAL_WAIT = 1.0  # Seconds
RETRY_MAX_WAIT = 10.0  # Seconds
RETRY_MULTIPLIER = 2.0  # Exponential backoff

# App information
APP_NAME = "mediadisplay"
APP_VERSION = "1.1.0"
USER_AGENT = f"{APP_NAME}/{APP_VERSION}"
