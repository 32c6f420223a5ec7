"""mediadisplay - Instagram media and profile retrieval for websites."""

from mediadisplay.utils.config import APP_VERSION

__version__ = APP_VERSION
