"""Open Jenkins pages in the user's web browser."""

from __future__ import annotations

import logging
import webbrowser

logger = logging.getLogger(__name__)


def open_url(url: str) -> bool:
    """Open url in the default browser; returns False if none could be launched."""
    if not url:
        return False
    try:
        opened = webbrowser.open(url)
    except webbrowser.Error as e:
        logger.warning("Could not open %s: %s", url, e)
        return False
    if not opened:
        logger.warning("No browser available to open %s", url)
    return opened
