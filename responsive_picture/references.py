"""Turn shortcode `src` arguments into something the encoder can open."""

import logging
import os
from urllib.parse import urlsplit

logger = logging.getLogger(__name__)


def is_full_url(url: str) -> bool:
    """True for absolute URLs with both a scheme and a host (https://example.com/a.png)."""
    try:
        parts = urlsplit(url)
    except ValueError:
        return False
    return bool(parts.scheme) and bool(parts.netloc)


def relative_to_input_path(input_path: str, relative_file_path: str) -> str:
    """Resolve a path relative to the directory holding the referencing document."""
    directory = os.path.dirname(input_path)
    return os.path.abspath(os.path.join(directory or os.curdir, relative_file_path))


def input_from_src(src: str, page_input_path: str) -> str:
    """
    Remote URLs pass through untouched; anything else is treated as local and
    made absolute relative to the page that references it. Existence is the
    encoder's problem, not ours.
    """
    if is_full_url(src):
        logger.debug("Remote source %s left as-is", src)
        return src
    resolved = relative_to_input_path(page_input_path, src)
    logger.debug("Resolved %s against %s -> %s", src, page_input_path, resolved)
    return resolved
