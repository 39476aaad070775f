"""YouTube URL recognition and canonicalization."""

import re
from typing import Optional

from podsync.errors import UnsupportedUrlError


VIDEO_ID_PATTERNS = [
    re.compile(r"(?:youtube\.com/watch\?(?:.*&)?v=|youtu\.be/|youtube\.com/embed/|youtube\.com/shorts/|youtube\.com/live/)([a-zA-Z0-9_-]{11})"),
]
BARE_VIDEO_ID = re.compile(r"^[a-zA-Z0-9_-]{11}$")

# Channel roots that list several tabs; /videos keeps the listing to uploads
CHANNEL_ROOT = re.compile(
    r"^(https?://(?:www\.|m\.)?youtube\.com/(?:@[^/?#]+|channel/[^/?#]+|c/[^/?#]+|user/[^/?#]+))/?$"
)


def is_youtube_url(url: str) -> bool:
    return "youtube.com" in url or "youtu.be" in url


def extract_youtube_id(url: str) -> Optional[str]:
    """Return the 11-character video ID of a watch/short/embed URL, if any."""
    for pattern in VIDEO_ID_PATTERNS:
        match = pattern.search(url)
        if match:
            return match.group(1)
    return None


def canonical_item_url(item_id: str) -> str:
    return f"https://www.youtube.com/watch?v={item_id}"


def canonicalize_item_url(url: str) -> tuple[str, str]:
    """
    Map any supported video URL to (item_id, canonical_url).

    Raises:
        UnsupportedUrlError: If the URL does not point at a YouTube video.
    """
    url = (url or "").strip()
    item_id = extract_youtube_id(url) if is_youtube_url(url) else None
    if item_id is None:
        raise UnsupportedUrlError(f"Not a supported video URL: {url!r}")
    return item_id, canonical_item_url(item_id)


def normalize_source_url(url: str) -> str:
    """
    Validate a channel/playlist URL and point channel roots at their uploads tab.

    Raises:
        UnsupportedUrlError: If the URL is not a YouTube URL.
    """
    url = (url or "").strip()
    if not url.startswith(("http://", "https://")) or not is_youtube_url(url):
        raise UnsupportedUrlError(f"Not a supported channel or playlist URL: {url!r}")
    match = CHANNEL_ROOT.match(url)
    if match:
        return f"{match.group(1)}/videos"
    return url
