"""
YouTube collaborators backed by yt-dlp and youtube-transcript-api.

- list_source_items: flat listing of a channel/playlist (no per-video requests)
- fetch_item_metadata: title, uploader and upload date of one video
- fetch_transcript: published subtitles (manual first, then automatic captions)
  through youtube-transcript-api, as plain text

All functions are blocking; the core runs them in worker threads under a
per-call timeout.
"""

import logging
from datetime import date, datetime
from typing import Any, Optional

from youtube_transcript_api import (
    NoTranscriptFound,
    Transcript,
    TranscriptList,
    TranscriptsDisabled,
    YouTubeTranscriptApi,
)
from yt_dlp import YoutubeDL

from podsync.config import get_settings
from podsync.logger import log_function

from .models import ItemMetadata, ItemRef, SourceListing
from .urls import (
    BARE_VIDEO_ID,
    canonical_item_url,
    canonicalize_item_url,
    extract_youtube_id,
    normalize_source_url,
)


logger = logging.getLogger("youtube")

SOCKET_TIMEOUT = 30


def _ydl_options(**overrides: Any) -> dict[str, Any]:
    options = {
        "quiet": True,
        "no_warnings": True,
        "skip_download": True,
        "socket_timeout": SOCKET_TIMEOUT,
    }
    options.update(overrides)
    return options


def _extract_info(url: str, **overrides: Any) -> dict[str, Any]:
    with YoutubeDL(_ydl_options(**overrides)) as ydl:
        info = ydl.extract_info(url, download=False)
    if not info:
        raise RuntimeError(f"yt-dlp returned no information for {url}")
    return ydl.sanitize_info(info)


def parse_upload_date(value: Optional[str]) -> Optional[date]:
    """Parse yt-dlp's YYYYMMDD upload_date."""
    if not value:
        return None
    try:
        return datetime.strptime(value, "%Y%m%d").date()
    except (ValueError, TypeError):
        logger.warning(f"Could not parse upload_date: {value}")
        return None


def _entry_to_item(entry: Optional[dict[str, Any]]) -> Optional[ItemRef]:
    if not entry:
        return None
    item_id = entry.get("id")
    if not item_id or not BARE_VIDEO_ID.match(item_id):
        item_id = extract_youtube_id(entry.get("url") or "")
    if not item_id:
        return None
    return ItemRef(
        item_id=item_id,
        canonical_url=canonical_item_url(item_id),
        title=entry.get("title"),
    )


@log_function(logger_name="youtube", log_args=True)
def list_source_items(source_url: str, max_items: Optional[int] = None) -> SourceListing:
    """
    List a channel or playlist without visiting each video.

    Args:
        source_url: Channel (@handle, /channel/, /c/, /user/) or playlist URL.
        max_items: Cap on listed entries (newest first); None lists everything.

    Returns:
        SourceListing with the channel name when yt-dlp exposes it.
    """
    url = normalize_source_url(source_url)
    overrides: dict[str, Any] = {"extract_flat": "in_playlist", "ignoreerrors": True}
    if max_items:
        overrides["playlistend"] = max_items
    info = _extract_info(url, **overrides)

    items = []
    seen = set()
    for entry in info.get("entries") or []:
        item = _entry_to_item(entry)
        if item is None or item.item_id in seen:
            continue
        seen.add(item.item_id)
        items.append(item)
        if max_items and len(items) >= max_items:
            break

    source_name = info.get("channel") or info.get("uploader")
    logger.info(f"Listed {len(items)} items from {url} (source: {source_name})")
    return SourceListing(source_url=source_url, source_name=source_name, items=items)


def fetch_item_metadata(url: str) -> ItemMetadata:
    info = _extract_info(url, noplaylist=True)
    return ItemMetadata(
        title=info.get("title") or "Unknown",
        owner_name=info.get("uploader") or info.get("channel"),
        publish_date=parse_upload_date(info.get("upload_date")),
    )


def _candidate_languages(transcript_list: TranscriptList, languages: list[str]) -> list[str]:
    """Preferred codes first, then regional variants of them (en -> en-orig)."""
    available = [transcript.language_code for transcript in transcript_list]
    candidates = list(languages)
    for lang in languages:
        candidates.extend(
            code for code in available if code.startswith(f"{lang}-") and code not in candidates
        )
    return candidates


def _pick_transcript(transcript_list: TranscriptList, languages: list[str]) -> Transcript:
    """Manually created subtitles win over automatic captions in any language."""
    candidates = _candidate_languages(transcript_list, languages)
    try:
        return transcript_list.find_manually_created_transcript(candidates)
    except NoTranscriptFound:
        return transcript_list.find_generated_transcript(candidates)


def fetch_transcript(url: str) -> Optional[str]:
    """
    Fetch published subtitles for a video as plain text.

    Returns:
        Transcript text, or None when the video has no subtitles in the
        configured languages or has them disabled.

    Raises:
        UnsupportedUrlError: If url is not a video URL.
        Any other youtube-transcript-api or network error, unchanged.
    """
    video_id, _ = canonicalize_item_url(url)
    languages = get_settings().subtitle_languages
    api = YouTubeTranscriptApi()
    try:
        transcript = _pick_transcript(api.list(video_id), languages)
    except (TranscriptsDisabled, NoTranscriptFound) as e:
        logger.info(f"No subtitle track for {video_id}: {type(e).__name__}")
        return None

    fetched = transcript.fetch()
    text = " ".join(snippet.text.strip() for snippet in fetched.snippets if snippet.text.strip())
    logger.debug(
        f"Fetched {len(text)} characters of {transcript.language_code} "
        f"{'automatic' if transcript.is_generated else 'manual'} subtitles for {video_id}"
    )
    return text or None
