"""Tests for podsync.ingestion.urls."""

import pytest

from podsync.errors import UnsupportedUrlError
from podsync.ingestion.urls import canonicalize_item_url, extract_youtube_id, normalize_source_url


CANONICAL = "https://www.youtube.com/watch?v=dQw4w9WgXcQ"


class TestCanonicalizeItemUrl:
    @pytest.mark.parametrize(
        "url",
        [
            "https://www.youtube.com/watch?v=dQw4w9WgXcQ",
            "https://youtube.com/watch?feature=share&v=dQw4w9WgXcQ&t=42",
            "https://youtu.be/dQw4w9WgXcQ?si=abc",
            "https://www.youtube.com/embed/dQw4w9WgXcQ",
            "https://www.youtube.com/shorts/dQw4w9WgXcQ",
            "https://m.youtube.com/watch?v=dQw4w9WgXcQ",
        ],
    )
    def test_all_forms_map_to_one_canonical_url(self, url):
        assert canonicalize_item_url(url) == ("dQw4w9WgXcQ", CANONICAL)

    def test_strips_whitespace(self):
        assert canonicalize_item_url("  https://youtu.be/dQw4w9WgXcQ \n")[1] == CANONICAL

    @pytest.mark.parametrize(
        "url",
        ["", "https://vimeo.com/12345", "https://www.youtube.com/@channel", "not a url"],
    )
    def test_rejects_non_video_urls(self, url):
        with pytest.raises(UnsupportedUrlError):
            canonicalize_item_url(url)

    def test_unsupported_url_is_a_value_error(self):
        with pytest.raises(ValueError):
            canonicalize_item_url("https://example.com/watch?v=dQw4w9WgXcQ")

    def test_extract_id_returns_none_without_match(self):
        assert extract_youtube_id("https://www.youtube.com/playlist?list=PL123") is None


class TestNormalizeSourceUrl:
    @pytest.mark.parametrize(
        "url,expected",
        [
            ("https://www.youtube.com/@somechannel", "https://www.youtube.com/@somechannel/videos"),
            ("https://www.youtube.com/@somechannel/", "https://www.youtube.com/@somechannel/videos"),
            ("https://www.youtube.com/channel/UC123", "https://www.youtube.com/channel/UC123/videos"),
            ("https://www.youtube.com/c/Name", "https://www.youtube.com/c/Name/videos"),
        ],
    )
    def test_channel_roots_point_at_uploads(self, url, expected):
        assert normalize_source_url(url) == expected

    def test_keeps_explicit_tabs_and_playlists(self):
        playlist = "https://www.youtube.com/playlist?list=PL123"
        assert normalize_source_url(playlist) == playlist
        streams = "https://www.youtube.com/@somechannel/streams"
        assert normalize_source_url(streams) == streams

    @pytest.mark.parametrize("url", ["youtube.com/@x", "https://example.com/@x", ""])
    def test_rejects_other_urls(self, url):
        with pytest.raises(UnsupportedUrlError):
            normalize_source_url(url)
