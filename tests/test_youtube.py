"""Tests for the yt-dlp collaborators, with YoutubeDL and YouTubeTranscriptApi mocked."""

from datetime import date
from unittest.mock import MagicMock, patch

import pytest
from youtube_transcript_api import NoTranscriptFound, TranscriptsDisabled

from podsync.ingestion import youtube


def _mock_ydl(info: dict) -> MagicMock:
    ydl = MagicMock()
    ydl.__enter__.return_value = ydl
    ydl.extract_info.return_value = info
    ydl.sanitize_info.side_effect = lambda value: value
    return ydl


class TestParsers:
    def test_parse_upload_date(self):
        assert youtube.parse_upload_date("20240315") == date(2024, 3, 15)
        assert youtube.parse_upload_date(None) is None
        assert youtube.parse_upload_date("2024-03-15") is None


class TestListSourceItems:
    def test_flat_listing_maps_entries(self):
        info = {
            "channel": "Some Channel",
            "entries": [
                {"id": "aaaaaaaaaaa", "title": "First"},
                None,
                {"id": "UCxyz", "url": "https://www.youtube.com/watch?v=bbbbbbbbbbb", "title": "Second"},
                {"id": "aaaaaaaaaaa", "title": "First again"},
                {"id": "bad"},
            ],
        }
        ydl = _mock_ydl(info)
        with patch.object(youtube, "YoutubeDL", return_value=ydl) as ydl_class:
            listing = youtube.list_source_items("https://www.youtube.com/@some", 10)

        options = ydl_class.call_args[0][0]
        assert options["extract_flat"] == "in_playlist"
        assert options["playlistend"] == 10
        ydl.extract_info.assert_called_once_with("https://www.youtube.com/@some/videos", download=False)

        assert listing.source_name == "Some Channel"
        assert listing.source_url == "https://www.youtube.com/@some"
        assert [item.item_id for item in listing.items] == ["aaaaaaaaaaa", "bbbbbbbbbbb"]
        assert listing.items[1].canonical_url == "https://www.youtube.com/watch?v=bbbbbbbbbbb"

    def test_max_items_caps_entries(self):
        entries = [{"id": f"video{i:06d}", "title": str(i)} for i in range(5)]
        with patch.object(youtube, "YoutubeDL", return_value=_mock_ydl({"entries": entries, "uploader": "Up"})):
            listing = youtube.list_source_items("https://www.youtube.com/playlist?list=PL1", 2)
        assert len(listing.items) == 2
        assert listing.source_name == "Up"


class TestFetchItemMetadata:
    def test_maps_fields(self):
        info = {"title": "A talk", "uploader": "Speaker", "upload_date": "20230102"}
        with patch.object(youtube, "YoutubeDL", return_value=_mock_ydl(info)):
            metadata = youtube.fetch_item_metadata("https://www.youtube.com/watch?v=aaaaaaaaaaa")
        assert metadata.title == "A talk"
        assert metadata.owner_name == "Speaker"
        assert metadata.publish_date == date(2023, 1, 2)


class FakeTranscriptList:
    """Minimal TranscriptList: iterable, with the two find_* lookups."""

    def __init__(self, *transcripts):
        self.transcripts = list(transcripts)

    def __iter__(self):
        return iter(self.transcripts)

    def _find(self, language_codes, generated):
        for code in language_codes:
            for transcript in self.transcripts:
                if transcript.language_code == code and transcript.is_generated == generated:
                    return transcript
        raise NoTranscriptFound("aaaaaaaaaaa", language_codes, "")

    def find_manually_created_transcript(self, language_codes):
        return self._find(language_codes, False)

    def find_generated_transcript(self, language_codes):
        return self._find(language_codes, True)


def _transcript(language_code: str, generated: bool, *texts: str) -> MagicMock:
    transcript = MagicMock(language_code=language_code, is_generated=generated)
    transcript.fetch.return_value = MagicMock(snippets=[MagicMock(text=text) for text in texts])
    return transcript


def _fetch(transcript_list=None, list_error=None):
    api = MagicMock()
    if list_error is not None:
        api.list.side_effect = list_error
    else:
        api.list.return_value = transcript_list
    settings = MagicMock(subtitle_languages=["en", "en-US"])
    with patch.object(youtube, "YouTubeTranscriptApi", return_value=api), patch.object(
        youtube, "get_settings", return_value=settings
    ):
        text = youtube.fetch_transcript("https://youtu.be/aaaaaaaaaaa")
    return text, api


class TestFetchTranscript:
    def test_manual_subtitles_win_over_automatic_captions(self):
        automatic = _transcript("en", True, "automatic text")
        manual = _transcript("en-US", False, " Tom & Jerry ", "", "say hi")
        text, api = _fetch(FakeTranscriptList(automatic, manual))

        assert text == "Tom & Jerry say hi"
        api.list.assert_called_once_with("aaaaaaaaaaa")
        automatic.fetch.assert_not_called()

    def test_falls_back_to_regional_automatic_captions(self):
        french = _transcript("fr", False, "bonjour")
        regional = _transcript("en-orig", True, "auto text")
        text, _ = _fetch(FakeTranscriptList(french, regional))

        assert text == "auto text"
        french.fetch.assert_not_called()

    def test_no_track_in_configured_languages_is_none(self):
        text, _ = _fetch(FakeTranscriptList(_transcript("de", True, "hallo")))
        assert text is None

    def test_disabled_transcripts_are_none(self):
        text, _ = _fetch(list_error=TranscriptsDisabled("aaaaaaaaaaa"))
        assert text is None

    def test_empty_transcript_is_none(self):
        text, _ = _fetch(FakeTranscriptList(_transcript("en", False, " ", "")))
        assert text is None

    def test_other_errors_propagate(self):
        with pytest.raises(ConnectionError):
            _fetch(list_error=ConnectionError("network down"))
