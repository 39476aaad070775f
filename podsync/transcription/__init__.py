# Transcription module - summarization of fetched transcripts

from podsync.transcription.summarize import Summary, parse_summary_response, summarize

__all__ = ["Summary", "parse_summary_response", "summarize"]
