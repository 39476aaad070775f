import json
import re
from dataclasses import dataclass
from logging import getLogger

from podsync.llm.openai import get_openai_async_client, get_openai_model


logger = getLogger(__name__)

SUMMARY_INSTRUCTIONS = (
    "You receive the transcript of a video by {owner_name} titled \"{title}\". "
    "Answer with a JSON object with two string fields: "
    "\"summary\" (2-3 sentences describing the content) and "
    "\"highlight\" (the most insightful quote, 1-3 sentences, copied from the transcript). "
    "No inventions."
)

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


@dataclass
class Summary:
    summary: str
    highlight: str


def parse_summary_response(text: str) -> Summary:
    """Extract the JSON object from a model response.

    Raises:
        ValueError: If the response holds no JSON object or no summary field.
    """
    match = _JSON_OBJECT.search(text or "")
    if not match:
        raise ValueError("No JSON object found in summarization response")
    data = json.loads(match.group(0))
    summary = str(data.get("summary") or "").strip()
    if not summary:
        raise ValueError("Summarization response has an empty summary")
    return Summary(summary=summary, highlight=str(data.get("highlight") or "").strip())


async def summarize(title: str, owner_name: str, transcript_excerpt: str) -> Summary:
    """Generate a short summary and a highlight quote from a transcript excerpt.

    Args:
        title: Item title, used as context.
        owner_name: Channel/owner name, used as context.
        transcript_excerpt: Leading part of the transcript.

    Returns:
        Summary with summary and highlight text.

    Raises:
        ValueError: If the excerpt is empty or the response cannot be parsed.
        Exception: Re-raises unexpected runtime errors from the LLM call.
    """
    if not transcript_excerpt or not transcript_excerpt.strip():
        raise ValueError("Cannot summarize empty or whitespace-only text")

    llm = get_openai_async_client()

    logger.info(f"Calling OpenAI to summarize '{title}'")
    response = await llm.responses.create(
        model=get_openai_model(),
        instructions=SUMMARY_INSTRUCTIONS.format(
            title=title, owner_name=owner_name or "an unknown channel"
        ),
        input=transcript_excerpt,
        max_output_tokens=600,
    )
    return parse_summary_response(response.output_text)
