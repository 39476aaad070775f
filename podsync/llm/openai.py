from typing import Optional

from openai import AsyncOpenAI

from podsync.config import get_settings


_async_client: Optional[AsyncOpenAI] = None


def get_openai_async_client() -> AsyncOpenAI:
    """
    Return the shared async OpenAI client, creating it on first use.

    Raises:
        ValueError: If OPENAI_API_KEY is not configured.
    """
    global _async_client
    if _async_client is None:
        api_key = get_settings().openai_api_key
        if not api_key:
            raise ValueError("OPENAI_API_KEY not found in environment variables.")
        _async_client = AsyncOpenAI(api_key=api_key)
    return _async_client


def get_openai_model() -> str:
    return get_settings().openai_model
