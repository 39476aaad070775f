"""This package contains modules related to large language models (LLMs).
openai.py : OpenAI async client initialization
"""

from .openai import get_openai_async_client, get_openai_model


__all__ = ["get_openai_async_client", "get_openai_model"]
