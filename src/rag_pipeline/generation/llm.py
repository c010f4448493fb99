"""Chat model initialisation - single place to swap providers.

Supports two modes:

1. **OpenAI cloud** (default) - set ``OPENAI_API_KEY``.
2. **OpenAI-compatible endpoint** - set ``LLM_BASE_URL`` to e.g. a vLLM
   server (``http://localhost:8001/v1``).  ``ChatOpenAI`` works unchanged
   against its ``/v1/chat/completions`` route.
"""

from __future__ import annotations

import logging
from typing import Any

from langchain_openai import ChatOpenAI

logger = logging.getLogger(__name__)


def get_llm(
    model: str,
    *,
    api_key: str = "",
    base_url: str = "",
    temperature: float = 0.0,
    max_tokens: int | None = None,
) -> ChatOpenAI:
    """Return a configured chat model.

    When *base_url* is set the client targets that endpoint instead of
    the OpenAI cloud API, with ``"EMPTY"`` as the key if none is given.
    """
    kwargs: dict[str, Any] = {
        "model": model,
        "temperature": temperature,
    }
    if max_tokens is not None:
        kwargs["max_tokens"] = max_tokens

    if base_url:
        logger.info("Using OpenAI-compatible endpoint: %s", base_url)
        kwargs["base_url"] = base_url
        # Local servers don't need a real key; LangChain requires a non-empty value.
        kwargs["api_key"] = api_key or "EMPTY"
    else:
        kwargs["api_key"] = api_key

    return ChatOpenAI(**kwargs)


def response_text(response: Any) -> str:
    """Extract plain text from a chat model response.

    ``content`` is either a string or a list of content blocks; only text
    blocks are kept.
    """
    content = getattr(response, "content", response)
    if isinstance(content, str):
        return content
    parts: list[str] = []
    for block in content or []:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(str(block.get("text", "")))
    return "\n".join(parts)
