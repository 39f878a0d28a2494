"""HTTP and LLM client creation factory.

This module provides a centralized way to create provider clients (the async
HTTP client used for Gemini/Firecrawl and the OpenAI SDK client) so API keys,
base URLs and timeouts are configured consistently.
"""

import os
from typing import Any, Optional

import httpx
from loguru import logger
from openai import AsyncOpenAI


def mask_key(api_key: Optional[str]) -> str:
    """Return a log-safe rendering of an API key."""
    if api_key and len(api_key) > 8:
        return f"{api_key[:4]}...{api_key[-4:]}"
    return "None"


def create_http_client(
    timeout: Optional[float] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    **kwargs: Any,
) -> httpx.AsyncClient:
    """Create the async HTTP client shared by one scan.

    Args:
        timeout: Per-request timeout in seconds.
        transport: Optional transport (tests pass ``httpx.MockTransport``).
        **kwargs: Additional arguments to pass to ``httpx.AsyncClient``.

    Returns:
        Configured ``httpx.AsyncClient``; the caller owns closing it.
    """
    logger.debug(f"Creating HTTP client: timeout={timeout}")
    return httpx.AsyncClient(
        timeout=httpx.Timeout(timeout),
        follow_redirects=True,
        transport=transport,
        **kwargs,
    )


def create_openai_client(
    api_key: Optional[str] = None,
    base_url: Optional[str] = None,
    timeout: Optional[float] = None,
    max_retries: int = 0,
    **kwargs: Any,
) -> AsyncOpenAI:
    """Create and configure an async OpenAI client.

    Args:
        api_key: The API key. If None, tries env var or defaults.
        base_url: The base URL. If None, tries env var.
        timeout: Request timeout in seconds.
        max_retries: Number of SDK-level retries (the scan pipeline does not retry).
        **kwargs: Additional arguments to pass to the AsyncOpenAI constructor.

    Returns:
        Configured AsyncOpenAI client.
    """
    final_api_key = api_key or os.getenv("OPENAI_API_KEY")
    final_base_url = base_url or os.getenv("OPENAI_BASE_URL")

    logger.debug(
        f"Creating OpenAI client: base_url={final_base_url}, "
        f"api_key={mask_key(final_api_key)}, timeout={timeout}"
    )

    return AsyncOpenAI(
        api_key=final_api_key,
        base_url=final_base_url,
        timeout=timeout,
        max_retries=max_retries,
        **kwargs,
    )
