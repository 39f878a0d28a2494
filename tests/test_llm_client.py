
import asyncio
import os
from unittest.mock import patch

import httpx
import pytest
from loguru import logger

from fundscan.utils.config import LoggingConfig
from fundscan.utils.llm_client import create_http_client, create_openai_client, mask_key
from fundscan.utils.logging_setup import setup_logging


@pytest.fixture
def mock_openai():
    with patch("fundscan.utils.llm_client.AsyncOpenAI") as mock:
        yield mock


def test_create_client_defaults(mock_openai):
    with patch.dict(os.environ, {}, clear=True):
        create_openai_client()
        mock_openai.assert_called_once()
        call_kwargs = mock_openai.call_args.kwargs
        assert call_kwargs.get("api_key") is None
        assert call_kwargs.get("base_url") is None
        assert call_kwargs.get("max_retries") == 0


def test_create_client_explicit_args(mock_openai):
    create_openai_client(
        api_key="sk-explicit",
        base_url="https://explicit.com",
        timeout=30.0,
        max_retries=5,
    )

    call_kwargs = mock_openai.call_args.kwargs
    assert call_kwargs["api_key"] == "sk-explicit"
    assert call_kwargs["base_url"] == "https://explicit.com"
    assert call_kwargs["timeout"] == 30.0
    assert call_kwargs["max_retries"] == 5


def test_create_client_env_vars(mock_openai):
    env = {"OPENAI_API_KEY": "sk-env", "OPENAI_BASE_URL": "https://env.com"}
    with patch.dict(os.environ, env):
        create_openai_client()

        call_kwargs = mock_openai.call_args.kwargs
        assert call_kwargs["api_key"] == "sk-env"
        assert call_kwargs["base_url"] == "https://env.com"


def test_mask_key():
    assert mask_key("abcd1234efgh5678") == "abcd...5678"
    assert mask_key("short") == "None"
    assert mask_key(None) == "None"


def test_http_client_follows_redirects_through_transport():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/old":
            return httpx.Response(301, headers={"Location": "https://site.test/new"})
        return httpx.Response(200, text="moved here")

    async def run() -> httpx.Response:
        async with create_http_client(5.0, transport=httpx.MockTransport(handler)) as client:
            return await client.get("https://site.test/old")

    response = asyncio.run(run())

    assert response.status_code == 200
    assert response.text == "moved here"


def test_setup_logging_writes_file_sink(tmp_path):
    log_file = tmp_path / "logs" / "scan.log"
    setup_logging(LoggingConfig(level="INFO", file=str(log_file)))
    try:
        logger.info("scan finished")
        logger.debug("hidden detail")
    finally:
        logger.remove()

    content = log_file.read_text(encoding="utf-8")
    assert "scan finished" in content
    assert "hidden detail" not in content
