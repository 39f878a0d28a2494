"""Fallback page fetch through public read-only relay endpoints."""

from __future__ import annotations

import re
from typing import List, Optional, Sequence, Tuple
from urllib.parse import quote, urlparse

import httpx
from bs4 import BeautifulSoup
from loguru import logger

from fundscan.extraction.models import RawContent
from fundscan.utils.config import ProxyFetchConfig

_WHITESPACE_RE = re.compile(r"\s+")


def html_to_text(
    html: str, strip_tags: Sequence[str] = ("script", "style", "noscript", "iframe")
) -> str:
    """Visible text of an HTML document with whitespace collapsed."""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(list(strip_tags)):
        tag.decompose()
    root = soup.body or soup
    return _WHITESPACE_RE.sub(" ", root.get_text(" ")).strip()


class ProxyFetcher:
    """Tries each configured relay in order; first one with enough text wins."""

    def __init__(self, client: httpx.AsyncClient, config: Optional[ProxyFetchConfig] = None) -> None:
        self.client = client
        self.config = config or ProxyFetchConfig()

    async def fetch(self, url: str) -> Tuple[Optional[RawContent], List[str]]:
        """Return ``(content, failures)``; ``content`` is ``None`` when every relay failed."""
        failures: List[str] = []
        encoded = quote(url, safe="")

        for template in self.config.proxies:
            proxy_url = template.format(url=encoded)
            host = urlparse(proxy_url).netloc or template
            try:
                response = await self.client.get(proxy_url, timeout=self.config.request_timeout)
            except httpx.HTTPError as exc:
                logger.warning(f"Proxy {host} failed", error=str(exc))
                failures.append(f"proxy:{host}: {exc.__class__.__name__}")
                continue

            if not response.is_success:
                logger.warning(f"Proxy {host} failed", status=response.status_code)
                failures.append(f"proxy:{host}: HTTP {response.status_code}")
                continue

            text = html_to_text(response.text, self.config.strip_tags)
            if len(text) <= self.config.min_content_chars:
                logger.warning(f"Proxy {host} returned too little content", chars=len(text))
                failures.append(f"proxy:{host}: {len(text)} chars")
                continue

            limit = self.config.max_content_chars
            logger.info(f"Fetched page via proxy {host}", url=url, chars=len(text))
            return (
                RawContent(
                    text=text[:limit],
                    source_url=url,
                    truncated=len(text) > limit,
                    provider=f"proxy:{host}",
                ),
                failures,
            )

        return None, failures
