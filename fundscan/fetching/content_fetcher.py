"""Retrieve page text for a URL: crawling provider first, relays as fallback."""

from __future__ import annotations

from typing import List, Optional

import httpx
from loguru import logger

from fundscan.errors import FetchError, ScanError
from fundscan.extraction.models import RawContent
from fundscan.fetching.firecrawl import FirecrawlClient
from fundscan.fetching.polling import SleepFn
from fundscan.fetching.proxy_fetcher import ProxyFetcher
from fundscan.utils.config import Config

FETCH_HINT = "Could not fetch website content. Try adding a Firecrawl API key for better results."


class ContentFetcher:
    """Implements ``fetch(url) -> RawContent`` over every configured option.

    Failures of individual options are logged and recorded; :class:`FetchError`
    is raised only once all of them are exhausted, chained to the last
    provider error.
    """

    def __init__(
        self,
        config: Config,
        client: httpx.AsyncClient,
        *,
        firecrawl: FirecrawlClient | None = None,
        proxies: ProxyFetcher | None = None,
        sleep_fn: SleepFn | None = None,
    ) -> None:
        self.config = config
        self.client = client
        api_key = config.credentials.firecrawl_api_key
        self.firecrawl = firecrawl
        if self.firecrawl is None and api_key:
            self.firecrawl = FirecrawlClient(client, api_key, config.firecrawl, sleep_fn=sleep_fn)
        self.proxies = proxies or ProxyFetcher(client, config.proxy)

    async def fetch(self, url: str) -> RawContent:
        attempts: List[str] = []
        last_error: Optional[Exception] = None
        timed_out = False

        if self.firecrawl is not None:
            try:
                content = await self.firecrawl.crawl(url)
            except (ScanError, httpx.HTTPError, ValueError) as exc:
                logger.warning("Firecrawl failed, trying fallback", url=url, error=str(exc))
                attempts.append(f"firecrawl: {exc}")
                last_error = exc
                timed_out = isinstance(exc, (TimeoutError, httpx.TimeoutException))
            else:
                if content.text.strip():
                    logger.info(
                        "Fetched website content",
                        url=url,
                        provider=content.provider,
                        chars=len(content.text),
                        truncated=content.truncated,
                    )
                    return content
                attempts.append("firecrawl: empty content")
        else:
            logger.debug("No Firecrawl API key configured, using relay fallback", url=url)

        if self.config.proxy.enabled:
            content, failures = await self.proxies.fetch(url)
            attempts.extend(failures)
            if content is not None:
                return content

        logger.error("All content fetch options failed", url=url, attempts=attempts)
        raise FetchError(FETCH_HINT, attempts=attempts, timed_out=timed_out) from last_error
