"""Client for the Firecrawl crawl, scrape and agent endpoints."""

from __future__ import annotations

from typing import Any, Dict, Iterable, Optional

import httpx
from loguru import logger

from fundscan.errors import ConfigurationError, ProviderError
from fundscan.extraction.models import RawContent
from fundscan.fetching.polling import JobPoller, SleepFn
from fundscan.utils.config import FirecrawlConfig
from fundscan.utils.llm_client import mask_key

PROVIDER = "firecrawl"


class FirecrawlClient:
    """Thin async wrapper over the crawling provider's HTTP API."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_key: str,
        config: Optional[FirecrawlConfig] = None,
        *,
        sleep_fn: SleepFn | None = None,
    ) -> None:
        if not api_key:
            raise ConfigurationError("Firecrawl API key not configured")
        self.client = client
        self.api_key = api_key
        self.config = config or FirecrawlConfig()
        self._sleep = sleep_fn
        self.base_url = self.config.base_url.rstrip("/")
        logger.debug("Initialized FirecrawlClient", base_url=self.base_url, key=mask_key(api_key))

    # -----------------------
    # Crawl / scrape
    # -----------------------
    async def crawl(self, url: str) -> RawContent:
        """Crawl up to ``crawl_page_limit`` pages of ``url`` and return their markdown.

        A rejected crawl request falls back to a single-page scrape. An
        asynchronous crawl (response carries an ``id``) is polled to completion.
        """
        response = await self.client.post(
            f"{self.base_url}/v1/crawl",
            headers=self._headers(),
            json={
                "url": url,
                "limit": self.config.crawl_page_limit,
                "scrapeOptions": {"formats": ["markdown"], "onlyMainContent": True},
            },
        )
        if not response.is_success:
            logger.warning(
                "Firecrawl crawl rejected, falling back to scrape", status=response.status_code
            )
            return await self.scrape(url)

        crawl_data = self._json_object(response)
        if crawl_data.get("id"):
            job_id = str(crawl_data["id"])
            logger.info("Firecrawl crawl started", id=job_id, url=url)
            poller = JobPoller(
                interval=self.config.crawl_poll_interval,
                max_attempts=self.config.crawl_max_attempts,
                label="Firecrawl crawl",
                sleep_fn=self._sleep,
            )
            status_data = await poller.wait(
                job_id,
                lambda: self._get_status(f"/v1/crawl/{job_id}"),
                is_ready=lambda d: isinstance(d.get("data"), list),
            )
            return self._pages_to_content(status_data["data"], url, "firecrawl_crawl")

        if isinstance(crawl_data.get("data"), list):
            return self._pages_to_content(crawl_data["data"], url, "firecrawl_crawl")

        raise ProviderError(
            "Invalid Firecrawl response", provider=PROVIDER, body=str(crawl_data)[:500]
        )

    async def scrape(self, url: str) -> RawContent:
        """Scrape a single page as markdown."""
        response = await self.client.post(
            f"{self.base_url}/v1/scrape",
            headers=self._headers(),
            json={"url": url, "formats": ["markdown"], "onlyMainContent": True},
        )
        if not response.is_success:
            raise ProviderError(
                f"Firecrawl scrape failed: {response.status_code}",
                provider=PROVIDER,
                status_code=response.status_code,
                body=response.text,
            )

        data = self._json_object(response).get("data") or {}
        if not isinstance(data, dict):
            raise ProviderError(
                "Invalid Firecrawl response", provider=PROVIDER, body=response.text[:500]
            )
        text = data.get("markdown") or data.get("content") or ""
        return self._truncate(text, url, "firecrawl_scrape")

    # -----------------------
    # Agent
    # -----------------------
    async def start_agent(self, urls: Iterable[str], prompt: str, schema: Dict[str, Any]) -> str:
        """Start an agent extraction job and return its id."""
        response = await self.client.post(
            f"{self.base_url}/v2/agent",
            headers=self._headers(),
            json={"urls": list(urls), "prompt": prompt, "schema": schema},
        )
        if not response.is_success:
            logger.error("Agent start error", status=response.status_code, body=response.text[:500])
            raise ProviderError(
                f"Failed to start agent: {response.status_code}",
                provider=PROVIDER,
                status_code=response.status_code,
                body=response.text,
            )

        agent_data = self._json_object(response)
        job_id = agent_data.get("id")
        if not job_id:
            raise ProviderError("No job ID returned", provider=PROVIDER, body=str(agent_data)[:500])
        logger.info("Agent job started", id=job_id)
        return str(job_id)

    async def wait_for_agent(self, job_id: str) -> Dict[str, Any]:
        """Poll an agent job until it completes; returns the final status document."""
        poller = JobPoller(
            interval=self.config.agent_poll_interval,
            max_attempts=self.config.agent_max_attempts,
            label="Agent job",
            sleep_fn=self._sleep,
        )
        return await poller.wait(job_id, lambda: self._get_status(f"/v2/agent/{job_id}"))

    # -----------------------
    # Helpers
    # -----------------------
    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}"}

    async def _get_status(self, path: str) -> Optional[Dict[str, Any]]:
        response = await self.client.get(f"{self.base_url}{path}", headers=self._headers())
        if not response.is_success:
            logger.warning("Poll error", path=path, status=response.status_code)
            return None
        try:
            status_data = response.json()
        except ValueError:
            status_data = None
        if not isinstance(status_data, dict):
            logger.warning("Poll returned no status document", path=path)
            return None
        return status_data

    @staticmethod
    def _json_object(response: httpx.Response) -> Dict[str, Any]:
        try:
            payload = response.json()
        except ValueError:
            payload = None
        if not isinstance(payload, dict):
            raise ProviderError(
                "Invalid Firecrawl response",
                provider=PROVIDER,
                status_code=response.status_code,
                body=response.text[:500],
            )
        return payload

    def _pages_to_content(self, pages: Iterable[Any], url: str, provider: str) -> RawContent:
        text = self.config.page_separator.join(
            str(page.get("markdown") or "") for page in pages if isinstance(page, dict)
        )
        return self._truncate(text, url, provider)

    def _truncate(self, text: str, url: str, provider: str) -> RawContent:
        limit = self.config.max_content_chars
        return RawContent(
            text=text[:limit],
            source_url=url,
            truncated=len(text) > limit,
            provider=provider,
        )
