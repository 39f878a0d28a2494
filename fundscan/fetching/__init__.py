"""Content retrieval: crawling provider, job polling and relay fallback."""

from fundscan.fetching.content_fetcher import ContentFetcher
from fundscan.fetching.firecrawl import FirecrawlClient
from fundscan.fetching.polling import JobPoller
from fundscan.fetching.proxy_fetcher import ProxyFetcher, html_to_text

__all__ = [
    "ContentFetcher",
    "FirecrawlClient",
    "JobPoller",
    "ProxyFetcher",
    "html_to_text",
]
