"""End-to-end website scan: fetch, extract, normalize.

Three strategies share the same tail (normalization):

- ``llm``: fetch page text, then prompted LLM extraction
- ``heuristic``: fetch page text, then the regex field probes
- ``agent``: a hosted browsing agent reads the site and returns the fields

Each call opens one HTTP client and closes it on exit, including when the
awaiting task is cancelled.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime
from typing import Any, Callable, Dict, Optional, get_args

import httpx
from loguru import logger

from fundscan.errors import ConfigurationError
from fundscan.extraction.agent_extractor import AgentExtractor
from fundscan.extraction.heuristic_extractor import HeuristicExtractor
from fundscan.extraction.llm_extractor import LLMExtractor, load_prompts
from fundscan.extraction.models import (
    CandidateRecord,
    CustomerProfile,
    CustomerRecommendation,
    ExtractionRequest,
    NormalizedResult,
    Profile,
)
from fundscan.fetching.content_fetcher import ContentFetcher
from fundscan.fetching.firecrawl import FirecrawlClient
from fundscan.fetching.polling import SleepFn
from fundscan.normalization.result_normalizer import ResultNormalizer
from fundscan.utils.config import Config, ScanStrategy
from fundscan.utils.llm_client import create_http_client


class ScanPipeline:
    """Orchestrates one website scan per call.

    Example:
        >>> pipeline = ScanPipeline(load_config())
        >>> result = asyncio.run(pipeline.scan(ExtractionRequest(url="acme.com"), "lender"))
        >>> print(result.notes)
    """

    def __init__(
        self,
        config: Config,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep_fn: SleepFn | None = None,
        clock: Callable[[], datetime] | None = None,
        openai_client: Any = None,
    ) -> None:
        """Initialize the scan pipeline.

        Args:
            config: Application configuration
            transport: HTTP transport for every outbound call (tests pass a mock)
            sleep_fn: Awaitable sleep used between poll attempts
            clock: Source of the scan timestamp
            openai_client: Pre-built OpenAI client for the ``openai`` provider
        """
        self.config = config
        self._transport = transport
        self._sleep = sleep_fn
        self._openai_client = openai_client
        self._debug_logging = str(config.logging.level).upper() == "DEBUG"
        self._http_logs_silenced = False

        self.heuristic = HeuristicExtractor(config.heuristic)
        self.normalizer = ResultNormalizer(config.normalization, clock=clock)
        self.prompts = load_prompts(config.llm.prompts_file)

        self.stats: Dict[str, Any] = {
            "scans_completed": 0,
            "scans_failed": 0,
            "last_scan_seconds": 0.0,
        }
        logger.info("ScanPipeline initialized", strategy=config.scan.default_strategy)

    # -----------------------
    # Public API
    # -----------------------
    async def scan(
        self,
        request: ExtractionRequest,
        profile: Profile = "lender",
        strategy: Optional[ScanStrategy] = None,
    ) -> NormalizedResult:
        """Run one scan and return the normalized, reviewable result.

        Raises:
            ScanError: Any failure of fetching, extraction or configuration.
        """
        strategy = strategy or self.config.scan.default_strategy
        if strategy not in get_args(ScanStrategy):
            raise ConfigurationError(f"Unknown scan strategy: {strategy}")

        self._silence_external_http_logs()
        logger.info("Starting scan", url=request.url, profile=profile, strategy=strategy)
        start = time.perf_counter()

        try:
            async with self._http_client() as client:
                candidate = await self._extract(client, request, profile, strategy)
        except Exception:
            self.stats["scans_failed"] += 1
            raise

        result = self.normalizer.normalize(candidate, request.url)
        elapsed = time.perf_counter() - start
        self.stats["scans_completed"] += 1
        self.stats["last_scan_seconds"] = elapsed
        logger.info(
            "Scan complete",
            url=request.url,
            fields=len(candidate.present_fields()),
            seconds=round(elapsed, 2),
        )
        return result

    async def recommend(
        self, customer: CustomerProfile, model: Optional[str] = None
    ) -> CustomerRecommendation:
        """Generate sales recommendations for one customer."""
        self._silence_external_http_logs()
        async with self._http_client() as client:
            extractor = self._llm_extractor(client)
            return await extractor.generate_customer_recommendation(
                customer, model or self.config.scan.default_model
            )

    # -----------------------
    # Strategies
    # -----------------------
    async def _extract(
        self,
        client: httpx.AsyncClient,
        request: ExtractionRequest,
        profile: Profile,
        strategy: str,
    ) -> CandidateRecord:
        if strategy == "agent":
            firecrawl = FirecrawlClient(
                client,
                self.config.credentials.firecrawl_api_key or "",
                self.config.firecrawl,
                sleep_fn=self._sleep,
            )
            agent = AgentExtractor(firecrawl, self.heuristic, self.prompts)
            return await agent.extract(request.url, profile, request.schema_hint)

        extractor: Optional[LLMExtractor] = None
        if strategy == "llm":
            extractor = self._llm_extractor(client)
            extractor.ensure_credentials()

        fetcher = ContentFetcher(self.config, client, sleep_fn=self._sleep)
        content = await fetcher.fetch(request.url)

        if extractor is None:
            return self.heuristic.parse(content.text, profile)

        model = request.model_hint or self.config.scan.default_model
        return await extractor.extract(content.text, profile, model)

    # -----------------------
    # Helpers
    # -----------------------
    def _http_client(self) -> httpx.AsyncClient:
        return create_http_client(
            float(self.config.firecrawl.request_timeout), transport=self._transport
        )

    def _llm_extractor(self, client: httpx.AsyncClient) -> LLMExtractor:
        return LLMExtractor(
            self.config.llm,
            self.config.credentials,
            self.config.llm.prompts_file,
            http_client=client,
            openai_client=self._openai_client,
        )

    def _silence_external_http_logs(self) -> None:
        """Reduce noisy external logs unless debug logging is enabled."""
        if self._debug_logging or self._http_logs_silenced:
            return

        for name in ("httpx", "httpcore", "openai", "openai._base_client"):
            logging.getLogger(name).setLevel(logging.ERROR)
        self._http_logs_silenced = True
