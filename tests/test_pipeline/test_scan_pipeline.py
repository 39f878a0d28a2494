from __future__ import annotations

import asyncio
import json
from datetime import datetime, timezone
from typing import List

import httpx
import pytest

from fundscan.errors import ConfigurationError, FetchError, LLMConfigurationError
from fundscan.extraction.models import (
    CandidateRecord,
    CustomerProfile,
    ExtractionRequest,
    LenderScanResult,
    VendorScanResult,
)
from fundscan.pipeline.scan_pipeline import ScanPipeline
from fundscan.utils.config import Config, CredentialsConfig

SCANNED_AT = datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc)

LENDER_MARKDOWN = """# Acme Funding
About: Acme Funding offers merchant cash advance and term loan products.
Minimum funding amount: $10,000
"""


async def _noop_sleep(_: float) -> None:
    return None


def _gemini_reply(payload: dict) -> httpx.Response:
    return httpx.Response(
        200, json={"candidates": [{"content": {"parts": [{"text": json.dumps(payload)}]}}]}
    )


def _pipeline(config: Config, handler) -> ScanPipeline:
    return ScanPipeline(
        config,
        transport=httpx.MockTransport(handler),
        sleep_fn=_noop_sleep,
        clock=lambda: SCANNED_AT,
    )


def test_llm_strategy_lender_scan(config: Config) -> None:
    hosts: List[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        hosts.append(request.url.host)
        if request.url.host == "api.firecrawl.dev":
            return httpx.Response(200, json={"data": [{"markdown": LENDER_MARKDOWN}]})
        return _gemini_reply(
            {
                "company_name": "Acme Funding",
                "lender_types": ["mca", "term_loan", "Bridge Loans"],
                "min_funding_amount": "$10,000",
                "states_restricted": ["nd"],
            }
        )

    pipeline = _pipeline(config, handler)
    result = asyncio.run(pipeline.scan(ExtractionRequest(url="https://acme.test"), "lender", "llm"))

    assert isinstance(result, LenderScanResult)
    assert hosts == ["api.firecrawl.dev", "generativelanguage.googleapis.com"]
    assert result.company_name == "Acme Funding"
    assert result.funding_products == ["mca", "term_loan"]
    assert result.unmapped_products == ["Bridge Loans"]
    assert result.min_funding_amount == 10000
    assert result.states_restricted == ["ND"]
    assert result.scanned_at == SCANNED_AT
    assert pipeline.stats["scans_completed"] == 1


def test_crawled_funding_range_flows_through_gemini_to_result(config: Config) -> None:
    markdown = "# Acme Funding\nMinimum funding: $5,000\nMax funding: $250,000\n"
    prompts: List[str] = []
    candidates: List[CandidateRecord] = []

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "api.firecrawl.dev":
            return httpx.Response(200, json={"data": [{"markdown": markdown}]})
        prompts.append(json.loads(request.content)["contents"][0]["parts"][0]["text"])
        return _gemini_reply({"min_funding_amount": 5000, "max_funding_amount": 250000})

    pipeline = _pipeline(config, handler)
    normalize = pipeline.normalizer.normalize

    def capture(candidate: CandidateRecord, source_url: str):
        candidates.append(candidate)
        return normalize(candidate, source_url)

    pipeline.normalizer.normalize = capture  # type: ignore[method-assign]
    result = asyncio.run(pipeline.scan(ExtractionRequest(url="https://acme.test"), "lender", "llm"))

    assert len(prompts) == 1
    assert "Minimum funding: $5,000" in prompts[0]
    assert "Max funding: $250,000" in prompts[0]
    assert sorted(candidates[0].present_fields()) == ["max_funding_amount", "min_funding_amount"]
    assert isinstance(result, LenderScanResult)
    assert result.min_funding_amount == 5000
    assert result.max_funding_amount == 250000
    assert result.company_name == ""
    assert result.funding_products == []


def test_heuristic_strategy_vendor_scan(config: Config) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.host == "api.firecrawl.dev"
        return httpx.Response(
            200,
            json={"data": [{"markdown": "Company Name: LeadCo\nLive Transfers $35/lead, Aged Leads $12/lead"}]},
        )

    result = asyncio.run(
        _pipeline(config, handler).scan(ExtractionRequest(url="https://leadco.test"), "vendor", "heuristic")
    )

    assert isinstance(result, VendorScanResult)
    assert result.vendor_name == "LeadCo"
    assert result.lead_types == ["live_transfer", "aged_lead"]
    assert [(p.product, p.price) for p in result.pricing_products] == [
        ("Live Transfer", "$35"),
        ("Aged Lead", "$12"),
    ]
    assert "SUMMARY" in result.notes
    assert "Live Transfers $35/lead" in result.notes


def test_agent_strategy_scan(config: Config) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "POST":
            assert request.url.path == "/v2/agent"
            return httpx.Response(200, json={"id": "job-7"})
        return httpx.Response(
            200,
            json={"status": "completed", "data": {"company_name": "Acme", "funding_products": ["SBA"]}},
        )

    result = asyncio.run(
        _pipeline(config, handler).scan(ExtractionRequest(url="https://acme.test"), "lender", "agent")
    )

    assert result.company_name == "Acme"
    assert result.funding_products == ["sba_loan"]


def test_agent_strategy_requires_firecrawl_key(config: Config) -> None:
    config.credentials = CredentialsConfig(gemini_api_key="g", firecrawl_api_key="", openai_api_key="")
    pipeline = _pipeline(config, lambda request: httpx.Response(500))

    with pytest.raises(ConfigurationError, match="Firecrawl API key"):
        asyncio.run(pipeline.scan(ExtractionRequest(url="https://acme.test"), "lender", "agent"))


def test_llm_strategy_without_gemini_key_fails_before_fetching(config: Config) -> None:
    config.credentials = CredentialsConfig(gemini_api_key="", firecrawl_api_key="fc", openai_api_key="")
    requests: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"status": "scraping", "id": "crawl-1"})

    pipeline = _pipeline(config, handler)
    with pytest.raises(LLMConfigurationError, match="Gemini API key"):
        asyncio.run(pipeline.scan(ExtractionRequest(url="https://acme.test"), "lender", "llm"))

    assert requests == []
    assert pipeline.stats["scans_failed"] == 1


def test_fetch_failure_propagates(config: Config) -> None:
    pipeline = _pipeline(config, lambda request: httpx.Response(503))

    with pytest.raises(FetchError):
        asyncio.run(pipeline.scan(ExtractionRequest(url="https://acme.test"), "vendor", "heuristic"))


def test_unknown_strategy_rejected(config: Config) -> None:
    pipeline = _pipeline(config, lambda request: httpx.Response(500))

    with pytest.raises(ConfigurationError, match="Unknown scan strategy"):
        asyncio.run(pipeline.scan(ExtractionRequest(url="https://acme.test"), "lender", "magic"))  # type: ignore[arg-type]


def test_recommend(config: Config) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return _gemini_reply({"summary": "Good fit for MCA.", "red_flags": []})

    customer = CustomerProfile(first_name="Sam", last_name="Rivera", monthly_revenue=40000)
    rec = asyncio.run(_pipeline(config, handler).recommend(customer))

    assert rec.summary == "Good fit for MCA."
    assert rec.red_flags == []
