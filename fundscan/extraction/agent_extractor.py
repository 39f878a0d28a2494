"""Extraction by a hosted browsing agent that navigates the site itself."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Optional

from loguru import logger

from fundscan.extraction.heuristic_extractor import HeuristicExtractor
from fundscan.extraction.llm_extractor import load_prompts, strip_code_fence
from fundscan.extraction.models import PROFILE_MODELS, CandidateRecord, Profile
from fundscan.fetching.firecrawl import FirecrawlClient

# Agent status documents have carried the payload under each of these keys.
RESULT_KEYS = ("result", "output", "data")


def resolve_agent_result(status: Dict[str, Any]) -> Any:
    """First non-empty payload among ``result``, ``output`` and ``data``."""
    for key in RESULT_KEYS:
        value = status.get(key)
        if value not in (None, "", {}, []):
            return value
    return None


class AgentExtractor:
    """Runs an agent job for one URL and lifts its answer into a candidate record."""

    def __init__(
        self,
        firecrawl: FirecrawlClient,
        heuristic: Optional[HeuristicExtractor] = None,
        prompts: Optional[Dict[str, Any]] = None,
        *,
        prompts_path: str | Path = "config/extraction_prompts.yaml",
    ) -> None:
        self.firecrawl = firecrawl
        self.heuristic = heuristic or HeuristicExtractor()
        self.prompts = prompts if prompts is not None else load_prompts(prompts_path)

    async def extract(
        self,
        url: str,
        profile: Profile = "vendor",
        schema: Optional[Dict[str, Any]] = None,
    ) -> CandidateRecord:
        """Start an agent job, wait for it, and convert its result.

        ``schema`` overrides the profile's default output schema.
        """
        job = self.prompts.get(f"{profile}_agent") or {}
        prompt = str(job.get("prompt", "")).strip()
        job_schema = schema or job.get("schema") or {}

        job_id = await self.firecrawl.start_agent([url], prompt, job_schema)
        status = await self.firecrawl.wait_for_agent(job_id)
        return self.to_record(resolve_agent_result(status), profile)

    def to_record(self, result: Any, profile: Profile) -> CandidateRecord:
        record_model = PROFILE_MODELS[profile]

        if isinstance(result, dict):
            return record_model.lift(result)

        if isinstance(result, str):
            try:
                parsed = json.loads(strip_code_fence(result))
            except json.JSONDecodeError:
                logger.info("Agent returned free text, using heuristic parse", chars=len(result))
                return self.heuristic.parse(result, profile)
            if isinstance(parsed, dict):
                return record_model.lift(parsed)
            logger.info("Agent returned non-object JSON, using heuristic parse")
            return self.heuristic.parse(result, profile)

        logger.warning(
            "Agent result has unexpected shape",
            type=type(result).__name__,
        )
        return record_model()
