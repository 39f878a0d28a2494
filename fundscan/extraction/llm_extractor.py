"""LLM-powered extraction of lender/vendor records and sales recommendations.

This module provides a provider-agnostic interface over the Gemini REST API
and the OpenAI chat API. Prompts are rendered from YAML templates and the
model's JSON reply is lifted into the structured candidate models used by
the normalizer.
"""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

import httpx
import yaml
from loguru import logger

from fundscan.errors import LLMConfigurationError, LLMParseError, LLMProviderError
from fundscan.extraction.models import (
    PROFILE_MODELS,
    CandidateRecord,
    CustomerProfile,
    CustomerRecommendation,
    LenderExtraction,
    Profile,
    VendorExtraction,
)
from fundscan.utils.config import CredentialsConfig, GenerationConfig, LLMConfig
from fundscan.utils.llm_client import create_http_client, create_openai_client, mask_key

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com"

_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```", re.IGNORECASE)


def strip_code_fence(text: str) -> str:
    """Return the body of the first fenced code block, or the text itself."""
    match = _FENCE_RE.search(text)
    if match:
        return match.group(1).strip()
    return text.strip()


def parse_json_object(text: Optional[str]) -> Dict[str, Any]:
    """Parse a model reply into a JSON object.

    Raises:
        LLMParseError: The reply is empty, is not JSON, or is JSON but not an object.
    """
    if not text or not text.strip():
        raise LLMParseError("Empty AI response")
    try:
        data = json.loads(strip_code_fence(text))
    except json.JSONDecodeError as exc:
        raise LLMParseError("Failed to parse AI response") from exc
    if not isinstance(data, dict):
        raise LLMParseError("AI response is not a JSON object")
    return data


def load_prompts(path: str | Path) -> Dict[str, Any]:
    """Load the YAML prompt templates file."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Extraction prompt template not found: {path}")
    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Prompt template root must be a mapping/dict: {path}")
    return data


def _money(value: Optional[float]) -> str:
    return f"${value:,.0f}" if value else "Not provided"


def format_customer_profile(customer: CustomerProfile) -> str:
    lines = [
        f"Name: {customer.first_name} {customer.last_name}",
        f"Business Name: {customer.business_name or 'Not provided'}",
        f"Industry: {customer.industry or 'Not provided'}",
        f"Business Type: {customer.business_type or 'Not provided'}",
        "Time in Business: "
        + (f"{customer.time_in_business} months" if customer.time_in_business else "Not provided"),
        f"Monthly Revenue: {_money(customer.monthly_revenue)}",
        f"Amount Requested: {_money(customer.amount_requested)}",
        f"Lead Source: {customer.lead_source or 'Not provided'}",
        f"Current Status: {customer.status or 'Not provided'}",
        f"Notes: {customer.notes or 'None'}",
    ]
    return "\n".join(lines)


class LLMExtractor:
    """LLM extractor with provider switch and structured parsing.

    A failed call is not retried; the error surfaces to the caller, who may
    choose another strategy.
    """

    def __init__(
        self,
        config: Optional[LLMConfig] = None,
        credentials: Optional[CredentialsConfig] = None,
        prompts_path: str | Path | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
        openai_client: Any = None,
    ) -> None:
        self.config = config or LLMConfig()
        self.credentials = credentials or CredentialsConfig()
        self.prompts_path = Path(prompts_path or self.config.prompts_file)
        self.prompts = load_prompts(self.prompts_path)
        self.http_client = http_client
        self._openai_client = openai_client

        logger.info(
            "Initialized LLMExtractor",
            provider=self.config.provider,
            fast_model=self.config.fast_model,
            quality_model=self.config.quality_model,
            prompts=str(self.prompts_path),
        )

    # -----------------------
    # Public API
    # -----------------------
    async def extract(
        self, content: str, profile: Profile = "lender", model: Optional[str] = None
    ) -> CandidateRecord:
        """Extract a lender or vendor record from page text."""
        record_model = PROFILE_MODELS[profile]
        user = self._render_prompt(f"{profile}_extraction", {"content": content})
        raw_response = await self._call_llm(user, model, self.config.extraction)
        data = parse_json_object(raw_response)
        record = record_model.lift(data)
        logger.info(
            "LLM extraction complete",
            profile=profile,
            fields=len(record.present_fields()),
        )
        return record

    async def extract_lender_info(self, content: str, model: Optional[str] = None) -> LenderExtraction:
        return await self.extract(content, "lender", model)  # type: ignore[return-value]

    async def extract_vendor_info(self, content: str, model: Optional[str] = None) -> VendorExtraction:
        return await self.extract(content, "vendor", model)  # type: ignore[return-value]

    async def generate_customer_recommendation(
        self, customer: CustomerProfile, model: Optional[str] = None
    ) -> CustomerRecommendation:
        """Ask the model for a sales strategy tailored to one customer."""
        user = self._render_prompt(
            "customer_recommendation", {"customer_data": format_customer_profile(customer)}
        )
        raw_response = await self._call_llm(user, model, self.config.recommendation)
        return CustomerRecommendation.lift(parse_json_object(raw_response))

    # -----------------------
    # Prompt handling
    # -----------------------
    def _render_prompt(self, key: str, context: Dict[str, Any]) -> str:
        if key not in self.prompts:
            raise KeyError(f"Prompt key not found in template: {key}")

        prompt = self.prompts.get(key) or {}
        user_template = str(prompt.get("user_template", "{content}"))
        try:
            return user_template.format(**context)
        except KeyError as exc:
            missing = exc.args[0]
            raise KeyError(f"Missing placeholder '{missing}' in prompt context for '{key}'")

    def ensure_credentials(self) -> None:
        """Raise ``LLMConfigurationError`` when the selected provider cannot be called."""
        provider = self.config.provider
        if provider == "gemini":
            if not self.credentials.gemini_api_key:
                raise LLMConfigurationError("Gemini API key not configured")
        elif provider == "openai":
            if self._openai_client is None and not self.credentials.openai_api_key:
                raise LLMConfigurationError("OpenAI API key not configured")
        else:
            raise LLMConfigurationError(f"Unsupported LLM provider: {provider}")

    # -----------------------
    # LLM invocation
    # -----------------------
    async def _call_llm(
        self, user: str, model: Optional[str], generation: GenerationConfig
    ) -> str:
        self.ensure_credentials()
        model_id = self.config.resolve_model(model)
        logger.info(f"Calling LLM for extraction using {self.config.provider}: {model_id}")

        if self.config.provider == "gemini":
            return await self._call_gemini(user, model_id, generation)
        if self.config.provider == "openai":
            return await self._call_openai(user, model_id, generation)
        raise LLMConfigurationError(f"Unsupported LLM provider: {self.config.provider}")

    async def _call_gemini(self, user: str, model_id: str, generation: GenerationConfig) -> str:
        api_key = self.credentials.gemini_api_key
        base_url = (self.config.base_url or GEMINI_BASE_URL).rstrip("/")
        url = f"{base_url}/v1beta/models/{model_id}:generateContent"
        body = {
            "contents": [{"parts": [{"text": user}]}],
            "generationConfig": {
                "temperature": generation.temperature,
                "topK": generation.top_k,
                "topP": generation.top_p,
                "maxOutputTokens": generation.max_output_tokens,
            },
        }
        logger.debug("Gemini request", model=model_id, key=mask_key(api_key))

        if self.http_client is not None:
            response = await self.http_client.post(
                url, params={"key": api_key}, json=body, timeout=self.config.timeout
            )
        else:
            async with create_http_client(self.config.timeout) as client:
                response = await client.post(url, params={"key": api_key}, json=body)

        if not response.is_success:
            logger.error("Gemini API error", status=response.status_code, body=response.text[:500])
            raise LLMProviderError(
                f"Gemini error: {response.status_code}",
                provider="gemini",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise LLMParseError("No response from Gemini") from exc
        text = self._gemini_text(data)
        if not text:
            raise LLMParseError("No response from Gemini")
        return text

    @staticmethod
    def _gemini_text(data: Any) -> str:
        try:
            parts = data["candidates"][0]["content"]["parts"]
        except (KeyError, IndexError, TypeError):
            return ""
        texts: List[str] = [
            str(part.get("text", "")) for part in parts if isinstance(part, dict)
        ]
        return texts[0] if texts else ""

    async def _call_openai(self, user: str, model_id: str, generation: GenerationConfig) -> str:
        from openai import APIStatusError

        client = self._openai_client
        if client is None:
            client = create_openai_client(
                api_key=self.credentials.openai_api_key,
                base_url=self.config.base_url,
                timeout=self.config.timeout,
            )

        try:
            response = await client.chat.completions.create(
                model=model_id,
                messages=[{"role": "user", "content": user}],
                temperature=generation.temperature,
                top_p=generation.top_p,
                max_tokens=generation.max_output_tokens,
            )
        except APIStatusError as exc:
            logger.error("OpenAI API error", status=exc.status_code)
            raise LLMProviderError(
                f"OpenAI error: {exc.status_code}",
                provider="openai",
                status_code=exc.status_code,
                body=str(exc),
            ) from exc

        if not response.choices:
            raise LLMParseError("No response from OpenAI")
        content = response.choices[0].message.content
        if isinstance(content, list):
            parts = []
            for item in content:
                if isinstance(item, dict):
                    parts.append(str(item.get("text", "")))
                else:
                    parts.append(str(item))
            return "\n".join(parts).strip()
        return str(content or "")
