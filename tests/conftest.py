"""Shared fixtures: repo-relative config files and a fully offline Config."""

from __future__ import annotations

from pathlib import Path

import pytest

from fundscan.utils.config import (
    Config,
    CredentialsConfig,
    LLMConfig,
    NormalizationConfig,
)

REPO_ROOT = Path(__file__).resolve().parents[1]
PROMPTS_PATH = REPO_ROOT / "config" / "extraction_prompts.yaml"
VOCABULARY_PATH = REPO_ROOT / "config" / "vocabulary.yaml"


@pytest.fixture
def prompts_path() -> Path:
    return PROMPTS_PATH


@pytest.fixture
def credentials() -> CredentialsConfig:
    return CredentialsConfig(
        gemini_api_key="test-gemini-key",
        firecrawl_api_key="test-firecrawl-key",
        openai_api_key="",
    )


@pytest.fixture
def config(credentials: CredentialsConfig) -> Config:
    return Config(
        llm=LLMConfig(prompts_file=str(PROMPTS_PATH)),
        normalization=NormalizationConfig(vocabulary_file=str(VOCABULARY_PATH)),
        credentials=credentials,
    )
