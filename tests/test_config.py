"""Tests for configuration loading and override behavior."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from fundscan.utils.config import (
    Config,
    CredentialsConfig,
    FirecrawlConfig,
    LLMConfig,
    ProxyFetchConfig,
    ScanConfig,
    load_config,
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "GEMINI_API_KEY",
        "VITE_GEMINI_API_KEY",
        "FIRECRAWL_API_KEY",
        "VITE_FIRECRAWL_API_KEY",
        "OPENAI_API_KEY",
    ):
        monkeypatch.delenv(name, raising=False)


def _write_yaml(path: Path, data: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(data), encoding="utf-8")


def test_yaml_loads_values(tmp_path: Path) -> None:
    cfg_path = tmp_path / "config.yaml"
    _write_yaml(cfg_path, {"firecrawl": {"crawl_page_limit": 3}, "llm": {"provider": "openai"}})

    cfg = load_config(cfg_path)

    assert cfg.firecrawl.crawl_page_limit == 3
    assert cfg.llm.provider == "openai"
    assert cfg.firecrawl.agent_max_attempts == 70


def test_env_credentials_override_yaml(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    cfg_path = tmp_path / "config.yaml"
    _write_yaml(cfg_path, {"credentials": {"gemini_api_key": "yaml-key"}})

    monkeypatch.setenv("GEMINI_API_KEY", "env-key")

    cfg = load_config(cfg_path)

    assert cfg.credentials.gemini_api_key == "env-key"


def test_vite_prefixed_key_is_accepted(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("VITE_FIRECRAWL_API_KEY", "fc-key")

    assert CredentialsConfig().firecrawl_api_key == "fc-key"


def test_missing_file_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "missing.yaml")


def test_invalid_yaml_root_type_raises(tmp_path: Path) -> None:
    cfg_path = tmp_path / "config.yaml"
    cfg_path.write_text(yaml.safe_dump(["not", "a", "mapping"]), encoding="utf-8")

    with pytest.raises(ValueError, match="YAML config root must be a mapping"):
        load_config(cfg_path)


def test_default_poll_budgets() -> None:
    cfg = FirecrawlConfig()

    assert cfg.crawl_budget_seconds == pytest.approx(60.0)
    assert cfg.agent_budget_seconds == pytest.approx(105.0)


def test_poll_budget_must_fit_host_limit() -> None:
    cfg = Config(scan=ScanConfig(host_time_limit_seconds=100))

    with pytest.raises(ValueError, match="agent poll budget"):
        cfg.validate_config()


def test_poll_budget_within_host_limit_passes() -> None:
    cfg = Config(
        firecrawl=FirecrawlConfig(crawl_max_attempts=25, agent_max_attempts=20),
        scan=ScanConfig(host_time_limit_seconds=60),
    )

    cfg.validate_config()


def test_required_credentials_checked() -> None:
    cfg = Config(
        scan=ScanConfig(require_credentials=True),
        credentials=CredentialsConfig(gemini_api_key="", firecrawl_api_key="", openai_api_key=""),
    )

    with pytest.raises(ValueError, match="Gemini API key required"):
        cfg.validate_config()


def test_proxy_template_needs_placeholder() -> None:
    with pytest.raises(ValueError, match="placeholder"):
        ProxyFetchConfig(proxies=["https://relay.example/raw"])


def test_model_variants_resolve() -> None:
    cfg = LLMConfig()

    assert cfg.resolve_model("fast") == "gemini-2.0-flash"
    assert cfg.resolve_model("quality") == "gemini-2.0-pro-exp"
    assert cfg.resolve_model(None) == "gemini-2.0-flash"
    assert cfg.resolve_model("custom-model") == "custom-model"


def test_temperature_out_of_range_rejected() -> None:
    with pytest.raises(ValueError, match="Temperature"):
        LLMConfig(extraction={"temperature": 1.5})
