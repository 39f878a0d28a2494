"""Configuration management using Pydantic for validation."""

from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

import yaml
from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ModelVariant = Literal["fast", "quality"]
ScanStrategy = Literal["llm", "heuristic", "agent"]


class FirecrawlConfig(BaseSettings):
    """Crawling/agent provider configuration."""

    base_url: str = "https://api.firecrawl.dev"
    request_timeout: float = 30.0
    crawl_page_limit: int = Field(default=5, ge=1)
    crawl_poll_interval: float = Field(default=2.0, gt=0)
    crawl_max_attempts: int = Field(default=30, ge=1)
    agent_poll_interval: float = Field(default=1.5, gt=0)
    agent_max_attempts: int = Field(default=70, ge=1)
    max_content_chars: int = 20000
    page_separator: str = "\n\n---\n\n"

    @property
    def crawl_budget_seconds(self) -> float:
        return self.crawl_poll_interval * self.crawl_max_attempts

    @property
    def agent_budget_seconds(self) -> float:
        return self.agent_poll_interval * self.agent_max_attempts


class ProxyFetchConfig(BaseSettings):
    """Read-only relay fallback configuration."""

    enabled: bool = True
    proxies: List[str] = [
        "https://api.allorigins.win/raw?url={url}",
        "https://corsproxy.io/?{url}",
        "https://api.codetabs.com/v1/proxy?quest={url}",
    ]
    request_timeout: float = 20.0
    min_content_chars: int = 100
    max_content_chars: int = 15000
    strip_tags: List[str] = ["script", "style", "noscript", "iframe"]

    @field_validator("proxies")
    @classmethod
    def validate_proxies(cls, v: List[str]) -> List[str]:
        """Each relay template must carry a ``{url}`` placeholder."""
        for template in v:
            if "{url}" not in template:
                raise ValueError(f"Proxy template missing '{{url}}' placeholder: {template}")
        return v


class GenerationConfig(BaseSettings):
    """Sampling parameters sent with a generation request."""

    temperature: float = 0.1
    top_k: int = 1
    top_p: float = 1.0
    max_output_tokens: int = 4096

    @field_validator("temperature")
    @classmethod
    def validate_temperature(cls, v: float) -> float:
        """Validate temperature is between 0 and 1."""
        if not 0 <= v <= 1:
            raise ValueError("Temperature must be between 0 and 1")
        return v


class LLMConfig(BaseSettings):
    """LLM configuration."""

    provider: Literal["gemini", "openai"] = "gemini"
    fast_model: str = "gemini-2.0-flash"
    quality_model: str = "gemini-2.0-pro-exp"
    base_url: str | None = None
    timeout: int = 60
    prompts_file: str = "config/extraction_prompts.yaml"
    extraction: GenerationConfig = Field(default_factory=GenerationConfig)
    recommendation: GenerationConfig = Field(
        default_factory=lambda: GenerationConfig(
            temperature=0.7, top_k=40, top_p=0.95, max_output_tokens=4096
        )
    )

    def resolve_model(self, variant: Optional[str]) -> str:
        """Map a ``fast``/``quality`` variant (or an explicit model id) to a model id."""
        if variant in (None, "", "fast"):
            return self.fast_model
        if variant == "quality":
            return self.quality_model
        return str(variant)


class HeuristicConfig(BaseSettings):
    """Regex fallback parser configuration."""

    notes_chars: int = 2000
    max_product_name_chars: int = 50


class NormalizationConfig(BaseSettings):
    """Normalization configuration."""

    vocabulary_file: str = "config/vocabulary.yaml"
    description_industry_limit: int = 3
    timestamp_format: str = "%Y-%m-%d %H:%M:%S %Z"


class ScanConfig(BaseSettings):
    """Scan pipeline configuration."""

    default_strategy: ScanStrategy = "llm"
    default_model: ModelVariant = "fast"
    # Serverless hosts kill requests after a fixed wall-clock limit; poll
    # budgets are checked against it when set.
    host_time_limit_seconds: float | None = None
    require_credentials: bool = False


class LoggingConfig(BaseSettings):
    """Logging configuration."""

    level: str = "INFO"
    format: Literal["json", "text"] = "text"
    file: str | None = None
    max_size_mb: int = 10
    backup_count: int = 3


class CredentialsConfig(BaseSettings):
    """API credentials from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    gemini_api_key: str = Field(
        default="", validation_alias=AliasChoices("gemini_api_key", "vite_gemini_api_key")
    )
    firecrawl_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("firecrawl_api_key", "vite_firecrawl_api_key"),
    )
    openai_api_key: str = Field(default="")


class Config(BaseSettings):
    """Main configuration class."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="allow",
        env_nested_delimiter="__",
    )

    firecrawl: FirecrawlConfig = Field(default_factory=FirecrawlConfig)
    proxy: ProxyFetchConfig = Field(default_factory=ProxyFetchConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    heuristic: HeuristicConfig = Field(default_factory=HeuristicConfig)
    normalization: NormalizationConfig = Field(default_factory=NormalizationConfig)
    scan: ScanConfig = Field(default_factory=ScanConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    credentials: CredentialsConfig = Field(default_factory=CredentialsConfig)

    @staticmethod
    def _deep_merge_dict(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
        """Deep-merge two dicts (overrides win).

        This is used to apply environment-derived overrides on top of YAML defaults.
        """
        merged: Dict[str, Any] = dict(base)
        for key, value in overrides.items():
            if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
                merged[key] = Config._deep_merge_dict(merged[key], value)
            else:
                merged[key] = value
        return merged

    @classmethod
    def from_yaml(cls, yaml_path: str | Path = "config/config.yaml") -> "Config":
        """Load configuration from YAML file and environment variables.

        Precedence (highest to lowest):
        1) Environment variables / .env
        2) YAML file
        3) Model defaults

        Args:
            yaml_path: Path to YAML configuration file

        Returns:
            Config instance with loaded settings

        Raises:
            FileNotFoundError: If YAML file doesn't exist
            ValueError: If the YAML root is not a mapping
        """
        yaml_path = Path(yaml_path)
        if not yaml_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {yaml_path}")

        with open(yaml_path, encoding="utf-8") as f:
            yaml_config = yaml.safe_load(f) or {}

        if not isinstance(yaml_config, dict):
            raise ValueError(f"YAML config root must be a mapping/dict: {yaml_path}")

        # Nested settings do not read plain env vars (e.g. GEMINI_API_KEY)
        # through the parent model, so credentials are resolved on their own
        # and merged under "credentials".
        env_overrides = cls().model_dump(exclude_defaults=True)
        env_overrides.pop("credentials", None)

        cred_env_overrides = CredentialsConfig().model_dump(exclude_defaults=True)
        if cred_env_overrides:
            yaml_creds = yaml_config.get("credentials", {})
            env_overrides["credentials"] = cls._deep_merge_dict(
                yaml_creds if isinstance(yaml_creds, dict) else {},
                cred_env_overrides,
            )

        merged = cls._deep_merge_dict(yaml_config, env_overrides)

        return cls(**merged)

    def validate_config(self) -> None:
        """Validate configuration settings.

        Raises:
            ValueError: If configuration is invalid
        """
        limit = self.scan.host_time_limit_seconds
        if limit is not None:
            for name, budget in (
                ("crawl", self.firecrawl.crawl_budget_seconds),
                ("agent", self.firecrawl.agent_budget_seconds),
            ):
                if budget >= limit:
                    raise ValueError(
                        f"{name} poll budget ({budget:.1f}s) must stay below the host "
                        f"time limit ({limit:.1f}s)"
                    )

        if self.scan.require_credentials:
            if self.llm.provider == "gemini" and not self.credentials.gemini_api_key:
                raise ValueError("Gemini API key required when using gemini provider")
            if self.llm.provider == "openai" and not self.credentials.openai_api_key:
                if "api.openai.com" in (self.llm.base_url or "api.openai.com"):
                    raise ValueError("OpenAI API key required when using openai provider")


def load_config(yaml_path: str | Path = "config/config.yaml") -> Config:
    """Load and validate configuration.

    Args:
        yaml_path: Path to YAML configuration file

    Returns:
        Loaded and validated Config instance
    """
    config = Config.from_yaml(yaml_path)
    config.validate_config()
    return config
