"""Shared utilities: configuration, client factories, logging."""

from fundscan.utils.config import Config, load_config
from fundscan.utils.llm_client import create_http_client, create_openai_client, mask_key
from fundscan.utils.logging_setup import setup_logging

__all__ = [
    "Config",
    "create_http_client",
    "create_openai_client",
    "load_config",
    "mask_key",
    "setup_logging",
]
