"""Controlled vocabularies for lead types and funding products."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Dict, Iterable, List, Tuple

import yaml
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field


def _default_lead_types() -> Dict[str, str]:
    return {
        "live transfer": "live_transfer",
        "live transfers": "live_transfer",
        "aged lead": "aged_lead",
        "aged leads": "aged_lead",
        "aged": "aged_lead",
        "exclusive": "exclusive_lead",
        "exclusive lead": "exclusive_lead",
        "ucc": "ucc_lead",
        "ucc lead": "ucc_lead",
        "ucc leads": "ucc_lead",
        "ucc data": "ucc_lead",
        "appointment": "appointment",
        "appointments": "appointment",
        "web lead": "web_lead",
        "web leads": "web_lead",
        "inbound": "inbound_call",
        "inbound call": "inbound_call",
        "data lead": "data_lead",
        "data leads": "data_lead",
        "data list": "data_lead",
        "email": "email",
        "sms": "sms",
    }


def _default_funding_products() -> Dict[str, str]:
    return {
        "mca": "mca",
        "merchant cash advance": "mca",
        "cash advance": "mca",
        "term loan": "term_loan",
        "term loans": "term_loan",
        "business term": "term_loan",
        "line of credit": "line_of_credit",
        "loc": "line_of_credit",
        "credit line": "line_of_credit",
        "equipment": "equipment_financing",
        "equipment financing": "equipment_financing",
        "equipment loan": "equipment_financing",
        "sba": "sba_loan",
        "sba loan": "sba_loan",
        "small business administration": "sba_loan",
        "invoice factoring": "invoice_factoring",
        "factoring": "invoice_factoring",
        "receivables": "invoice_factoring",
        "revenue based": "revenue_based",
        "revenue-based": "revenue_based",
        "rbf": "revenue_based",
        "real estate": "real_estate",
    }


class ControlledVocabulary(BaseModel):
    """Synonym tables mapping free-text names onto canonical tags.

    Matching is a case-insensitive substring test: a synonym matches when it
    occurs anywhere in the name (``"data list"`` matches ``"Data Listings"``,
    ``"sba"`` matches ``"SBA7a Loans"``). Underscores in names are read as
    spaces, so canonical tags map onto themselves.
    """

    model_config = ConfigDict(extra="ignore")

    lead_types: Dict[str, str] = Field(default_factory=_default_lead_types)
    funding_products: Dict[str, str] = Field(default_factory=_default_funding_products)
    paper_types: List[str] = Field(
        default_factory=lambda: ["a_paper", "b_paper", "c_paper", "d_paper"]
    )
    commission_types: List[str] = Field(default_factory=lambda: ["points", "split", "flat"])

    @classmethod
    def from_yaml(cls, vocabulary_file: Path | None) -> ControlledVocabulary:
        """Load vocabularies from YAML, merging synonym tables with the defaults."""
        base = cls()

        if vocabulary_file is None:
            return base

        if not vocabulary_file.exists():
            logger.warning(f"Vocabulary file not found, using defaults: {vocabulary_file}")
            return base

        loaded = yaml.safe_load(vocabulary_file.read_text(encoding="utf-8")) or {}
        if not isinstance(loaded, dict):
            raise ValueError("Vocabulary file must be a mapping/dict.")

        merged = base.model_dump()
        for key, value in loaded.items():
            if key not in merged:
                continue
            if isinstance(merged[key], dict) and isinstance(value, dict):
                merged[key] = {**merged[key], **{str(k).lower(): v for k, v in value.items()}}
            else:
                merged[key] = value

        return cls(**merged)

    @staticmethod
    def _prepare(name: str) -> str:
        return re.sub(r"\s+", " ", name.replace("_", " ").lower()).strip()

    @classmethod
    def _match(cls, name: str, table: Dict[str, str]) -> List[str]:
        prepared = cls._prepare(name)
        tags: List[str] = []
        if not prepared:
            return tags
        if prepared in table:
            tags.append(table[prepared])
        for synonym, tag in table.items():
            if tag in tags:
                continue
            if synonym in prepared:
                tags.append(tag)
        return tags

    def map_lead_types(self, names: Iterable[str]) -> List[str]:
        """Canonical lead-type tags for product names, first-seen order, no repeats."""
        detected: List[str] = []
        for name in names:
            for tag in self._match(name, self.lead_types):
                if tag not in detected:
                    detected.append(tag)
        return detected

    def map_funding_products(self, names: Iterable[str]) -> Tuple[List[str], List[str]]:
        """Return ``(canonical_tags, unmatched_names)`` for funding product names."""
        mapped: List[str] = []
        unmatched: List[str] = []
        for name in names:
            tags = self._match(name, self.funding_products)
            if not tags:
                if name.strip() and name.strip() not in unmatched:
                    unmatched.append(name.strip())
                continue
            for tag in tags:
                if tag not in mapped:
                    mapped.append(tag)
        return mapped, unmatched

    def map_paper_types(self, names: Iterable[str]) -> List[str]:
        allowed = set(self.paper_types)
        result: List[str] = []
        for name in names:
            tag = self._prepare(name).replace(" ", "_").replace("-", "_")
            if tag in allowed and tag not in result:
                result.append(tag)
        return result

    def map_commission_type(self, value: str) -> str:
        prepared = self._prepare(value)
        return prepared if prepared in self.commission_types else ""
