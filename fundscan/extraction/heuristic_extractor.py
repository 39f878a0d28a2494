"""Regex/keyword fallback parser for unstructured website or agent text.

Each probe is an independent pure function ``probe_*(text)`` returning the
field value or ``None``. Profiles are ordered tables of ``(field, probe)``
pairs, so a probe can be tested, replaced or extended on its own. Results are
best-effort: this parser exists so that something useful survives when no
structured extraction is available, and it never raises.
"""

from __future__ import annotations

import json
import re
from functools import partial
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from loguru import logger

from fundscan.extraction.models import (
    CandidateRecord,
    LeadProduct,
    LenderExtraction,
    Profile,
    VendorExtraction,
)
from fundscan.utils.config import HeuristicConfig

Probe = Callable[[str], Any]

_EMAIL = r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}"
_PRICE = r"\$(\d[\d,]*(?:\.\d{2})?)"

NAMED_LEAD_PRODUCTS: List[Tuple[str, str]] = [
    ("Live Transfer", r"live transfers?"),
    ("Aged Lead", r"aged leads?"),
    ("Exclusive Lead", r"exclusive leads?"),
    ("UCC Lead", r"ucc (?:leads?|data)"),
    ("Web Lead", r"web leads?"),
    ("Appointment", r"appointments?"),
    ("Data Lead", r"data leads?"),
]

VENDOR_INDUSTRY_KEYWORDS = [
    "MCA",
    "merchant cash advance",
    "business loan",
    "equipment financing",
    "SBA",
    "merchant services",
    "factoring",
]

VENDOR_SERVICE_KEYWORDS = ["CRM", "dialer", "call center", "marketing", "training", "support"]

FUNDING_PRODUCT_KEYWORDS: Dict[str, List[str]] = {
    "mca": ["mca", "merchant cash advance", "cash advance"],
    "term_loan": ["term loan", "term loans", "business term"],
    "line_of_credit": ["line of credit", "loc", "credit line"],
    "equipment_financing": ["equipment", "equipment financing", "equipment loan"],
    "sba_loan": ["sba", "sba loan", "small business administration"],
    "invoice_factoring": ["factoring", "invoice factoring", "receivables"],
    "revenue_based": ["revenue based", "revenue-based", "rbf"],
}


# -----------------------
# Helpers
# -----------------------
def _search(pattern: str, text: str) -> Optional[re.Match[str]]:
    return re.search(pattern, text, re.IGNORECASE)


def _group(pattern: str, text: str, limit: Optional[int] = None, group: int = 1) -> Optional[str]:
    match = _search(pattern, text)
    if not match:
        return None
    value = match.group(group).strip()
    if limit is not None:
        value = value[:limit]
    return value or None


def _int_group(pattern: str, text: str) -> Optional[int]:
    value = _group(pattern, text)
    if value is None:
        return None
    digits = value.replace(",", "")
    return int(digits) if digits.isdigit() else None


def _split_list(value: Optional[str]) -> Optional[List[str]]:
    if not value:
        return None
    items = [part.strip() for part in re.split(r"[,;]", value) if part.strip()]
    return items or None


def _keywords_present(text: str, keywords: Sequence[str]) -> Optional[List[str]]:
    lowered = text.lower()
    found = [kw for kw in keywords if kw.lower() in lowered]
    return found or None


def _product_key(name: str) -> str:
    words = re.sub(r"\s+", " ", name.strip().lower()).split(" ")
    return " ".join(word[:-1] if word.endswith("s") and len(word) > 3 else word for word in words)


# -----------------------
# Shared probes
# -----------------------
def probe_phone(text: str) -> Optional[str]:
    return _group(r"(?:phone|tel|call)[:\s]*(\(?\d[\d\-\(\)\s\.]{6,}\d)", text)


def probe_email(text: str) -> Optional[str]:
    return _group(rf"({_EMAIL})", text)


def probe_vendor_company_name(text: str) -> Optional[str]:
    return _group(r"(?:company name|business name)[:\s]*([^\n,]+)", text)


def probe_lender_company_name(text: str) -> Optional[str]:
    return _group(r"(?:company name|business name|lender)[:\s]*([^\n,]+)", text)


def probe_vendor_contact_name(text: str) -> Optional[str]:
    match = re.search(r"(?i:contact|rep|representative)[:\s]*([A-Z][a-z]+ [A-Z][a-z]+)", text)
    return match.group(1).strip() if match else None


def probe_lender_contact_name(text: str) -> Optional[str]:
    match = re.search(
        r"(?i:contact|rep|representative|account manager)[:\s]*([A-Z][a-z]+ [A-Z][a-z]+)", text
    )
    return match.group(1).strip() if match else None


# -----------------------
# Vendor probes
# -----------------------
def probe_lead_products(text: str, max_name_chars: int = 50) -> Optional[List[LeadProduct]]:
    """Named lead products first, then any other ``<name> $<price>`` mention.

    Generic matches are skipped when their name (case-insensitive, plural
    folded) repeats a product already found.
    """
    products: List[LeadProduct] = []
    seen: set[str] = set()

    for name, pattern in NAMED_LEAD_PRODUCTS:
        match = _search(rf"(?:{pattern})[^$\n]*{_PRICE}", text)
        if match:
            products.append(LeadProduct(product_name=name, price=f"${match.group(1)}"))
            seen.add(_product_key(name))

    generic = re.finditer(
        rf"([A-Za-z][A-Za-z \t]*)[:\-]?\s*{_PRICE}\s*(?:per|/|each)?\s*(?:lead|call|transfer)?",
        text,
        re.IGNORECASE,
    )
    for match in generic:
        name = re.sub(r"\s+", " ", match.group(1)).strip()
        key = _product_key(name)
        if not name or len(name) >= max_name_chars or key in seen:
            continue
        products.append(LeadProduct(product_name=name, price=f"${match.group(2)}"))
        seen.add(key)

    return products or None


def probe_vendor_industries(text: str) -> Optional[List[str]]:
    return _keywords_present(text, VENDOR_INDUSTRY_KEYWORDS)


def probe_lead_generation_method(text: str) -> Optional[str]:
    return _group(r"(?:lead generation|leads are generated|how.*leads)[:\s]*([^\n]+)", text, 500)


def probe_exclusivity(text: str) -> Optional[str]:
    return _group(r"(?:exclusiv|shared)[^\n]*", text, 200, group=0)


def probe_return_policy(text: str) -> Optional[str]:
    return _group(r"(?:return|refund|guarantee)[^\n]*", text, 300, group=0)


def probe_minimum_order(text: str) -> Optional[str]:
    return _group(r"(?:minimum|min order)[^\n]*", text, 100, group=0)


def probe_volume_available(text: str) -> Optional[str]:
    return _group(r"(?:volume|available|daily|weekly|monthly)[^\n]*leads[^\n]*", text, 200, group=0)


def probe_additional_services(text: str) -> Optional[List[str]]:
    return _keywords_present(text, VENDOR_SERVICE_KEYWORDS)


# -----------------------
# Lender probes
# -----------------------
def probe_description(text: str) -> Optional[str]:
    return _group(r"(?:about|overview|description)[:\s]*([^\n]+(?:\n[^\n]+)?)", text, 500)


def probe_funding_products(text: str) -> Optional[List[str]]:
    lowered = text.lower()
    found = [
        product
        for product, keywords in FUNDING_PRODUCT_KEYWORDS.items()
        if any(re.search(rf"\b{re.escape(kw)}\b", lowered) for kw in keywords)
    ]
    return found or None


def probe_min_funding_amount(text: str) -> Optional[int]:
    return _int_group(
        r"(?:minimum|min)\b[^\n]*?(?:funding|loan|amount)[:\s]*\$?(\d[\d,]*)", text
    )


def probe_max_funding_amount(text: str) -> Optional[int]:
    return _int_group(
        r"(?:maximum|max|up to)\b[^\n]*?(?:funding|loan|amount)?[:\s]*\$?(\d[\d,]*)", text
    )


def probe_time_in_business(text: str) -> Optional[int]:
    return _int_group(r"(?:time in business|months? in business|\bTIB\b)[:\s]*(\d+)", text)


def probe_monthly_revenue(text: str) -> Optional[int]:
    return _int_group(r"(?:monthly revenue|min[^\n]*revenue)[:\s]*\$?(\d[\d,]*)", text)


def probe_credit_score(text: str) -> Optional[int]:
    return _int_group(r"(?:credit score|fico|min[^\n]*score)[:\s]*(\d{3})", text)


def probe_commission(text: str) -> Optional[str]:
    return _group(r"(?:commission|broker[^\n]*comp|points)[:\s]*([^\n]+)", text, 200)


def probe_factor_rate(text: str) -> Optional[str]:
    return _group(r"(?:factor rate|interest rate)[:\s]*([^\n]+)", text, 100)


def probe_term_lengths(text: str) -> Optional[str]:
    return _group(r"(?:term lengths?|terms?)\b[:\s]*([^\n]+)", text, 100)


def probe_advance_rate(text: str) -> Optional[str]:
    return _group(r"(?:advance rate|% of revenue)[:\s]*([^\n]+)", text, 100)


def probe_funding_speed(text: str) -> Optional[str]:
    return _group(
        r"(?:funding speed|fund[^\n]*(?:in|within)|same day|24[^\n]*hour|48[^\n]*hour)[^\n]*",
        text,
        100,
        group=0,
    )


def probe_stacking_policy(text: str) -> Optional[str]:
    return _group(r"(?:stack|stacking|2nd position|second position)[^\n]*", text, 200, group=0)


def probe_industries_restricted(text: str) -> Optional[List[str]]:
    return _split_list(
        _group(
            r"(?:restricted|don't fund|won't fund|prohibited)[^\n]*(?:industries?|business)[:\s]*([^\n]+)",
            text,
        )
    )


def probe_industries_preferred(text: str) -> Optional[List[str]]:
    return _split_list(
        _group(r"(?:specialize|preferred|focus)[^\n]*(?:industries?|business)[:\s]*([^\n]+)", text)
    )


def probe_submission_email(text: str) -> Optional[str]:
    return _group(rf"(?:submit|submission)[^\n]*email[:\s]*({_EMAIL})", text)


def probe_submission_portal_url(text: str) -> Optional[str]:
    return _group(r"(?:portal|submit)[^\n]*(https?://[^\s)\]]+)", text)


# -----------------------
# Extractor
# -----------------------
class HeuristicExtractor:
    """Runs the probe table of a profile over free text."""

    def __init__(self, config: Optional[HeuristicConfig] = None) -> None:
        self.config = config or HeuristicConfig()
        self.probes: Dict[str, List[Tuple[str, Probe]]] = {
            "vendor": [
                ("company_name", probe_vendor_company_name),
                ("phone", probe_phone),
                ("email", probe_email),
                ("contact_name", probe_vendor_contact_name),
                (
                    "lead_products",
                    partial(probe_lead_products, max_name_chars=self.config.max_product_name_chars),
                ),
                ("industries", probe_vendor_industries),
                ("lead_generation_method", probe_lead_generation_method),
                ("exclusivity", probe_exclusivity),
                ("return_policy", probe_return_policy),
                ("minimum_order", probe_minimum_order),
                ("volume_available", probe_volume_available),
                ("additional_services", probe_additional_services),
            ],
            "lender": [
                ("company_name", probe_lender_company_name),
                ("primary_contact_phone", probe_phone),
                ("primary_contact_email", probe_email),
                ("primary_contact_name", probe_lender_contact_name),
                ("description", probe_description),
                ("lender_types", probe_funding_products),
                ("min_funding_amount", probe_min_funding_amount),
                ("max_funding_amount", probe_max_funding_amount),
                ("min_time_in_business", probe_time_in_business),
                ("min_monthly_revenue", probe_monthly_revenue),
                ("min_credit_score", probe_credit_score),
                ("commission_structure", probe_commission),
                ("factor_rate_range", probe_factor_rate),
                ("term_lengths", probe_term_lengths),
                ("advance_rate", probe_advance_rate),
                ("funding_speed", probe_funding_speed),
                ("stacking_policy", probe_stacking_policy),
                ("industries_restricted", probe_industries_restricted),
                ("industries_preferred", probe_industries_preferred),
                ("submission_email", probe_submission_email),
                ("submission_portal_url", probe_submission_portal_url),
            ],
        }

    def parse(self, output: Any, profile: Profile = "vendor") -> CandidateRecord:
        """Parse ``output`` (text, or any JSON-serialisable value) into a candidate record."""
        text = output if isinstance(output, str) else json.dumps(output, default=str)
        model = VendorExtraction if profile == "vendor" else LenderExtraction

        values: Dict[str, Any] = {}
        for field, probe in self.probes[profile]:
            try:
                value = probe(text)
            except (re.error, TypeError, ValueError) as exc:
                logger.warning(f"Heuristic probe failed for '{field}'", error=str(exc))
                continue
            if value is not None:
                values[field] = value

        values["detailed_notes"] = text[: self.config.notes_chars]

        record = model.lift(values)
        logger.debug(
            "Heuristic parse complete", profile=profile, fields=record.present_fields()
        )
        return record
