"""Shared data models for extraction and normalization."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, ClassVar, Dict, List, Literal, Mapping, Optional

from loguru import logger
from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)

from fundscan.normalization.sanitizers import parse_amount
from fundscan.utils.config import ModelVariant

Profile = Literal["lender", "vendor"]


def _field_keys(name: str, alias: Any) -> List[str]:
    keys = [name]
    if isinstance(alias, AliasChoices):
        keys.extend(choice for choice in alias.choices if isinstance(choice, str))
    elif isinstance(alias, str):
        keys.append(alias)
    return list(dict.fromkeys(keys))


def _string_items(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, (list, tuple)):
        return [item for item in value if isinstance(item, str)]
    return value


def _amount(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    return parse_amount(value)


class LenientModel(BaseModel):
    """Model that can be built from an untrusted mapping one field at a time."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    @classmethod
    def lift(cls, data: Mapping[str, Any]):
        """Build an instance keeping only fields that validate on their own.

        Keys may use any accepted alias. ``None`` values count as absent. A
        field whose value fails validation is dropped and logged.
        """
        if not isinstance(data, Mapping):
            return cls()

        clean: Dict[str, Any] = {}
        for name, info in cls.model_fields.items():
            for key in _field_keys(name, info.validation_alias):
                if key not in data or data[key] is None:
                    continue
                value = data[key]
                try:
                    cls.model_validate({name: value})
                except ValidationError as exc:
                    logger.warning(
                        "Dropping field with unexpected type",
                        model=cls.__name__,
                        field=name,
                        error=exc.errors()[0].get("msg", ""),
                    )
                else:
                    clean[name] = value
                break

        return cls.model_validate(clean)


class ExtractionRequest(BaseModel):
    """One user-triggered extraction."""

    model_config = ConfigDict(frozen=True)

    url: str
    model_hint: Optional[ModelVariant] = None
    schema_hint: Optional[Dict[str, Any]] = None

    @field_validator("url")
    @classmethod
    def _validate_url(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("URL is required")
        return value


class RawContent(BaseModel):
    """Page text retrieved by the content fetcher."""

    model_config = ConfigDict(frozen=True)

    text: str
    source_url: str
    truncated: bool = False
    provider: str = "unknown"


class CandidateRecord(LenientModel):
    """Provisional structured result of one extraction attempt.

    Every field is optional; ``None`` means the field was not found.
    """

    profile: ClassVar[str] = ""

    def present_fields(self) -> List[str]:
        """Names of fields that hold a value."""
        return [
            name
            for name in type(self).model_fields
            if getattr(self, name) not in (None, "", [])
        ]


class LeadProduct(LenientModel):
    """A lead product and its per-lead price as advertised by a vendor."""

    product_name: str = ""
    price: str = Field(default="", validation_alias=AliasChoices("price", "price_per_lead"))
    description: str = ""
    minimum: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("minimum", "minimum_order")
    )

    @field_validator("price", "minimum", mode="before")
    @classmethod
    def _numbers_to_text(cls, value: Any) -> Any:
        if isinstance(value, bool):
            return value
        if isinstance(value, int):
            return f"${value:,}"
        if isinstance(value, float):
            return f"${value:,.2f}"
        return value


class VendorExtraction(CandidateRecord):
    """Fields extracted for a lead-generation vendor."""

    profile: ClassVar[str] = "vendor"

    company_name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    contact_name: Optional[str] = None
    lead_products: Optional[List[LeadProduct]] = None
    industries: Optional[List[str]] = None
    lead_generation_method: Optional[str] = None
    exclusivity: Optional[str] = None
    return_policy: Optional[str] = None
    minimum_order: Optional[str] = None
    volume_available: Optional[str] = None
    additional_services: Optional[List[str]] = None
    detailed_notes: Optional[str] = None

    @field_validator("industries", "additional_services", mode="before")
    @classmethod
    def _keep_string_items(cls, value: Any) -> Any:
        return _string_items(value)

    @field_validator("lead_products", mode="before")
    @classmethod
    def _keep_mapping_items(cls, value: Any) -> Any:
        if isinstance(value, (list, tuple)):
            return [
                LeadProduct.lift(item) if isinstance(item, Mapping) else item
                for item in value
                if isinstance(item, (Mapping, LeadProduct))
            ]
        return value


class LenderExtraction(CandidateRecord):
    """Fields extracted for a lender (funding partner)."""

    profile: ClassVar[str] = "lender"

    company_name: Optional[str] = None
    description: Optional[str] = None
    lender_types: Optional[List[str]] = Field(
        default=None, validation_alias=AliasChoices("lender_types", "funding_products")
    )
    paper_types: Optional[List[str]] = None
    min_funding_amount: Optional[int] = None
    max_funding_amount: Optional[int] = None
    min_time_in_business: Optional[int] = None
    min_monthly_revenue: Optional[int] = None
    min_credit_score: Optional[int] = None
    min_daily_balance: Optional[int] = None
    commission_type: Optional[str] = None
    commission_rate: Optional[float] = None
    commission_notes: Optional[str] = None
    commission_structure: Optional[str] = None
    funding_speed: Optional[str] = None
    factor_rate_range: Optional[str] = None
    term_lengths: Optional[str] = None
    advance_rate: Optional[str] = None
    stacking_policy: Optional[str] = None
    requires_collateral: Optional[bool] = None
    industries_restricted: Optional[List[str]] = None
    industries_preferred: Optional[List[str]] = None
    states_restricted: Optional[List[str]] = None
    submission_email: Optional[str] = None
    submission_portal_url: Optional[str] = None
    primary_contact_name: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("primary_contact_name", "contact_name")
    )
    primary_contact_email: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("primary_contact_email", "email")
    )
    primary_contact_phone: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("primary_contact_phone", "phone")
    )
    notes: Optional[str] = None
    detailed_notes: Optional[str] = None

    @field_validator(
        "min_funding_amount",
        "max_funding_amount",
        "min_time_in_business",
        "min_monthly_revenue",
        "min_credit_score",
        "min_daily_balance",
        mode="before",
    )
    @classmethod
    def _parse_amounts(cls, value: Any) -> Any:
        return _amount(value)

    @field_validator(
        "lender_types",
        "paper_types",
        "industries_restricted",
        "industries_preferred",
        "states_restricted",
        mode="before",
    )
    @classmethod
    def _keep_string_items(cls, value: Any) -> Any:
        return _string_items(value)


PROFILE_MODELS: Dict[str, type[CandidateRecord]] = {
    "lender": LenderExtraction,
    "vendor": VendorExtraction,
}


# -----------------------
# Customer recommendations
# -----------------------
class CustomerProfile(BaseModel):
    """Customer (loan applicant) facts handed to the recommendation prompt."""

    model_config = ConfigDict(extra="ignore")

    first_name: str
    last_name: str
    business_name: Optional[str] = None
    industry: Optional[str] = None
    business_type: Optional[str] = None
    time_in_business: Optional[int] = None
    monthly_revenue: Optional[float] = None
    amount_requested: Optional[float] = None
    lead_source: Optional[str] = None
    status: Optional[str] = None
    notes: Optional[str] = None


class ProductRecommendation(LenientModel):
    product_type: str = ""
    product_name: str = ""
    fit_score: int = 0
    reasoning: str = ""
    typical_terms: Optional[str] = None

    @field_validator("fit_score", mode="before")
    @classmethod
    def _clamp_fit_score(cls, value: Any) -> int:
        try:
            score = int(round(float(value)))
        except (TypeError, ValueError):
            return 0
        return max(1, min(score, 10))


class ObjectionHandler(LenientModel):
    objection: str = ""
    response: str = ""


class CustomerRecommendation(LenientModel):
    """Sales guidance generated for one customer."""

    summary: str = ""
    recommended_products: List[ProductRecommendation] = Field(default_factory=list)
    opening_script: str = ""
    discovery_questions: List[str] = Field(default_factory=list)
    objection_handlers: List[ObjectionHandler] = Field(default_factory=list)
    closing_approach: str = ""
    red_flags: List[str] = Field(default_factory=list)
    next_steps: List[str] = Field(default_factory=list)

    @field_validator("recommended_products", "objection_handlers", mode="before")
    @classmethod
    def _keep_mapping_items(cls, value: Any) -> Any:
        if isinstance(value, (list, tuple)):
            return [item for item in value if isinstance(item, (Mapping, BaseModel))]
        return value

    @field_validator("discovery_questions", "red_flags", "next_steps", mode="before")
    @classmethod
    def _keep_string_items(cls, value: Any) -> Any:
        return _string_items(value)


# -----------------------
# Normalized results
# -----------------------
class NormalizedResult(BaseModel):
    """Terminal artifact handed back to the caller for review."""

    source_url: str
    scanned_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    notes: str = ""


class PricingProduct(BaseModel):
    product: str = ""
    price: str = ""
    minimum: str = ""
    notes: str = ""


class VendorScanResult(NormalizedResult):
    vendor_name: str = ""
    description: str = ""
    contact_name: str = ""
    contact_email: str = ""
    contact_phone: str = ""
    lead_types: List[str] = Field(default_factory=list)
    pricing_products: List[PricingProduct] = Field(default_factory=list)
    minimum_order: str = ""
    return_policy: str = ""
    exclusivity: str = ""
    lead_generation_method: str = ""
    volume_available: str = ""
    industries_served: List[str] = Field(default_factory=list)
    additional_services: List[str] = Field(default_factory=list)


class LenderScanResult(NormalizedResult):
    company_name: str = ""
    description: str = ""
    primary_contact_name: str = ""
    primary_contact_email: str = ""
    primary_contact_phone: str = ""
    funding_products: List[str] = Field(default_factory=list)
    unmapped_products: List[str] = Field(default_factory=list)
    paper_types: List[str] = Field(default_factory=list)
    min_funding_amount: Optional[int] = None
    max_funding_amount: Optional[int] = None
    min_time_in_business: Optional[int] = None
    min_monthly_revenue: Optional[int] = None
    min_credit_score: Optional[int] = None
    min_daily_balance: Optional[int] = None
    commission_type: str = ""
    commission_rate: Optional[float] = None
    commission_structure: str = ""
    commission_notes: str = ""
    factor_rate_range: str = ""
    term_lengths: str = ""
    advance_rate: str = ""
    funding_speed: str = ""
    stacking_policy: str = ""
    requires_collateral: Optional[bool] = None
    industries_restricted: List[str] = Field(default_factory=list)
    industries_preferred: List[str] = Field(default_factory=list)
    states_restricted: List[str] = Field(default_factory=list)
    submission_email: str = ""
    submission_portal_url: str = ""
