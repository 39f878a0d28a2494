"""Map candidate records onto the application's fields and vocabularies."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, List, Optional

from loguru import logger

from fundscan.extraction.models import (
    CandidateRecord,
    LenderExtraction,
    LenderScanResult,
    NormalizedResult,
    PricingProduct,
    VendorExtraction,
    VendorScanResult,
)
from fundscan.normalization.notes_builder import NotesBuilder
from fundscan.normalization.sanitizers import clean_array, clean_string, parse_amount
from fundscan.normalization.vocabulary import ControlledVocabulary
from fundscan.utils.config import NormalizationConfig


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ResultNormalizer:
    """Turns a :class:`CandidateRecord` into a reviewable :class:`NormalizedResult`.

    Normalization never fails: corrupted values are dropped field by field and
    the raw extraction stays visible in the notes block.
    """

    def __init__(
        self,
        config: Optional[NormalizationConfig] = None,
        vocabulary: Optional[ControlledVocabulary] = None,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.config = config or NormalizationConfig()
        self.vocabulary = vocabulary or ControlledVocabulary.from_yaml(
            Path(self.config.vocabulary_file)
        )
        self.notes = NotesBuilder(self.config.timestamp_format)
        self._clock = clock or _utcnow

    def normalize(self, candidate: CandidateRecord, source_url: str) -> NormalizedResult:
        """Dispatch on the candidate's profile."""
        if isinstance(candidate, VendorExtraction):
            return self.normalize_vendor(candidate, source_url)
        if isinstance(candidate, LenderExtraction):
            return self.normalize_lender(candidate, source_url)
        logger.warning(
            "No field mapping for candidate record", type=type(candidate).__name__
        )
        scanned_at = self._clock()
        return NormalizedResult(
            source_url=source_url,
            scanned_at=scanned_at,
            notes=self.notes.build(source_url=source_url, scanned_at=scanned_at, sections=[]),
        )

    # -----------------------
    # Vendors
    # -----------------------
    def normalize_vendor(self, candidate: VendorExtraction, source_url: str) -> VendorScanResult:
        scanned_at = self._clock()
        products = candidate.lead_products or []

        lead_types = self.vocabulary.map_lead_types(p.product_name for p in products)
        pricing = [
            PricingProduct(
                product=clean_string(p.product_name),
                price=clean_string(p.price),
                minimum=clean_string(p.minimum),
                notes=clean_string(p.description),
            )
            for p in products
        ]

        industries = clean_array(candidate.industries)
        description = ""
        top = industries[: self.config.description_industry_limit]
        if top:
            description = f"Lead generation vendor specializing in {', '.join(top)}."

        notes = self.notes.build(
            source_url=source_url,
            scanned_at=scanned_at,
            sections=[("Summary", candidate.detailed_notes)],
        )

        result = VendorScanResult(
            source_url=source_url,
            scanned_at=scanned_at,
            notes=notes,
            vendor_name=clean_string(candidate.company_name),
            description=description,
            contact_name=clean_string(candidate.contact_name),
            contact_email=clean_string(candidate.email),
            contact_phone=clean_string(candidate.phone),
            lead_types=lead_types,
            pricing_products=pricing,
            minimum_order=clean_string(candidate.minimum_order),
            return_policy=clean_string(candidate.return_policy),
            exclusivity=clean_string(candidate.exclusivity),
            lead_generation_method=clean_string(candidate.lead_generation_method),
            volume_available=clean_string(candidate.volume_available),
            industries_served=industries,
            additional_services=clean_array(candidate.additional_services),
        )
        logger.info(
            "Normalized vendor scan",
            url=source_url,
            lead_types=lead_types,
            products=len(pricing),
        )
        return result

    # -----------------------
    # Lenders
    # -----------------------
    def normalize_lender(self, candidate: LenderExtraction, source_url: str) -> LenderScanResult:
        scanned_at = self._clock()

        raw_products = clean_array(candidate.lender_types)
        funding_products, unmapped = self.vocabulary.map_funding_products(raw_products)

        description = clean_string(candidate.description)
        unmapped_section: Optional[str] = None
        if unmapped:
            unmapped_section = "\n".join(f"- {name}" for name in unmapped)

        notes = self.notes.build(
            source_url=source_url,
            scanned_at=scanned_at,
            sections=[
                ("Overview", description),
                ("Notes", clean_string(candidate.notes)),
                ("Additional details", candidate.detailed_notes),
                ("Unmapped products", unmapped_section),
            ],
        )

        result = LenderScanResult(
            source_url=source_url,
            scanned_at=scanned_at,
            notes=notes,
            company_name=clean_string(candidate.company_name),
            description=description,
            primary_contact_name=clean_string(candidate.primary_contact_name),
            primary_contact_email=clean_string(candidate.primary_contact_email),
            primary_contact_phone=clean_string(candidate.primary_contact_phone),
            funding_products=funding_products,
            unmapped_products=unmapped,
            paper_types=self.vocabulary.map_paper_types(clean_array(candidate.paper_types)),
            min_funding_amount=parse_amount(candidate.min_funding_amount),
            max_funding_amount=parse_amount(candidate.max_funding_amount),
            min_time_in_business=parse_amount(candidate.min_time_in_business),
            min_monthly_revenue=parse_amount(candidate.min_monthly_revenue),
            min_credit_score=parse_amount(candidate.min_credit_score),
            min_daily_balance=parse_amount(candidate.min_daily_balance),
            commission_type=self.vocabulary.map_commission_type(
                clean_string(candidate.commission_type)
            ),
            commission_rate=candidate.commission_rate,
            commission_structure=clean_string(candidate.commission_structure),
            commission_notes=clean_string(candidate.commission_notes),
            factor_rate_range=clean_string(candidate.factor_rate_range),
            term_lengths=clean_string(candidate.term_lengths),
            advance_rate=clean_string(candidate.advance_rate),
            funding_speed=clean_string(candidate.funding_speed),
            stacking_policy=clean_string(candidate.stacking_policy),
            requires_collateral=candidate.requires_collateral,
            industries_restricted=clean_array(candidate.industries_restricted),
            industries_preferred=clean_array(candidate.industries_preferred),
            states_restricted=self._states(candidate.states_restricted),
            submission_email=clean_string(candidate.submission_email),
            submission_portal_url=clean_string(candidate.submission_portal_url),
        )
        logger.info(
            "Normalized lender scan",
            url=source_url,
            funding_products=funding_products,
            unmapped=len(unmapped),
        )
        return result

    @staticmethod
    def _states(values: Optional[List[str]]) -> List[str]:
        return [state.upper() for state in clean_array(values)]
