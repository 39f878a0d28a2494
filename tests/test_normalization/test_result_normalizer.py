from __future__ import annotations

from datetime import datetime, timezone

import pytest

from fundscan.extraction.models import (
    CandidateRecord,
    LeadProduct,
    LenderExtraction,
    LenderScanResult,
    NormalizedResult,
    VendorExtraction,
    VendorScanResult,
)
from fundscan.normalization.notes_builder import HEAVY_RULE, LIGHT_RULE
from fundscan.normalization.result_normalizer import ResultNormalizer
from fundscan.normalization.vocabulary import ControlledVocabulary

SCANNED_AT = datetime(2025, 3, 1, 12, 30, tzinfo=timezone.utc)


@pytest.fixture
def normalizer() -> ResultNormalizer:
    return ResultNormalizer(vocabulary=ControlledVocabulary(), clock=lambda: SCANNED_AT)


def test_vendor_record_maps_products_and_description(normalizer: ResultNormalizer) -> None:
    candidate = VendorExtraction(
        company_name="LeadCo",
        email="sales@leadco.test",
        lead_products=[
            LeadProduct(product_name="Live Transfers", price="$35", minimum="50 leads"),
            LeadProduct(product_name="Premium Package", price="$99"),
        ],
        industries=["MCA", "Business Loans", "Equipment", "SBA"],
        detailed_notes="Raw page text",
    )

    result = normalizer.normalize(candidate, "https://leadco.test")

    assert isinstance(result, VendorScanResult)
    assert result.vendor_name == "LeadCo"
    assert result.contact_email == "sales@leadco.test"
    assert result.lead_types == ["live_transfer"]
    assert [p.product for p in result.pricing_products] == ["Live Transfers", "Premium Package"]
    assert result.pricing_products[0].minimum == "50 leads"
    assert result.description == (
        "Lead generation vendor specializing in MCA, Business Loans, Equipment."
    )
    assert result.scanned_at == SCANNED_AT


def test_vendor_json_leaks_never_reach_output(normalizer: ResultNormalizer) -> None:
    candidate = VendorExtraction(
        company_name='{"name": "LeadCo"}',
        return_policy='["none"]',
        industries=['{"x": 1}', "MCA"],
    )

    result = normalizer.normalize(candidate, "https://leadco.test")

    assert result.vendor_name == ""
    assert result.return_policy == ""
    assert result.industries_served == ["MCA"]


def test_lender_record_maps_products_amounts_and_states(normalizer: ResultNormalizer) -> None:
    candidate = LenderExtraction(
        company_name="Acme Funding",
        description="Fast capital for small businesses.",
        lender_types=["Merchant Cash Advance", "Bridge Financing"],
        paper_types=["a_paper", "c paper"],
        min_funding_amount=5000,
        max_funding_amount=250000,
        commission_type="Points",
        states_restricted=["ca", "ny"],
        notes="Broker friendly.",
    )

    result = normalizer.normalize(candidate, "https://acme.test")

    assert isinstance(result, LenderScanResult)
    assert result.funding_products == ["mca"]
    assert result.unmapped_products == ["Bridge Financing"]
    assert result.paper_types == ["a_paper", "c_paper"]
    assert result.min_funding_amount == 5000
    assert result.max_funding_amount == 250000
    assert result.commission_type == "points"
    assert result.states_restricted == ["CA", "NY"]


def test_lender_notes_block_layout(normalizer: ResultNormalizer) -> None:
    candidate = LenderExtraction(
        description="Fast capital.",
        lender_types=["Bridge Financing"],
    )

    notes = normalizer.normalize(candidate, "https://acme.test").notes
    lines = notes.splitlines()

    assert lines[0] == HEAVY_RULE
    assert lines[1] == "AUTO-EXTRACTED FROM WEBSITE"
    assert lines[2].startswith("Scanned: 2025-03-01 12:30:00")
    assert lines[3] == "URL: https://acme.test"
    assert lines[4] == HEAVY_RULE
    assert "OVERVIEW" in lines
    assert lines[lines.index("OVERVIEW") + 1] == LIGHT_RULE
    assert "UNMAPPED PRODUCTS" in lines
    assert "- Bridge Financing" in lines
    assert "NOTES" not in lines


def test_empty_record_normalizes(normalizer: ResultNormalizer) -> None:
    result = normalizer.normalize(LenderExtraction(), "https://empty.test")

    assert result.funding_products == []
    assert result.min_funding_amount is None
    assert "URL: https://empty.test" in result.notes


def test_plain_candidate_record_gets_base_result(normalizer: ResultNormalizer) -> None:
    result = normalizer.normalize(CandidateRecord(), "https://x.test")

    assert type(result) is NormalizedResult
    assert result.scanned_at == SCANNED_AT
    assert result.notes.startswith(HEAVY_RULE)
    assert "URL: https://x.test" in result.notes
