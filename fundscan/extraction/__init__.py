"""Extraction package exports."""

from fundscan.extraction.models import (
    CandidateRecord,
    CustomerProfile,
    CustomerRecommendation,
    ExtractionRequest,
    LenderExtraction,
    LenderScanResult,
    NormalizedResult,
    RawContent,
    VendorExtraction,
    VendorScanResult,
)
from fundscan.extraction.heuristic_extractor import HeuristicExtractor
from fundscan.extraction.llm_extractor import LLMExtractor
from fundscan.extraction.agent_extractor import AgentExtractor

__all__ = [
    "AgentExtractor",
    "CandidateRecord",
    "CustomerProfile",
    "CustomerRecommendation",
    "ExtractionRequest",
    "HeuristicExtractor",
    "LLMExtractor",
    "LenderExtraction",
    "LenderScanResult",
    "NormalizedResult",
    "RawContent",
    "VendorExtraction",
    "VendorScanResult",
]
