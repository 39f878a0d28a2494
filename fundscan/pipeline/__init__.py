"""Pipeline orchestrators for end-to-end workflows."""

from fundscan.pipeline.scan_pipeline import ScanPipeline

__all__ = ["ScanPipeline"]
