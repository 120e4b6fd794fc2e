from __future__ import annotations

from .pipeline import AssetPipeline

__all__ = ["pipeline"]

pipeline = AssetPipeline()
