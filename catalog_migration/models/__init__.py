# =============================================================================
# Data Models Library
# =============================================================================
# Pydantic models and settings for the catalog migration.
# =============================================================================

"""
Data models for the catalog migration.

This library provides:
- Records: RecordType, TransformedRecord
- Stage summaries: ExtractSummary, TransformSummary, LoadSummary
- Configuration models
"""

# Record models
from .record import (
    RecordType,
    TransformedRecord,
    ExtractSummary,
    TransformSummary,
    LoadSummary,
)

# Configuration models
from .config import (
    MongoSettings,
    PostgresSettings,
    PipelineSettings,
    UnknownTypePolicy,
)

__all__ = [
    # Record models
    "RecordType",
    "TransformedRecord",
    "ExtractSummary",
    "TransformSummary",
    "LoadSummary",
    # Configuration models
    "MongoSettings",
    "PostgresSettings",
    "PipelineSettings",
    "UnknownTypePolicy",
]
