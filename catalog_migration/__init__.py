# =============================================================================
# Catalog Migration
# =============================================================================
# One-shot, idempotent relocation of catalog documents from MongoDB into a
# single PostgreSQL table. See individual sub-packages for details.
# =============================================================================

"""
Catalog migration: MongoDB -> JSON -> PostgreSQL.

Sub-packages:
- models: Pydantic records, summaries and settings
- resources: MongoDB source and PostgreSQL target access
- stages: extract, transform, load and clean
"""

__version__ = "0.1.0"
