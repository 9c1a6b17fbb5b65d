# =============================================================================
# Migration Stages
# =============================================================================
# Independently invokable stages, chained only through files on disk:
#   extract   -> extracted_data.json
#   transform -> transformed_data.json (+ quarantined_data.json)
#   load      -> target table
# =============================================================================

from .extract import extract_collections, run_extract
from .transform import transform_documents, run_transform
from .load import load_records, read_transformed_records, run_load
from .clean import clean_output_dir

__all__ = [
    "extract_collections",
    "run_extract",
    "transform_documents",
    "run_transform",
    "load_records",
    "read_transformed_records",
    "run_load",
    "clean_output_dir",
]
