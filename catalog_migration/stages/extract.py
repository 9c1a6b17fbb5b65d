# =============================================================================
# Extract Stage - MongoDB to extracted_data.json
# =============================================================================
# Reads every configured collection in full and writes the concatenation as
# one JSON array. The source is never written to.
# =============================================================================

import logging
from pathlib import Path
from typing import Any, Dict, Iterator, Sequence

from catalog_migration.errors import ConfigurationError, MigrationError
from catalog_migration.intermediate import EXTRACTED_FILE, write_json_array
from catalog_migration.models import ExtractSummary, MongoSettings
from catalog_migration.resources import MongoSourceResource

__all__ = ["extract_collections", "run_extract"]

logger = logging.getLogger(__name__)


def extract_collections(
    source: MongoSourceResource,
    collections: Sequence[str],
    output_dir: Path,
    *,
    batch_size: int = 1000,
) -> ExtractSummary:
    """
    Core extract logic against an open source resource.

    The connection is verified before anything is written, so connection and
    authentication failures leave the output directory untouched. Records are
    streamed collection by collection (configured order, server order within
    a collection) into a temp file that replaces ``extracted_data.json`` only
    once complete.

    Args:
        source: MongoDB source resource
        collections: Collection names to read, in order
        output_dir: Directory receiving extracted_data.json
        batch_size: Cursor batch size

    Returns:
        ExtractSummary with per-collection counts

    Raises:
        ConfigurationError: If no collection is configured
        SourceConnectionError: If the source is unreachable or a read fails
    """
    if not collections:
        raise ConfigurationError(
            "No source collections configured: set MIGRATION_COLLECTIONS or pass --collection"
        )

    source.ping()

    counts: Dict[str, int] = {}

    def _records() -> Iterator[Dict[str, Any]]:
        for name in collections:
            logger.info(f"Extracting collection {name}")
            count = 0
            for document in source.iter_collection(name, batch_size=batch_size):
                count += 1
                if count % batch_size == 0:
                    logger.debug(f"{name}: {count} records read")
                yield document
            counts[name] = count
            logger.info(f"Extracted {count} records from {name}")

    output_path = output_dir / EXTRACTED_FILE
    try:
        total = write_json_array(output_path, _records())
    except OSError as e:
        raise MigrationError(f"Cannot write {output_path}: {e}") from e

    logger.info(f"Wrote {total} records to {output_path}")
    return ExtractSummary(output_path=output_path, counts=counts)


def run_extract(
    mongo_settings: MongoSettings,
    collections: Sequence[str],
    output_dir: Path,
    *,
    batch_size: int = 1000,
) -> ExtractSummary:
    """
    Extract stage entry point: opens the source, extracts, always closes.
    """
    with MongoSourceResource(mongo_settings) as source:
        return extract_collections(source, collections, output_dir, batch_size=batch_size)
