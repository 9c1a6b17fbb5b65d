# =============================================================================
# Load Stage - transformed_data.json to PostgreSQL
# =============================================================================
# Upserts every transformed record into the target table, keyed by id.
#
# Transaction policy: all-or-nothing. The whole run is one transaction; the
# first failing record rolls everything back and aborts with RecordLoadError.
# A successful run reports upserted/attempted counts.
# =============================================================================

import logging
from pathlib import Path
from typing import Sequence

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from catalog_migration.errors import MalformedInputError, MigrationError, RecordLoadError
from catalog_migration.intermediate import TRANSFORMED_FILE, read_json_array
from catalog_migration.models import LoadSummary, PostgresSettings, TransformedRecord
from catalog_migration.resources import PostgresTargetResource

__all__ = ["read_transformed_records", "load_records", "run_load"]

logger = logging.getLogger(__name__)


def read_transformed_records(path: Path) -> list[TransformedRecord]:
    """
    Read and validate transformed_data.json.

    Extended JSON wrappers inside ``data`` (``{"$date": ...}``) are kept as
    plain objects so they land in the JSONB column unchanged.

    Raises:
        MalformedInputError: If the file is unreadable or an entry is invalid
    """
    records = []
    for index, entry in enumerate(read_json_array(path, bson_types=False)):
        try:
            records.append(TransformedRecord.model_validate(entry))
        except ValidationError as e:
            raise MalformedInputError(f"Entry #{index} of {path} is not a valid record: {e}") from e
    return records


def load_records(target: PostgresTargetResource, records: Sequence[TransformedRecord]) -> LoadSummary:
    """
    Core load logic against a target resource.

    Records are upserted in input order inside a single transaction. On
    conflict every promoted column and ``data`` are overwritten with the
    incoming values.

    Args:
        target: PostgreSQL target resource
        records: Validated transformed records

    Returns:
        LoadSummary (attempted == upserted on success)

    Raises:
        TargetConnectionError: If the target cannot be reached
        RecordLoadError: If any upsert fails (nothing is committed)
        MigrationError: If creating the table or committing fails
    """
    target.check_connection()

    table = target.table.name
    attempted = 0
    upserted = 0
    try:
        with target.transaction() as conn:
            target.ensure_table(conn)
            for record in records:
                attempted += 1
                try:
                    target.upsert(conn, record.to_row())
                except SQLAlchemyError as e:
                    reason = getattr(e, "orig", None) or e
                    raise RecordLoadError(record.id, attempted, upserted, str(reason)) from e
                upserted += 1
                if upserted % 1000 == 0:
                    logger.debug(f"Upserted {upserted}/{len(records)} records")
    except RecordLoadError as e:
        logger.error(f"Load aborted, transaction rolled back: {e}")
        raise
    except SQLAlchemyError as e:
        raise MigrationError(f"Load into {table} failed, transaction rolled back: {e}") from e

    summary = LoadSummary(table=table, attempted=attempted, upserted=upserted)
    logger.info(str(summary))
    return summary


def run_load(postgres_settings: PostgresSettings, table_name: str, output_dir: Path) -> LoadSummary:
    """
    Load stage entry point.

    The input file is validated before the target is contacted. The engine is
    disposed on every exit path.
    """
    input_path = output_dir / TRANSFORMED_FILE
    records = read_transformed_records(input_path)
    logger.info(f"Loading {len(records)} records from {input_path} into {table_name}")

    target = PostgresTargetResource(postgres_settings, table_name)
    try:
        return load_records(target, records)
    finally:
        target.dispose()
