# =============================================================================
# Transform Stage - extracted_data.json to transformed_data.json
# =============================================================================
# Reshapes every extracted document through the FieldMapping. A pure function
# of its input file: no store is contacted.
# =============================================================================

import logging
from collections import Counter
from pathlib import Path
from typing import Any, Optional

from catalog_migration.errors import MalformedInputError, MigrationError, UnknownDiscriminatorError
from catalog_migration.intermediate import (
    EXTRACTED_FILE,
    QUARANTINED_FILE,
    TRANSFORMED_FILE,
    read_json_array,
    write_json_array,
)
from catalog_migration.mapping import DEFAULT_MAPPING, FieldMapping
from catalog_migration.models import TransformedRecord, TransformSummary, UnknownTypePolicy

__all__ = ["transform_documents", "run_transform"]

logger = logging.getLogger(__name__)


def transform_documents(
    documents: list[Any],
    mapping: FieldMapping,
    policy: UnknownTypePolicy = UnknownTypePolicy.FAIL,
) -> tuple[list[TransformedRecord], list[dict[str, Any]]]:
    """
    Transform decoded source documents.

    Args:
        documents: Source records as read from extracted_data.json
        mapping: Field mapping to apply
        policy: Handling of unrecognized discriminators

    Returns:
        (transformed records, quarantined source documents). The second list
        is always empty under the FAIL policy.

    Raises:
        MalformedInputError: If an entry is not an object or lacks an identifier
        UnknownDiscriminatorError: Under FAIL, on the first unknown discriminator
    """
    transformed: list[TransformedRecord] = []
    quarantined: list[dict[str, Any]] = []

    for index, document in enumerate(documents):
        if not isinstance(document, dict):
            raise MalformedInputError(
                f"Entry #{index} is a {type(document).__name__}, expected an object"
            )

        value = mapping.discriminator_of(document)
        record_type = mapping.resolve(value)
        if record_type is None:
            record_id = mapping.identifier_of(document)
            if policy is UnknownTypePolicy.FAIL:
                raise UnknownDiscriminatorError(str(record_id), value)
            logger.warning(f"Quarantining record {record_id!s}: unknown discriminator {value!r}")
            quarantined.append(document)
            continue

        transformed.append(mapping.apply(document, record_type))

    duplicates = [rid for rid, n in Counter(r.id for r in transformed).items() if n > 1]
    if duplicates:
        logger.warning(
            f"{len(duplicates)} identifier(s) occur more than once; the last occurrence wins "
            f"on load (e.g. {duplicates[:5]})"
        )

    return transformed, quarantined


def run_transform(
    output_dir: Path,
    *,
    mapping: Optional[FieldMapping] = None,
    policy: UnknownTypePolicy = UnknownTypePolicy.FAIL,
) -> TransformSummary:
    """
    Transform stage entry point.

    Every record is transformed before anything is written: a malformed input
    or (under FAIL) an unknown discriminator aborts the run without creating
    transformed_data.json.

    Args:
        output_dir: Directory holding extracted_data.json; receives the outputs
        mapping: Field mapping (built-in default when None)
        policy: Handling of unrecognized discriminators

    Returns:
        TransformSummary
    """
    mapping = mapping or DEFAULT_MAPPING
    input_path = output_dir / EXTRACTED_FILE
    output_path = output_dir / TRANSFORMED_FILE

    documents = read_json_array(input_path)
    logger.info(
        f"Transforming {len(documents)} records from {input_path} "
        f"(mapping version {mapping.version}, unknown types: {policy.value})"
    )

    transformed, quarantined = transform_documents(documents, mapping, policy)

    quarantine_path = None
    try:
        # Quarantine first; the two files are replaced one at a time
        if policy is UnknownTypePolicy.QUARANTINE:
            quarantine_path = output_dir / QUARANTINED_FILE
            write_json_array(quarantine_path, quarantined)
        write_json_array(output_path, (record.to_document() for record in transformed))
    except OSError as e:
        raise MigrationError(f"Cannot write transform output in {output_dir}: {e}") from e

    logger.info(f"Wrote {len(transformed)} records to {output_path}")
    if quarantined:
        logger.warning(f"Quarantined {len(quarantined)} records in {quarantine_path}")

    return TransformSummary(
        output_path=output_path,
        transformed=len(transformed),
        quarantined=len(quarantined),
        quarantine_path=quarantine_path,
    )
