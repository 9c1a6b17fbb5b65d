# =============================================================================
# Migration Errors
# =============================================================================
# Exception taxonomy for the extract -> transform -> load procedure.
# Every failure the operator has to act on is a MigrationError subclass; the
# CLI maps them to a non-zero exit status.
# =============================================================================

from typing import Any, Optional

__all__ = [
    "MigrationError",
    "ConfigurationError",
    "SourceConnectionError",
    "TargetConnectionError",
    "MalformedInputError",
    "UnknownDiscriminatorError",
    "RecordLoadError",
]


class MigrationError(Exception):
    """Base class for all errors raised by the migration stages."""


class ConfigurationError(MigrationError):
    """Settings, credentials or field mapping are missing or inconsistent."""


class SourceConnectionError(MigrationError):
    """The MongoDB source could not be reached or rejected the credentials."""


class TargetConnectionError(MigrationError):
    """The PostgreSQL target could not be reached or rejected the credentials."""


class MalformedInputError(MigrationError):
    """An intermediate file is missing, unreadable or has an unexpected structure."""


class UnknownDiscriminatorError(MigrationError):
    """
    A source record carries a discriminator value with no lookup table entry.

    This is a data-integrity condition: the record type is never defaulted.
    The mapping has to be extended (or the record fixed at the source) before
    the transform stage is re-run.

    Attributes:
        record_id: Identifier of the offending source record
        value: The unrecognized discriminator value (None when absent)
    """

    def __init__(self, record_id: Any, value: Optional[str]):
        self.record_id = record_id
        self.value = value
        super().__init__(
            f"Record {record_id!r} has unrecognized discriminator {value!r}; "
            "add it to the discriminator table or quarantine unknown types"
        )


class RecordLoadError(MigrationError):
    """
    Upserting a record into the target table failed.

    The load transaction is rolled back, so no record of the run is persisted.

    Attributes:
        record_id: Identifier of the record that failed
        attempted: Number of records attempted, including the failing one
        upserted: Number of records upserted before the failure (rolled back)
    """

    def __init__(self, record_id: str, attempted: int, upserted: int, reason: str):
        self.record_id = record_id
        self.attempted = attempted
        self.upserted = upserted
        super().__init__(
            f"Upsert of record {record_id!r} failed after {upserted}/{attempted} "
            f"records; transaction rolled back: {reason}"
        )
