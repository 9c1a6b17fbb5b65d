# =============================================================================
# Field Mapping
# =============================================================================
# The reviewed, versioned mapping from source documents to target records:
# - promoted allow-list: source field -> typed target column
# - dropped deny-list: source fields discarded outright
# - discriminator table: source class value -> RecordType
# Everything not listed in either list lands verbatim in the catch-all payload.
# =============================================================================

import json
import logging
from pathlib import Path
from typing import Any, Optional

from bson import ObjectId
from pydantic import BaseModel, Field, ValidationError, model_validator

from catalog_migration.errors import ConfigurationError, MalformedInputError
from catalog_migration.models import RecordType, TransformedRecord

__all__ = ["FieldMapping", "DEFAULT_MAPPING", "PROMOTABLE_COLUMNS"]

logger = logging.getLogger(__name__)

# Typed columns of the target table a source field may be promoted into.
PROMOTABLE_COLUMNS = frozenset({"category_id", "is_active"})


def _scalar(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    return value


class FieldMapping(BaseModel):
    """
    Mapping from a source document to a TransformedRecord.

    The allow-list (``promoted``) and the deny-list (``dropped``) are declared
    side by side so that a field added to one is visible against the other.
    A field may appear in at most one of: identifier, discriminator,
    promoted, dropped.

    Attributes:
        version: Mapping revision, recorded in logs for traceability
        identifier_field: Source field holding the unique identifier
        discriminator_field: Source field holding the class discriminator
        promoted: Source field -> target column for promoted scalars
        dropped: Source fields discarded (not copied to the payload)
        discriminators: Discriminator value -> RecordType lookup table
    """

    version: str = Field("1", description="Mapping revision")
    identifier_field: str = Field("_id", description="Source identifier field")
    discriminator_field: str = Field("_class", description="Source discriminator field")
    promoted: dict[str, str] = Field(
        default_factory=lambda: {
            "categoryId": "category_id",
            "isActive": "is_active",
        },
        description="Promoted allow-list: source field -> target column",
    )
    dropped: list[str] = Field(
        default_factory=list,
        description="Deny-list: source fields discarded outright",
    )
    discriminators: dict[str, RecordType] = Field(
        default_factory=lambda: {
            "TypeA": RecordType.TYPE_A,
            "TypeB": RecordType.TYPE_B,
            "TypeC": RecordType.TYPE_C,
        },
        description="Discriminator value -> RecordType",
    )

    @model_validator(mode="after")
    def validate_disjoint(self) -> "FieldMapping":
        """Reject a mapping in which a source field has two roles."""
        unknown_columns = set(self.promoted.values()) - PROMOTABLE_COLUMNS
        if unknown_columns:
            raise ValueError(
                f"Promoted fields target unknown columns {sorted(unknown_columns)}; "
                f"allowed: {sorted(PROMOTABLE_COLUMNS)}"
            )
        if len(set(self.promoted.values())) != len(self.promoted):
            raise ValueError("Two promoted fields target the same column")

        roles: dict[str, str] = {}
        claims = [
            (self.identifier_field, "identifier"),
            (self.discriminator_field, "discriminator"),
            *((name, "promoted") for name in self.promoted),
            *((name, "dropped") for name in self.dropped),
        ]
        for name, role in claims:
            if name in roles:
                raise ValueError(
                    f"Source field {name!r} is both {roles[name]} and {role}"
                )
            roles[name] = role
        return self

    @classmethod
    def from_file(cls, path: Path) -> "FieldMapping":
        """
        Load a mapping from a reviewed JSON file.

        Args:
            path: JSON file with FieldMapping keys; omitted keys keep defaults

        Returns:
            Validated FieldMapping

        Raises:
            ConfigurationError: If the file is unreadable or the mapping invalid
        """
        try:
            with open(path, encoding="utf-8") as handle:
                raw = json.load(handle)
            mapping = cls.model_validate(raw)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Cannot read field mapping {path}: {e}") from e
        except ValidationError as e:
            raise ConfigurationError(f"Invalid field mapping {path}: {e}") from e
        logger.info(f"Loaded field mapping version {mapping.version} from {path}")
        return mapping

    def resolve(self, value: Any) -> Optional[RecordType]:
        """
        Look a discriminator value up in the table.

        Returns:
            The RecordType, or None when the value is unknown. The caller
            decides what an unknown value means (fail or quarantine).
        """
        if not isinstance(value, str):
            return None
        return self.discriminators.get(value)

    def discriminator_of(self, document: dict[str, Any]) -> Any:
        return document.get(self.discriminator_field)

    def identifier_of(self, document: dict[str, Any]) -> Any:
        return document.get(self.identifier_field)

    def apply(self, document: dict[str, Any], record_type: RecordType) -> TransformedRecord:
        """
        Reshape one source document.

        Args:
            document: Source record (BSON types already decoded)
            record_type: Resolved record type for the document

        Returns:
            TransformedRecord whose payload holds every source field that is
            neither promoted, dropped, the identifier nor the discriminator

        Raises:
            MalformedInputError: If the identifier is missing or a promoted
                value has the wrong type
        """
        record_id = self.identifier_of(document)
        if record_id is None:
            raise MalformedInputError(
                f"Source record has no {self.identifier_field!r} field: {sorted(document)}"
            )

        consumed = {self.identifier_field, self.discriminator_field, *self.promoted, *self.dropped}
        fields = {
            column: _scalar(document.get(source))
            for source, column in self.promoted.items()
        }
        payload = {key: value for key, value in document.items() if key not in consumed}

        try:
            return TransformedRecord(
                id=str(_scalar(record_id)),
                record_type=record_type,
                data=payload,
                **fields,
            )
        except ValidationError as e:
            raise MalformedInputError(f"Record {record_id!s} cannot be transformed: {e}") from e


DEFAULT_MAPPING = FieldMapping()
