# =============================================================================
# Record Models
# =============================================================================
# Defines the shape of transformed records and the stage summaries reported
# to the operator.
# =============================================================================

from enum import Enum
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

__all__ = [
    "RecordType",
    "TransformedRecord",
    "ExtractSummary",
    "TransformSummary",
    "LoadSummary",
]


class RecordType(str, Enum):
    """Fixed target-side enumeration of record types."""

    TYPE_A = "TYPE_A"
    TYPE_B = "TYPE_B"
    TYPE_C = "TYPE_C"


class TransformedRecord(BaseModel):
    """
    A source document reshaped for the relational target.

    Promoted scalars become typed columns; every other source field is kept
    verbatim in ``data``, stored as a JSONB column.

    Attributes:
        id: Source identifier (ObjectIds rendered as hex strings)
        category_id: Reference to the record's category, if any
        is_active: Activity flag, if present at the source
        record_type: Record type resolved from the source discriminator
        data: Catch-all payload of non-promoted source fields
    """

    model_config = ConfigDict(extra="forbid")

    id: str = Field(..., min_length=1, description="Source identifier")
    category_id: Optional[str] = Field(None, description="Category reference")
    is_active: Optional[bool] = Field(None, description="Activity flag")
    record_type: RecordType = Field(..., description="Resolved record type")
    data: dict[str, Any] = Field(default_factory=dict, description="Non-promoted source fields")

    @field_validator("category_id", mode="before")
    @classmethod
    def stringify_category_id(cls, v: Any) -> Any:
        """Render non-string references (int, UUID, ObjectId) as text."""
        if v is None or isinstance(v, str):
            return v
        return str(v)

    def to_document(self) -> dict[str, Any]:
        """
        Dict for transformed_data.json.

        The payload keeps its BSON values (ObjectId, datetime, ...) so the
        intermediate writer can emit them as Extended JSON.
        """
        document = self.model_dump()
        document["record_type"] = self.record_type.value
        return document

    def to_row(self) -> dict[str, Any]:
        """Column/value mapping for the target table."""
        return self.model_dump(mode="json")


class ExtractSummary(BaseModel):
    """Outcome of an extract run."""

    output_path: Path
    counts: dict[str, int] = Field(default_factory=dict, description="Records per collection")

    @property
    def total(self) -> int:
        return sum(self.counts.values())


class TransformSummary(BaseModel):
    """Outcome of a transform run."""

    output_path: Path
    transformed: int = 0
    quarantined: int = 0
    quarantine_path: Optional[Path] = None


class LoadSummary(BaseModel):
    """
    Outcome of a load run.

    Attributes:
        table: Target table name
        attempted: Records read from the transformed file
        upserted: Records inserted or updated
    """

    table: str
    attempted: int = Field(0, ge=0)
    upserted: int = Field(0, ge=0)

    def __str__(self) -> str:
        return f"Upserted {self.upserted}/{self.attempted} records into {self.table}"
