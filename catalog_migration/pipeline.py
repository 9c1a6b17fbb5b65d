# =============================================================================
# Composite Run - extract -> transform -> load
# =============================================================================
# Runs the three stages in order, still handing off through files so any
# stage can be re-run on its own afterwards. The first failing stage stops
# the run; its exception propagates unchanged.
# =============================================================================

import logging
from pathlib import Path
from typing import Optional

from pydantic import BaseModel

from catalog_migration.mapping import FieldMapping
from catalog_migration.models import (
    ExtractSummary,
    LoadSummary,
    MongoSettings,
    PipelineSettings,
    PostgresSettings,
    TransformSummary,
)
from catalog_migration.stages import run_extract, run_load, run_transform

__all__ = ["RunSummary", "run_pipeline"]

logger = logging.getLogger(__name__)


class RunSummary(BaseModel):
    """Summaries of the three stages of a composite run."""

    extract: ExtractSummary
    transform: TransformSummary
    load: LoadSummary


def run_pipeline(
    mongo_settings: MongoSettings,
    postgres_settings: PostgresSettings,
    pipeline_settings: PipelineSettings,
    output_dir: Path,
    *,
    mapping: Optional[FieldMapping] = None,
) -> RunSummary:
    """
    Run extract, transform and load in sequence.

    Args:
        mongo_settings: Completed source settings
        postgres_settings: Completed target settings
        pipeline_settings: Collections, batch size, table and policy
        output_dir: Directory for the intermediate files
        mapping: Field mapping (built-in default when None)

    Returns:
        RunSummary
    """
    logger.info("Stage 1/3: extract")
    extracted = run_extract(
        mongo_settings,
        pipeline_settings.collections,
        output_dir,
        batch_size=pipeline_settings.batch_size,
    )

    logger.info("Stage 2/3: transform")
    transformed = run_transform(
        output_dir,
        mapping=mapping,
        policy=pipeline_settings.unknown_type_policy,
    )

    logger.info("Stage 3/3: load")
    loaded = run_load(postgres_settings, pipeline_settings.target_table, output_dir)

    return RunSummary(extract=extracted, transform=transformed, load=loaded)
