#!/usr/bin/env python
"""
Command-line entry point for the catalog migration.

Usage:
    catalog-migration extract   --output-dir data --collection datasets --collection services
    catalog-migration transform --output-dir data [--mapping mapping.json]
    catalog-migration load      --output-dir data [--table catalog_records]
    catalog-migration clean     --output-dir data
    catalog-migration run       --output-dir data --collection datasets

Connection settings come from the environment or a .env file (MONGO_*,
POSTGRES_*, MIGRATION_*). Missing credentials are prompted for unless
--no-input is given.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from pydantic import ValidationError

from catalog_migration.credentials import (
    MONGO_PROMPTS,
    POSTGRES_PROMPTS,
    NoInputSecretProvider,
    PromptSecretProvider,
    SecretProvider,
    complete_settings,
)
from catalog_migration.errors import ConfigurationError, MigrationError
from catalog_migration.mapping import FieldMapping
from catalog_migration.models import (
    MongoSettings,
    PipelineSettings,
    PostgresSettings,
    UnknownTypePolicy,
)
from catalog_migration.pipeline import run_pipeline
from catalog_migration.stages import clean_output_dir, run_extract, run_load, run_transform

__all__ = ["build_parser", "main"]

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--output-dir",
        type=Path,
        required=True,
        help="Directory holding the intermediate JSON files",
    )
    common.add_argument("--log-level", help="Logging level (default: MIGRATION_LOG_LEVEL or INFO)")
    common.add_argument(
        "--no-input",
        action="store_true",
        help="Never prompt; fail if a credential is missing from the environment",
    )

    extract_opts = argparse.ArgumentParser(add_help=False)
    extract_opts.add_argument(
        "--collection",
        dest="collections",
        action="append",
        help="Source collection to extract (repeatable, in order)",
    )
    extract_opts.add_argument("--batch-size", type=int, help="MongoDB cursor batch size")

    transform_opts = argparse.ArgumentParser(add_help=False)
    transform_opts.add_argument("--mapping", type=Path, help="Reviewed field mapping JSON file")
    transform_opts.add_argument(
        "--unknown-type-policy",
        choices=[p.value for p in UnknownTypePolicy],
        help="What to do with unknown discriminators (default: fail)",
    )

    load_opts = argparse.ArgumentParser(add_help=False)
    load_opts.add_argument("--table", dest="target_table", help="Target table name")

    parser = argparse.ArgumentParser(
        prog="catalog-migration",
        description="Relocate catalog documents from MongoDB into PostgreSQL",
    )
    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("extract", parents=[common, extract_opts], help="MongoDB -> extracted_data.json")
    commands.add_parser(
        "transform", parents=[common, transform_opts], help="extracted_data.json -> transformed_data.json"
    )
    commands.add_parser("load", parents=[common, load_opts], help="transformed_data.json -> PostgreSQL")
    commands.add_parser("clean", parents=[common], help="Remove generated intermediate files")
    commands.add_parser(
        "run", parents=[common, extract_opts, transform_opts, load_opts], help="extract, transform and load"
    )
    return parser


def _pipeline_settings(args: argparse.Namespace) -> PipelineSettings:
    overrides = {
        name: getattr(args, name, None)
        for name in ("collections", "batch_size", "target_table", "unknown_type_policy", "log_level")
    }
    try:
        settings = PipelineSettings()
        # Command-line flags override the environment
        for name, value in overrides.items():
            if value is not None:
                setattr(settings, name, value)
        return settings
    except ValidationError as e:
        raise ConfigurationError(f"Invalid settings: {e}") from e


def _configure_logging(level: str) -> None:
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        raise ConfigurationError(f"Unknown log level: {level}")
    logging.basicConfig(level=numeric, format=LOG_FORMAT)


def _mongo_settings(provider: SecretProvider) -> MongoSettings:
    try:
        settings = MongoSettings()
    except ValidationError as e:
        raise ConfigurationError(f"Invalid MongoDB settings: {e}") from e
    return complete_settings(settings, MONGO_PROMPTS, provider)


def _postgres_settings(provider: SecretProvider) -> PostgresSettings:
    try:
        settings = PostgresSettings()
    except ValidationError as e:
        raise ConfigurationError(f"Invalid PostgreSQL settings: {e}") from e
    return complete_settings(settings, POSTGRES_PROMPTS, provider)


def _mapping(args: argparse.Namespace) -> Optional[FieldMapping]:
    path = getattr(args, "mapping", None)
    return FieldMapping.from_file(path) if path else None


def _dispatch(args: argparse.Namespace, provider: SecretProvider) -> None:
    settings = _pipeline_settings(args)
    _configure_logging(settings.log_level)
    output_dir: Path = args.output_dir

    if args.command == "extract":
        summary = run_extract(
            _mongo_settings(provider),
            settings.collections,
            output_dir,
            batch_size=settings.batch_size,
        )
        print(f"Extracted {summary.total} records to {summary.output_path}")
        for name, count in summary.counts.items():
            print(f"  {name}: {count}")

    elif args.command == "transform":
        summary = run_transform(output_dir, mapping=_mapping(args), policy=settings.unknown_type_policy)
        print(f"Transformed {summary.transformed} records to {summary.output_path}")
        if summary.quarantined:
            print(f"Quarantined {summary.quarantined} records to {summary.quarantine_path}")

    elif args.command == "load":
        summary = run_load(_postgres_settings(provider), settings.target_table, output_dir)
        print(summary)

    elif args.command == "clean":
        removed = clean_output_dir(output_dir)
        print(f"Removed {len(removed)} file(s) from {output_dir}")

    elif args.command == "run":
        # Ask for every credential before the first stage starts
        mongo = _mongo_settings(provider)
        postgres = _postgres_settings(provider)
        result = run_pipeline(mongo, postgres, settings, output_dir, mapping=_mapping(args))
        print(f"Extracted {result.extract.total} records")
        print(f"Transformed {result.transform.transformed} records")
        if result.transform.quarantined:
            print(f"Quarantined {result.transform.quarantined} records")
        print(result.load)


def main(argv: Optional[Sequence[str]] = None, *, provider: Optional[SecretProvider] = None) -> int:
    """
    Main CLI entry point.

    Returns:
        Exit code (0 for success, 1 for a migration failure, 130 if interrupted)
    """
    args = build_parser().parse_args(argv)
    if provider is None:
        provider = NoInputSecretProvider() if args.no_input else PromptSecretProvider()

    try:
        _dispatch(args, provider)
    except MigrationError as e:
        logger.debug("Migration failed", exc_info=True)
        print(f"{args.command} failed: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print(f"{args.command} interrupted", file=sys.stderr)
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())
