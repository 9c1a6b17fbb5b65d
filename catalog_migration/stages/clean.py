"""Clean operation - remove generated intermediate files."""

import logging
from pathlib import Path

from catalog_migration.intermediate import PLACEHOLDER_FILE, TEMP_PREFIX

__all__ = ["clean_output_dir"]

logger = logging.getLogger(__name__)


def clean_output_dir(output_dir: Path) -> list[Path]:
    """
    Delete generated files from the output directory.

    Removes ``*.json`` files and leftover atomic-write temp files. The
    placeholder file, subdirectories and any other file are kept. A missing
    directory is a no-op.

    Args:
        output_dir: Stage output directory

    Returns:
        Paths removed, sorted
    """
    if not output_dir.is_dir():
        logger.info(f"Nothing to clean: {output_dir} does not exist")
        return []

    removed = []
    for path in sorted(output_dir.iterdir()):
        if path.name == PLACEHOLDER_FILE or not path.is_file():
            continue
        if path.suffix == ".json" or path.name.startswith(TEMP_PREFIX):
            path.unlink()
            removed.append(path)
            logger.info(f"Removed {path}")

    logger.info(f"Cleaned {len(removed)} file(s) from {output_dir}")
    return removed
