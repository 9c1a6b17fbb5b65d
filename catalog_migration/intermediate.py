# =============================================================================
# Intermediate Files
# =============================================================================
# Hand-off files between stages. Each stage writes exactly one JSON array
# under the output directory, through a temp file that is renamed into place
# only after it has been completely written and closed.
# =============================================================================

import json
import logging
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Generator, Iterable, TextIO

from bson import json_util
from bson.json_util import RELAXED_JSON_OPTIONS

from catalog_migration.errors import MalformedInputError

__all__ = [
    "EXTRACTED_FILE",
    "TRANSFORMED_FILE",
    "QUARANTINED_FILE",
    "PLACEHOLDER_FILE",
    "TEMP_PREFIX",
    "atomic_writer",
    "write_json_array",
    "read_json_array",
]

logger = logging.getLogger(__name__)

EXTRACTED_FILE = "extracted_data.json"
TRANSFORMED_FILE = "transformed_data.json"
QUARANTINED_FILE = "quarantined_data.json"
PLACEHOLDER_FILE = ".gitkeep"
TEMP_PREFIX = ".tmp-"

# Relaxed Extended JSON: plain JSON for strings/numbers/bools,
# {"$oid": ...} / {"$date": ...} wrappers for BSON-only types.
JSON_OPTIONS = RELAXED_JSON_OPTIONS


@contextmanager
def atomic_writer(path: Path) -> Generator[TextIO, None, None]:
    """
    Context manager writing a text file atomically.

    Yields a handle on a temp file in the destination directory. On normal
    exit the file is flushed, closed and renamed over ``path``; on exception
    the temp file is removed and ``path`` is left untouched.

    Args:
        path: Final destination of the file

    Yields:
        Writable UTF-8 text handle

    Example:
        >>> with atomic_writer(out_dir / "transformed_data.json") as handle:
        ...     handle.write("[]")
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=TEMP_PREFIX, suffix=".json", dir=path.parent)
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            yield handle
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise


def write_json_array(path: Path, items: Iterable[Any]) -> int:
    """
    Stream an iterable of documents to ``path`` as one JSON array.

    Items are serialized one at a time so arbitrarily large inputs (such as a
    MongoDB cursor) are never held in memory as a whole.

    Args:
        path: Destination file
        items: Documents to serialize (BSON types allowed)

    Returns:
        Number of items written
    """
    count = 0
    with atomic_writer(path) as handle:
        handle.write("[")
        for item in items:
            handle.write("\n  " if count == 0 else ",\n  ")
            handle.write(json_util.dumps(item, json_options=JSON_OPTIONS, ensure_ascii=False))
            count += 1
        handle.write("\n]\n" if count else "]\n")
    logger.debug(f"Wrote {count} records to {path}")
    return count


def read_json_array(path: Path, *, bson_types: bool = True) -> list[Any]:
    """
    Read a JSON array written by ``write_json_array``.

    Args:
        path: File to read
        bson_types: Decode Extended JSON wrappers back into BSON types
            (ObjectId, datetime, ...). When False the wrappers are kept as
            plain dicts.

    Returns:
        List of decoded items

    Raises:
        MalformedInputError: If the file is missing, unreadable or not an array
    """
    try:
        with open(path, encoding="utf-8") as handle:
            if bson_types:
                content = json_util.loads(handle.read(), json_options=JSON_OPTIONS)
            else:
                content = json.load(handle)
    except FileNotFoundError as e:
        raise MalformedInputError(f"Input file not found: {path}") from e
    except (OSError, UnicodeDecodeError, ValueError) as e:
        # json.JSONDecodeError and bson's decoding errors are ValueErrors
        raise MalformedInputError(f"Cannot parse {path}: {e}") from e

    if not isinstance(content, list):
        raise MalformedInputError(
            f"{path} must contain a JSON array, found {type(content).__name__}"
        )
    logger.debug(f"Read {len(content)} records from {path}")
    return content
