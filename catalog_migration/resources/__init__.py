"""Resources - Source and target store connections."""

from .mongodb_resource import MongoSourceResource
from .postgres_resource import PostgresTargetResource, build_records_table

__all__ = [
    "MongoSourceResource",
    "PostgresTargetResource",
    "build_records_table",
]
