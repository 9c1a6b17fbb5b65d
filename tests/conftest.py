"""
Shared pytest fixtures for migration tests.

Provides source documents, an in-memory MongoDB (mongomock) and a SQLite
database standing in for the PostgreSQL target.
"""

import os

import mongomock
import pytest
from sqlalchemy import create_engine

from catalog_migration.models import MongoSettings, PipelineSettings, PostgresSettings


# =============================================================================
# Environment Isolation
# =============================================================================

@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Keep developer .env files and MONGO_/POSTGRES_/MIGRATION_ vars out of tests."""
    for name in list(os.environ):
        if name.upper().startswith(("MONGO_", "POSTGRES_", "MIGRATION_")):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


# =============================================================================
# Source Document Fixtures
# =============================================================================

@pytest.fixture
def type_a_document():
    """The reference TypeA document."""
    return {"_id": "1", "categoryId": "c1", "isActive": True, "_class": "TypeA", "extra": "x"}


@pytest.fixture
def source_collections(type_a_document):
    """Documents per source collection, in insertion order."""
    return {
        "datasets": [
            type_a_document,
            {
                "_id": "2",
                "categoryId": "c2",
                "isActive": False,
                "_class": "TypeB",
                "title": "Air quality",
                "tags": ["air", "environment"],
            },
        ],
        "services": [
            {
                "_id": "3",
                "categoryId": None,
                "_class": "TypeC",
                "endpoint": {"url": "https://example.org/api", "version": 2},
            },
        ],
    }


# =============================================================================
# MongoDB Fixtures
# =============================================================================

@pytest.fixture
def mongomock_client(source_collections):
    """In-memory MongoDB client seeded with the source collections."""
    client = mongomock.MongoClient()
    db = client["catalog"]
    for name, documents in source_collections.items():
        db[name].insert_many([dict(doc) for doc in documents])
    return client


@pytest.fixture
def patched_mongo(monkeypatch, mongomock_client):
    """Route MongoSourceResource to the mongomock client."""
    monkeypatch.setattr(
        "catalog_migration.resources.mongodb_resource.MongoClient",
        lambda *args, **kwargs: mongomock_client,
    )
    return mongomock_client


@pytest.fixture
def mongo_settings():
    return MongoSettings(
        host="localhost",
        username="reader",
        password="secret",
        database="catalog",
        replica_set="rs0",
    )


# =============================================================================
# Target Store Fixtures
# =============================================================================

@pytest.fixture
def sqlite_url(tmp_path):
    return f"sqlite:///{tmp_path / 'target.db'}"


@pytest.fixture
def target_engine(sqlite_url):
    """Engine for inspecting the target database from tests."""
    engine = create_engine(sqlite_url)
    yield engine
    engine.dispose()


@pytest.fixture
def patched_target(monkeypatch, sqlite_url):
    """Route PostgresTargetResource engines to the SQLite database."""
    monkeypatch.setattr(
        "catalog_migration.resources.postgres_resource.create_engine",
        lambda *args, **kwargs: create_engine(sqlite_url),
    )
    return sqlite_url


@pytest.fixture
def postgres_settings():
    return PostgresSettings(host="localhost", user="writer", password="secret", database="catalog")


@pytest.fixture
def pipeline_settings():
    return PipelineSettings(collections=["datasets", "services"], batch_size=2)


@pytest.fixture
def output_dir(tmp_path):
    path = tmp_path / "data"
    path.mkdir()
    (path / ".gitkeep").touch()
    return path
