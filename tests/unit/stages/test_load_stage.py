# =============================================================================
# Unit Tests: Load Stage
# =============================================================================
# The PostgreSQL target is replaced by a SQLite file; the upsert goes through
# the same SQLAlchemy insert ... on conflict do update path.
# =============================================================================

import json

import pytest
from sqlalchemy import create_engine, select
from sqlalchemy.exc import IntegrityError, OperationalError

from catalog_migration.errors import (
    ConfigurationError,
    MalformedInputError,
    RecordLoadError,
    TargetConnectionError,
)
from catalog_migration.intermediate import TRANSFORMED_FILE
from catalog_migration.models import TransformedRecord
from catalog_migration.resources import PostgresTargetResource, build_records_table
from catalog_migration.stages import load_records, read_transformed_records, run_load


# =============================================================================
# Test Data
# =============================================================================

TABLE = "catalog_records"

RECORD_ONE = {"id": "1", "category_id": "c1", "is_active": True, "record_type": "TYPE_A", "data": {"extra": "x"}}
RECORD_TWO = {"id": "2", "category_id": None, "is_active": False, "record_type": "TYPE_B", "data": {}}


def _write_transformed(output_dir, records):
    (output_dir / TRANSFORMED_FILE).write_text(json.dumps(records), encoding="utf-8")


def _rows(engine, table=TABLE):
    records = build_records_table(table)
    with engine.connect() as conn:
        return [dict(row._mapping) for row in conn.execute(select(records).order_by(records.c.id))]


# =============================================================================
# Test: Upsert Semantics
# =============================================================================


def test_load_inserts_records(patched_target, postgres_settings, output_dir, target_engine):
    _write_transformed(output_dir, [RECORD_ONE, RECORD_TWO])

    summary = run_load(postgres_settings, TABLE, output_dir)

    assert summary.attempted == 2
    assert summary.upserted == 2
    assert _rows(target_engine) == [RECORD_ONE, RECORD_TWO]


def test_loading_twice_keeps_one_row_per_id(patched_target, postgres_settings, output_dir, target_engine):
    _write_transformed(output_dir, [RECORD_ONE])

    run_load(postgres_settings, TABLE, output_dir)
    run_load(postgres_settings, TABLE, output_dir)

    assert _rows(target_engine) == [RECORD_ONE]


def test_reload_updates_changed_values_in_place(patched_target, postgres_settings, output_dir, target_engine):
    _write_transformed(output_dir, [RECORD_ONE])
    run_load(postgres_settings, TABLE, output_dir)

    changed = {**RECORD_ONE, "is_active": False, "data": {"extra": "y", "added": 1}}
    _write_transformed(output_dir, [changed])
    run_load(postgres_settings, TABLE, output_dir)

    assert _rows(target_engine) == [changed]


def test_last_occurrence_wins_within_one_file(patched_target, postgres_settings, output_dir, target_engine):
    later = {**RECORD_ONE, "category_id": "c9"}
    _write_transformed(output_dir, [RECORD_ONE, later])

    summary = run_load(postgres_settings, TABLE, output_dir)

    assert summary.upserted == 2
    assert _rows(target_engine) == [later]


def test_load_empty_file(patched_target, postgres_settings, output_dir, target_engine):
    _write_transformed(output_dir, [])

    summary = run_load(postgres_settings, TABLE, output_dir)

    assert (summary.attempted, summary.upserted) == (0, 0)
    assert _rows(target_engine) == []


def test_custom_table_name(patched_target, postgres_settings, output_dir, target_engine):
    _write_transformed(output_dir, [RECORD_TWO])

    summary = run_load(postgres_settings, "catalog_records_v2", output_dir)

    assert summary.table == "catalog_records_v2"
    assert _rows(target_engine, "catalog_records_v2") == [RECORD_TWO]


# =============================================================================
# Test: Failure Handling
# =============================================================================


def test_record_failure_rolls_back_whole_run(
    monkeypatch, patched_target, postgres_settings, output_dir, target_engine
):
    _write_transformed(output_dir, [RECORD_ONE])
    run_load(postgres_settings, TABLE, output_dir)

    original_upsert = PostgresTargetResource.upsert

    def _failing_upsert(self, conn, row):
        if row["id"] == "2":
            raise IntegrityError("INSERT", {}, Exception("value too long"))
        return original_upsert(self, conn, row)

    monkeypatch.setattr(PostgresTargetResource, "upsert", _failing_upsert)
    _write_transformed(output_dir, [{**RECORD_ONE, "is_active": False}, RECORD_TWO])

    with pytest.raises(RecordLoadError) as exc_info:
        run_load(postgres_settings, TABLE, output_dir)

    assert exc_info.value.record_id == "2"
    assert exc_info.value.attempted == 2
    assert exc_info.value.upserted == 1
    assert "value too long" in str(exc_info.value)
    # The update of record 1 was rolled back with the rest of the run
    assert _rows(target_engine) == [RECORD_ONE]


def test_invalid_record_aborts_before_connecting(monkeypatch, postgres_settings, output_dir):
    def _no_engine(*args, **kwargs):
        raise AssertionError("target must not be contacted")

    monkeypatch.setattr("catalog_migration.resources.postgres_resource.create_engine", _no_engine)
    _write_transformed(output_dir, [RECORD_ONE, {**RECORD_TWO, "record_type": "TYPE_Z"}])

    with pytest.raises(MalformedInputError, match="Entry #1"):
        run_load(postgres_settings, TABLE, output_dir)


def test_missing_input_file(postgres_settings, output_dir):
    with pytest.raises(MalformedInputError, match="not found"):
        run_load(postgres_settings, TABLE, output_dir)


def test_connection_failure(monkeypatch, postgres_settings, output_dir):
    engine = create_engine(f"sqlite:///{output_dir / 'missing' / 'nested' / 'target.db'}")
    monkeypatch.setattr(
        "catalog_migration.resources.postgres_resource.create_engine",
        lambda *args, **kwargs: engine,
    )
    _write_transformed(output_dir, [RECORD_ONE])

    with pytest.raises(TargetConnectionError, match="Cannot connect to PostgreSQL"):
        run_load(postgres_settings, TABLE, output_dir)


def test_requires_database(postgres_settings, output_dir):
    _write_transformed(output_dir, [RECORD_ONE])
    settings = postgres_settings.model_copy(update={"database": None})

    with pytest.raises(ConfigurationError, match="database name"):
        run_load(settings, TABLE, output_dir)


def test_engine_disposed_after_failure(monkeypatch, patched_target, postgres_settings, output_dir):
    disposed = []
    monkeypatch.setattr(
        PostgresTargetResource, "dispose", lambda self: disposed.append(self.table.name)
    )

    def _refuse(self):
        raise TargetConnectionError("refused")

    monkeypatch.setattr(PostgresTargetResource, "check_connection", _refuse)
    _write_transformed(output_dir, [RECORD_ONE])

    with pytest.raises(TargetConnectionError):
        run_load(postgres_settings, TABLE, output_dir)

    assert disposed == [TABLE]


# =============================================================================
# Test: Reading transformed_data.json
# =============================================================================


def test_read_keeps_extended_json_in_payload(output_dir):
    record = {**RECORD_ONE, "data": {"createdAt": {"$date": "2024-01-01T00:00:00Z"}}}
    _write_transformed(output_dir, [record])

    (loaded,) = read_transformed_records(output_dir / TRANSFORMED_FILE)

    assert loaded.data == {"createdAt": {"$date": "2024-01-01T00:00:00Z"}}


def test_load_records_counts(patched_target, postgres_settings):
    target = PostgresTargetResource(postgres_settings, TABLE)
    try:
        records = [TransformedRecord.model_validate(entry) for entry in (RECORD_ONE, RECORD_TWO)]
        summary = load_records(target, records)
    finally:
        target.dispose()

    assert str(summary) == "Upserted 2/2 records into catalog_records"


def test_unsupported_dialect(postgres_settings):
    target = PostgresTargetResource(postgres_settings, TABLE)

    class _Conn:
        class dialect:
            name = "mysql"

    with pytest.raises(ConfigurationError, match="not supported"):
        target.upsert(_Conn(), RECORD_ONE)


def test_operational_error_on_check_is_connection_error(monkeypatch, postgres_settings):
    class _Engine:
        def connect(self):
            raise OperationalError("SELECT 1", {}, Exception("password authentication failed"))

    monkeypatch.setattr(
        "catalog_migration.resources.postgres_resource.create_engine",
        lambda *args, **kwargs: _Engine(),
    )
    target = PostgresTargetResource(postgres_settings, TABLE)

    with pytest.raises(TargetConnectionError, match="password authentication failed"):
        target.check_connection()
