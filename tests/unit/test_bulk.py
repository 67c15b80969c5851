from __future__ import annotations

import psycopg
import pytest

from sql_middleware.domain.models import BulkSpec
from sql_middleware.errors import ExecutionError, ValidationError
from sql_middleware.operations.bulk import BulkLoader, as_text, build_copy_statement, extract_rows


@pytest.mark.asyncio
async def test_missing_keys_are_sent_as_null(manager, fake_db) -> None:
    spec = BulkSpec(table_name="t", rows=[{"a": 1, "b": 2}, {"a": 3}])

    result = await BulkLoader(manager).bulk_insert(spec)

    (copy,) = fake_db.copies
    assert copy.statement == build_copy_statement("t", ["a", "b"])
    assert copy.types == ["text", "text"]
    assert copy.rows == [["1", "2"], ["3", None]]
    assert result.rows_affected == 2


@pytest.mark.asyncio
async def test_columns_follow_first_row_insertion_order(manager, fake_db) -> None:
    spec = BulkSpec(
        table_name="staging.events",
        rows=[{"zeta": "z", "alpha": "a"}, {"alpha": "a2", "zeta": "z2", "extra": "ignored"}],
    )

    await BulkLoader(manager).bulk_insert(spec)

    (copy,) = fake_db.copies
    assert copy.statement == build_copy_statement("staging.events", ["zeta", "alpha"])
    assert copy.rows == [["z", "a"], ["z2", "a2"]]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "spec",
    [
        BulkSpec(table_name="t", rows=[]),
        BulkSpec(table_name="", rows=[{"a": 1}]),
        BulkSpec(table_name=None, rows=[{"a": 1}]),
        BulkSpec(table_name="t", rows=[{}]),
    ],
)
async def test_invalid_spec_is_rejected_before_connecting(manager, pool_factory, fake_db, spec) -> None:
    with pytest.raises(ValidationError):
        await BulkLoader(manager).bulk_insert(spec)

    assert pool_factory.calls == 0
    assert fake_db.copies == []


@pytest.mark.asyncio
async def test_copy_failure_is_wrapped(manager, fake_db) -> None:
    fake_db.copy_error = psycopg.errors.StringDataRightTruncation("value too long for type character varying(3)")

    with pytest.raises(ExecutionError) as excinfo:
        await BulkLoader(manager).bulk_insert(BulkSpec(table_name="t", rows=[{"a": "long"}]))

    assert excinfo.value.code == "22001"


@pytest.mark.asyncio
async def test_connection_error_during_copy_reconnects_once_without_retrying(
    manager, pool_factory, fake_db
) -> None:
    fake_db.copy_error = psycopg.OperationalError("server closed the connection unexpectedly")
    first_pool = await manager.ensure_pool()

    with pytest.raises(ExecutionError, match="server closed the connection"):
        await BulkLoader(manager).bulk_insert(BulkSpec(table_name="t", rows=[{"a": 1}, {"a": 2}]))

    assert pool_factory.calls == 2
    assert first_pool.closed is True
    assert len(fake_db.copies) == 1
    assert fake_db.copies[0].rows == []


@pytest.mark.parametrize(
    "value, expected",
    [
        (None, None),
        (True, "true"),
        (False, "false"),
        (42, "42"),
        (1.5, "1.5"),
        ("text", "text"),
        ({"k": [1, 2]}, '{"k": [1, 2]}'),
    ],
)
def test_as_text(value, expected) -> None:
    assert as_text(value) == expected


def test_extract_rows_keeps_column_order() -> None:
    assert extract_rows(["b", "a"], [{"a": 1, "b": 2}, {"b": None}]) == [["2", "1"], [None, None]]
