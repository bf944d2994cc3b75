from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Sequence

from textile_ops.db.filters import Eq
from textile_ops.db.store import StorageError, Store
from textile_ops.parsing.primitives import is_blank
from textile_ops.parsing.schema import RecordSchema
from textile_ops.parsing.types import RejectCode, RowError, ValidatedRecord, WriteOutcome

logger = logging.getLogger(__name__)

BATCH_SIZE = 50


def _chunks(records: Sequence[ValidatedRecord], size: int):
    for start in range(0, len(records), size):
        yield records[start:start + size]


def _insert_values(schema: RecordSchema, record: ValidatedRecord, stamp: Mapping[str, Any]) -> dict[str, Any]:
    """Record values plus caller stamp (e.g. `created_by`), with a system id when the upload had none."""
    values = dict(record.to_mapping())
    values.update(stamp)
    if schema.id_field and schema.id_factory and is_blank(values.get(schema.id_field)):
        values[schema.id_field] = schema.id_factory()
    return values


def insert_batches(
    store: Store,
    schema: RecordSchema,
    records: Sequence[ValidatedRecord],
    *,
    batch_size: int = BATCH_SIZE,
    stamp: Optional[Mapping[str, Any]] = None,
) -> WriteOutcome:
    """
    Insert `records` in consecutive chunks of `batch_size`, one store call per chunk.

    A failed chunk reports each of its records as `write_failed` with the store's
    error text, and the next chunk is still attempted. Nothing already written
    is rolled back.
    """
    outcome = WriteOutcome()
    stamp = stamp or {}
    batch_size = max(1, batch_size)

    for i, chunk in enumerate(_chunks(records, batch_size), start=1):
        rows = [_insert_values(schema, r, stamp) for r in chunk]
        try:
            persisted = store.insert(schema.table_name, rows)
        except StorageError as e:
            logger.warning(
                "%s batch %d failed, %d records not imported: %s", schema.entity_name, i, len(chunk), e
            )
            outcome.errors.extend(RowError(r.source_row, RejectCode.write_failed, str(e)) for r in chunk)
            continue
        outcome.persisted.extend(persisted)

    return outcome


def update_records(
    store: Store,
    schema: RecordSchema,
    records: Sequence[ValidatedRecord],
) -> WriteOutcome:
    """
    Patch existing records matched on `schema.update_key`, one store call per record.

    Only `schema.update_fields` that have a value are written. A key with no
    matching record is reported as `not_found`.
    """
    if not schema.update_key:
        raise ValueError(f"{schema.entity_name}: no update_key configured")

    outcome = WriteOutcome()
    key = schema.update_key

    for r in records:
        values = r.to_mapping()
        key_value = values.get(key)
        patch = {f: values[f] for f in schema.update_fields if values.get(f) is not None}
        try:
            n = store.update(schema.table_name, [Eq(key, key_value)], patch)
        except StorageError as e:
            logger.warning("%s update %s=%r failed: %s", schema.entity_name, key, key_value, e)
            outcome.errors.append(RowError(r.source_row, RejectCode.write_failed, str(e)))
            continue
        if n == 0:
            outcome.errors.append(
                RowError(r.source_row, RejectCode.not_found, f'No existing record with {key} "{key_value}"')
            )
            continue
        outcome.persisted.append({key: key_value, **patch})

    return outcome


def write_records(
    store: Store,
    schema: RecordSchema,
    records: Sequence[ValidatedRecord],
    *,
    batch_size: int = BATCH_SIZE,
    operation: str = "import",
    stamp: Optional[Mapping[str, Any]] = None,
) -> WriteOutcome:
    """Persist accepted records: batched inserts for `import`, keyed patches for `update`."""
    if operation == "update":
        return update_records(store, schema, records)
    return insert_batches(store, schema, records, batch_size=batch_size, stamp=stamp)
