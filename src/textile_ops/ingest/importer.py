from __future__ import annotations

import logging
from typing import Optional, Sequence

from textile_ops.config import get_settings
from textile_ops.db.filters import In
from textile_ops.db.store import Store
from textile_ops.db.tables import get_table_spec
from textile_ops.ingest.readers import check_csv_filename, decode_upload
from textile_ops.ingest.summary import ImportSummary
from textile_ops.ingest.writer import write_records
from textile_ops.parsing.binder import bind_headers
from textile_ops.parsing.registry import EntityKind, get_entity_spec
from textile_ops.parsing.schema import RecordSchema
from textile_ops.parsing.tokenizer import tokenize
from textile_ops.parsing.types import BoundRow, RowError, StructuralError, ValidatedRecord
from textile_ops.parsing.validator import KeyIndex, RowValidator

logger = logging.getLogger(__name__)

OPERATIONS = ("import", "update")


def load_existing_keys(store: Store, schema: RecordSchema, rows: Sequence[BoundRow]) -> KeyIndex:
    """
    Seed a `KeyIndex` with the unique-key values of this upload that already exist
    in storage. One query per unique key instead of one per row.
    """
    keys = KeyIndex()
    for key in schema.uniqueness_keys:
        wanted = sorted({key.normalize(r.get(key.field)) for r in rows} - {None, ""})
        if not wanted:
            continue
        existing = store.select(
            schema.table_name,
            [In(key.field, wanted, case_insensitive=key.case_insensitive)],
            columns=[key.field],
        )
        keys.seed(key, (e.get(key.field) for e in existing))
    return keys


def import_csv(
    store: Store,
    entity: str | EntityKind,
    text: str,
    *,
    operation: str = "import",
    role: Optional[str] = None,
    actor_id: Optional[str] = None,
    batch_size: Optional[int] = None,
    delimiter: str = ",",
) -> ImportSummary:
    """
    End-to-end bulk upload of one entity:
      - authorize the caller's role,
      - tokenize and bind headers (structural problems raise `StructuralError`),
      - validate each row:
            - invalid rows -> errors,
            - duplicates of stored or earlier rows -> skipped (also listed in errors),
            - valid rows -> accepted,
      - write accepted rows in batches (`import`) or patch existing ones (`update`),
      - summarize.

    Raises only on whole-upload problems (`AuthorizationError`, `StructuralError`,
    `StorageError` while reading existing keys). Bad rows never raise.
    """
    spec = get_entity_spec(entity)
    schema = spec.schema
    spec.authorize(role)

    if operation not in OPERATIONS:
        raise StructuralError("Invalid operation. Must be 'import' or 'update'")
    if operation == "update" and not schema.update_key:
        raise StructuralError(f"{schema.entity_name} does not support the update operation")

    ## -- structure
    rows = tokenize(text, delimiter)
    binding = bind_headers(rows[0], schema)
    if binding.ignored:
        logger.info("%s upload: ignoring unknown headers %s", schema.entity_name, binding.ignored)
    bound = [binding.bind(r) for r in rows[1:]]

    logger.info("%s %s started: %d data rows", schema.entity_name, operation, len(bound))

    ## -- validate every row, never aborting on a bad one
    is_import = operation == "import"
    keys = load_existing_keys(store, schema, bound) if is_import else KeyIndex()
    validator = RowValidator(schema, keys, check_uniqueness=is_import, apply_defaults=is_import)

    accepted: list[ValidatedRecord] = []
    errors: list[RowError] = []
    for row in bound:
        res = validator.validate(row)
        if isinstance(res, RowError):
            logger.debug("%s %s", schema.entity_name, res.message)
            errors.append(res)
        else:
            accepted.append(res)

    ## -- persist
    stamp = {}
    if is_import and actor_id and "created_by" in get_table_spec(schema.table_name).columns:
        stamp["created_by"] = actor_id
    outcome = write_records(
        store,
        schema,
        accepted,
        batch_size=batch_size or get_settings().batch_size,
        operation=operation,
        stamp=stamp,
    )

    summary = ImportSummary(
        entity=schema.entity_name,
        operation=operation,
        total_rows=len(bound),
        imported_count=len(outcome.persisted),
        errors=errors + outcome.errors,
        records=outcome.persisted,
    )
    logger.info(summary.render_one_line())
    return summary


def import_upload(
    store: Store,
    entity: str | EntityKind,
    *,
    filename: Optional[str],
    data: bytes,
    operation: str = "import",
    role: Optional[str] = None,
    actor_id: Optional[str] = None,
    batch_size: Optional[int] = None,
) -> ImportSummary:
    """`import_csv` for an uploaded file: role first, then extension and encoding checks."""
    get_entity_spec(entity).authorize(role)
    check_csv_filename(filename)
    text = decode_upload(data)
    return import_csv(
        store,
        entity,
        text,
        operation=operation,
        role=role,
        actor_id=actor_id,
        batch_size=batch_size,
    )
