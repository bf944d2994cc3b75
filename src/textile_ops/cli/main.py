from __future__ import annotations

import argparse
import sys
from pathlib import Path

import psycopg

from textile_ops.db.connect import connect
from textile_ops.db.initialize import db_init
from textile_ops.db.postgres import PostgresStore
from textile_ops.db.store import StorageError
from textile_ops.ingest.exporter import export_entity
from textile_ops.ingest.importer import OPERATIONS, import_csv
from textile_ops.ingest.readers import read_csv_file
from textile_ops.logging_setup import configure_logging
from textile_ops.parsing.registry import EntityKind
from textile_ops.parsing.types import AuthorizationError, StructuralError

ENTITIES = [k.value for k in EntityKind]


def _parse_filters(pairs: list[str] | None) -> dict[str, str]:
    """`["city=Surat", "has_gst=true"]` -> `{"city": "Surat", "has_gst": "true"}`."""
    out: dict[str, str] = {}
    for pair in pairs or []:
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            raise SystemExit(f"--filter expects key=value, got {pair!r}")
        out[key.strip()] = value.strip()
    return out


def main(argv: list[str] | None = None) -> int:
    """
    A CLI for bulk importing and exporting dashboard entities against Postgres.

    The `cmd` options are:
    ## import:
    Validate a CSV file and write its rows.
    - `--entity` one of ledgers, users, products, inventory,
    - `--input` path to the `.csv` file,
    - `--operation` `import` (insert new rows, default) or `update` (patch existing rows).

    A one-line summary prints on completion, followed by one line per rejected row.

    ### Example import usage:
    - `textile-ops import --entity ledgers --input data/ledgers.csv`
    - `textile-ops import --entity inventory --input data/stock.csv --operation update`

    ## export:
    - `--entity`, optional `--output` (stdout otherwise), repeatable `--filter key=value`.

    ## db:
    - `init` applies `--sql` (a `.sql` file or a dir of them).

    ## serve:
    Run the HTTP API with uvicorn.
    """
    p = argparse.ArgumentParser(prog="textile-ops")
    p.add_argument("--log-level", default=None, help="Overrides TEXTILE_OPS_LOG_LEVEL.")
    sub = p.add_subparsers(dest="cmd", required=True)

    # import cmd
    imp = sub.add_parser("import", help="Import (or update) an entity from a CSV file.")
    imp.add_argument("--entity", required=True, choices=ENTITIES)
    imp.add_argument("--input", required=True, help="Path to the CSV file.")
    imp.add_argument("--operation", default="import", choices=list(OPERATIONS))
    imp.add_argument("--role", default="Admin", help="Role the import runs as.")
    imp.add_argument("--actor-id", default=None, help="Recorded as created_by where the table has it.")

    # export cmd
    exp = sub.add_parser("export", help="Export an entity to CSV.")
    exp.add_argument("--entity", required=True, choices=ENTITIES)
    exp.add_argument("--output", default=None, help="File to write (stdout if omitted).")
    exp.add_argument("--filter", action="append", dest="filters", metavar="KEY=VALUE")

    # db cmd
    db = sub.add_parser("db", help="Database utilities.")
    db_sub = db.add_subparsers(dest="db_cmd", required=True)
    db_init_p = db_sub.add_parser("init", help="Initialize DB schema from SQL file(s).")
    db_init_p.add_argument("--sql", default="sql", help="Path to schema SQL file OR a directory of `.sql` files.")

    # serve cmd
    serve = sub.add_parser("serve", help="Run the HTTP API.")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)

    args = p.parse_args(argv)
    configure_logging(args.log_level)

    if args.cmd == "import":
        try:
            text = read_csv_file(Path(args.input))
            with connect() as conn:
                summary = import_csv(
                    PostgresStore(conn),
                    args.entity,
                    text,
                    operation=args.operation,
                    role=args.role,
                    actor_id=args.actor_id,
                )
        except (StructuralError, AuthorizationError, StorageError, psycopg.Error) as e:
            print(f"error: {e}", file=sys.stderr)
            return 1

        print(summary.render_one_line())
        for msg in summary.error_messages:
            print(f"  {msg}")
        return 0

    if args.cmd == "export":
        filters = _parse_filters(args.filters)
        try:
            with connect() as conn:
                export = export_entity(PostgresStore(conn), args.entity, filters)
        except (StorageError, psycopg.Error) as e:
            print(f"error: {e}", file=sys.stderr)
            return 1
        if args.output:
            Path(args.output).write_text(export.content + "\n", encoding="utf-8")
            print(f"Wrote {export.row_count} rows to {args.output}")
        else:
            print(export.content)
        return 0

    if args.cmd == "db" and args.db_cmd == "init":
        applied = db_init(sql_path=Path(args.sql))
        print(f"Initialized schema from {args.sql} ({len(applied)} file(s))")
        return 0

    if args.cmd == "serve":
        import uvicorn

        uvicorn.run("textile_ops.api.app:app", host=args.host, port=args.port)
        return 0

    return 2


if __name__ == "__main__":
    raise SystemExit(main())
