from __future__ import annotations

import uuid
from typing import Mapping

from textile_ops.db.filters import AnyOf, Eq, ILike, Predicate
from textile_ops.parsing.primitives import enum_parser, parse_date_yyyy_mm_dd, parse_email
from textile_ops.parsing.schema import ExportColumn, FieldSpec, RecordSchema, UniqueKey

USER_ROLES = ("Admin", "Pmanager", "Imanager", "User")
USER_STATUSES = ("Active", "Inactive", "Suspended")

_USER_FIELDS = (
    FieldSpec("email", parse_email, required=True),
    FieldSpec("first_name", required=True),
    FieldSpec("last_name", required=True),
    FieldSpec("user_role", enum_parser("user_role", USER_ROLES), default="User"),
    FieldSpec("user_status", enum_parser("user_status", USER_STATUSES), default="Active"),
    FieldSpec("mobile"),
    FieldSpec("address"),
    FieldSpec("city"),
    FieldSpec("state"),
    FieldSpec("document_type"),
    FieldSpec("document_number"),
    FieldSpec("dob", lambda v: parse_date_yyyy_mm_dd(v, field="dob")),
)


USER_SCHEMA = RecordSchema(
    entity_name="users",
    table_name="profiles",
    reject_unknown_headers=True,        # a typo'd header fails the upload instead of dropping data
    id_field="id",
    id_factory=lambda: str(uuid.uuid4()),
    uniqueness_keys=(UniqueKey("email", "Email"),),
    fields=_USER_FIELDS,
    # only uploadable columns, so an export is accepted back as-is
    export_columns=tuple(ExportColumn(f.name, f.name) for f in _USER_FIELDS),
)


def user_export_filters(params: Mapping[str, str]) -> list[Predicate]:
    """`search` (email/first/last name), exact `role` and `status`."""
    out: list[Predicate] = []
    search = (params.get("search") or "").strip()
    if search:
        out.append(AnyOf(tuple(ILike(f, search) for f in ("email", "first_name", "last_name"))))
    role = (params.get("role") or "").strip()
    if role and role != "all":
        out.append(Eq("user_role", role))
    status = (params.get("status") or "").strip()
    if status and status != "all":
        out.append(Eq("user_status", status))
    return out
