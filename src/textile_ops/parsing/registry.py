from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Callable, Mapping, Optional

from .schema import RecordSchema
from .types import AuthorizationError

if TYPE_CHECKING:
    from textile_ops.db.filters import Predicate


class EntityKind(str, Enum):
    """The entity kinds that support bulk import/export."""
    ledgers = "ledgers"
    users = "users"
    products = "products"
    inventory = "inventory"


ExportFilterBuilder = Callable[[Mapping[str, str]], "list[Predicate]"]


@dataclass(frozen=True)
class EntitySpec:
    """An entity's bulk contract: schema, who may write it, how exports are filtered."""
    kind: EntityKind
    schema: RecordSchema
    export_filters: ExportFilterBuilder
    allowed_roles: Optional[frozenset[str]] = None     # `None` = any caller
    export_order_by: str = "created_at"
    export_descending: bool = False

    def authorize(self, role: Optional[str]) -> None:
        """Raise `AuthorizationError` unless `role` may bulk-write this entity."""
        if self.allowed_roles is None:
            return
        if role not in self.allowed_roles:
            raise AuthorizationError(
                f"Not authorized - {self.kind.value} bulk import requires one of: "
                f"{', '.join(sorted(self.allowed_roles))}"
            )


def get_entity_spec(entity: str | EntityKind) -> EntitySpec:
    """
    A registry that assigns an entity kind its `RecordSchema`. `FieldSpec`s live in the profile modules.
    """
    try:
        kind = EntityKind(entity)
    except ValueError:
        raise ValueError(f"Unknown entity: {entity}") from None

    if kind is EntityKind.ledgers:
        from .profiles.ledgers import LEDGER_SCHEMA, ledger_export_filters
        return EntitySpec(
            kind=kind,
            schema=LEDGER_SCHEMA,
            export_filters=ledger_export_filters,
            allowed_roles=frozenset({"Admin", "Pmanager"}),
        )

    if kind is EntityKind.users:
        from .profiles.users import USER_SCHEMA, user_export_filters
        return EntitySpec(
            kind=kind,
            schema=USER_SCHEMA,
            export_filters=user_export_filters,
            allowed_roles=frozenset({"Admin"}),
        )

    if kind is EntityKind.products:
        from .profiles.products import PRODUCT_SCHEMA, product_export_filters
        return EntitySpec(
            kind=kind,
            schema=PRODUCT_SCHEMA,
            export_filters=product_export_filters,
            export_descending=True,
        )

    from .profiles.inventory import INVENTORY_SCHEMA, inventory_export_filters
    return EntitySpec(
        kind=kind,
        schema=INVENTORY_SCHEMA,
        export_filters=inventory_export_filters,
        export_descending=True,
    )
