"""EntityDescriptor — how one entity kind maps onto its table."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from sqlmodel import SQLModel

if TYPE_CHECKING:
    from collections.abc import Mapping

ModelT = TypeVar("ModelT", bound=SQLModel)


@dataclass(frozen=True)
class EntityDescriptor(Generic[ModelT]):
    """Describes a shareable entity kind.

    Built once at import time; construction fails fast if the id field or
    any patchable column is not on the model's table.
    """

    kind: str
    """Singular name used in messages, e.g. ``"book"``."""

    model: type[ModelT]
    """SQLModel table class holding the entity rows."""

    id_field: str
    """Primary key column, also a foreign key to the content table."""

    collection: str
    """Plural name, e.g. ``"books"``."""

    columns: tuple[str, ...]
    """Columns a caller may set on create or patch on update."""

    id_column: Any = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        table_columns = set(self.model.__table__.columns.keys())  # type: ignore[attr-defined]
        if self.id_field not in table_columns:
            raise ValueError(f"{self.model.__name__} has no column {self.id_field!r}")
        unknown = [c for c in self.columns if c not in table_columns]
        if unknown:
            raise ValueError(f"{self.model.__name__} has no columns {unknown!r}")
        object.__setattr__(self, "id_column", getattr(self.model, self.id_field))

    def entity_id(self, item: Mapping[str, Any]) -> str:
        """The id an input item refers to, under its own name or ``id``."""
        entity_id = item.get(self.id_field) or item.get("id")
        if not entity_id:
            raise ValueError(f"{self.kind} item is missing {self.id_field!r}")
        return entity_id

    def patch(self, item: Mapping[str, Any]) -> dict[str, Any]:
        """Only the supplied patchable keys; a supplied ``None`` writes NULL."""
        return {c: item[c] for c in self.columns if c in item}

    def row(self, entity_id: str, item: Mapping[str, Any], **fixed: Any) -> dict[str, Any]:
        """A full insert row with model defaults filled in.

        *fixed* values (such as a parent id) override anything in *item*.
        """
        values = {**self.patch(item), **fixed}
        missing = [
            name
            for name, info in self.model.model_fields.items()
            if name != self.id_field and info.is_required() and values.get(name) is None
        ]
        if missing:
            raise ValueError(f"{self.kind} requires {', '.join(missing)}")
        return self.model(**{self.id_field: entity_id, **values}).model_dump()
