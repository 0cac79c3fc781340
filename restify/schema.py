"""Schema descriptors of the exposed models.

The descriptors are derived once per model class from the SQLAlchemy mapper and cached for
the life of the process. They're the only place where the mapper is inspected, the handlers
and the query builder work with field and relation descriptors.

Column level settings are read from the column `info` dict:

    name = Column(String(64), info={"validation": "required,alpha", "filterable": True})
"""

from __future__ import annotations

from dataclasses import dataclass, field
from threading import Lock
from typing import Any, Dict, Optional, Tuple

from sqlalchemy import inspect as sqla_inspect
from sqlalchemy.orm import ColumnProperty


@dataclass(frozen=True)
class FieldDescriptor:
    """A mapped column attribute"""

    name: str  # attribute name, used in request bodies and responses
    column: str  # database column name, used in filters, ordering and grouping
    kind: str
    primary_key: bool = False
    nullable: bool = True
    default: Any = None
    validation: str = ""
    filterable: bool = True
    sql_column: Any = field(default=None, compare=False, repr=False)

    @property
    def label(self) -> str:
        return self.name.replace("_", " ").title()


@dataclass(frozen=True)
class RelationDescriptor:
    """A mapped relationship"""

    name: str
    direction: str
    target: Any = field(compare=False, repr=False)
    uselist: bool = True
    lazy: str = "select"

    @property
    def target_table(self) -> str:
        return sqla_inspect(self.target).local_table.name

    @property
    def loadable(self) -> bool:
        # we can't set loader options on 'dynamic', 'noload', 'raise' and 'write_only' relationships
        return self.lazy in ("select", "joined", "subquery", "selectin", "immediate", True)


@dataclass(frozen=True)
class SchemaDescriptor:
    model: Any = field(compare=False, repr=False)
    name: str
    table: str
    fields: Tuple[FieldDescriptor, ...] = ()
    relations: Tuple[RelationDescriptor, ...] = ()

    @property
    def primary_fields(self) -> Tuple[FieldDescriptor, ...]:
        return tuple(f for f in self.fields if f.primary_key)

    def get_field(self, name: str) -> Optional[FieldDescriptor]:
        """Look up a field by attribute name"""
        for fld in self.fields:
            if fld.name == name:
                return fld
        return None

    def field_by_column(self, column: str) -> Optional[FieldDescriptor]:
        """Look up a field by database column name"""
        for fld in self.fields:
            if fld.column == column:
                return fld
        return None

    def get_relation(self, name: str) -> Optional[RelationDescriptor]:
        for rel in self.relations:
            if rel.name == name:
                return rel
        return None


def _column_default(column):
    default = getattr(column, "default", None)
    if default is None or not getattr(default, "is_scalar", False):
        return None
    return default.arg


def _build_schema(model) -> SchemaDescriptor:
    mapper = sqla_inspect(model)
    fields = []
    for prop in mapper.iterate_properties:
        if not isinstance(prop, ColumnProperty) or len(prop.columns) != 1:
            continue
        column = prop.columns[0]
        if not hasattr(column, "table"):
            # column_property() expressions aren't stored
            continue
        info = getattr(column, "info", {}) or {}
        fields.append(
            FieldDescriptor(
                name=prop.key,
                column=column.name,
                kind=type(column.type).__name__,
                primary_key=bool(column.primary_key),
                nullable=bool(column.nullable),
                default=_column_default(column),
                validation=info.get("validation", ""),
                filterable=info.get("filterable", True),
                sql_column=column,
            )
        )

    relations = []
    for rel in mapper.relationships:
        relations.append(
            RelationDescriptor(
                name=rel.key,
                direction=rel.direction.name,
                target=rel.mapper.class_,
                uselist=bool(rel.uselist),
                lazy=rel.lazy,
            )
        )

    # keep the declared primary key order for composite keys
    pk_order = [col.name for col in mapper.primary_key]
    fields.sort(key=lambda f: pk_order.index(f.column) if f.column in pk_order else len(pk_order))

    return SchemaDescriptor(
        model=model,
        name=model.__name__,
        table=mapper.local_table.name,
        fields=tuple(fields),
        relations=tuple(relations),
    )


_SCHEMAS: Dict[Any, SchemaDescriptor] = {}
_LOCK = Lock()


def get_schema(model) -> SchemaDescriptor:
    """
    :param model: mapped class
    :return: the (cached) SchemaDescriptor of `model`
    """
    schema = _SCHEMAS.get(model)
    if schema is None:
        with _LOCK:
            schema = _SCHEMAS.get(model)
            if schema is None:
                schema = _SCHEMAS[model] = _build_schema(model)
    return schema
