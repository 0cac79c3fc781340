# base.py: implements the RestifyBase SQLAlchemy db Mixin and the soft delete capability
#
# pylint: disable=no-self-argument,no-member,line-too-long,protected-access
#
"""
RestifyBase optional attributes and methods, implement these on a model to customize its endpoints.
All methods receive the request Context.

exclude_attrs:
Type: List[str]
Description: attribute names that are never serialized (eg. password hashes).


rest_permission(self, permissions, context) -> bool:
Description: model specific permission check. When implemented, it takes precedence over the
API default permission handler. `permissions` is a Permissions instance (eg. ["VIEW", "ALL"]).
Conditions and overrides can be registered on the context here.


on_before_create, on_before_update, on_before_save, on_before_delete, on_before_get:
Description: lifecycle hooks that run before the store is written (or read).
Raising an exception aborts the request.


validate_create, validate_update:
Description: model level validation, runs after on_before_create/on_before_update and before
the column validation rules (Column(info={"validation": "required,email"})).


on_after_create, on_after_update, on_after_save, on_after_delete, on_after_get:
Description: lifecycle hooks that run after the store was written (or read), on_after_get is
used to shape the objects returned to the client.


set_deleted(self, value=True):
Description: soft delete capability, the DELETE endpoint calls it instead of deleting the row.
Implemented by SoftDeleteMixin.


custom_decorators:
Type: List[Callable]
Description: decorators applied to the flask-restful view methods of the model endpoints,
eg. authentication decorators.
"""
import datetime
from sqlalchemy import Column, DateTime, inspect as sqla_inspect
from .schema import get_schema


class RestifyBase:
    """
    Mixin for the SQLAlchemy models exposed by RestifyAPI

        class Product(RestifyBase, DB.Model):
            __tablename__ = "product"
            product_id = Column(Integer, primary_key=True)
    """

    exclude_attrs = []
    exclude_rels = []
    custom_decorators = []

    def to_dict(self, fields=None, _seen=None):
        """
        Serialize the column attributes and the relationships that have been loaded
        (through associations/join preloading)

        :param fields: optional collection of attribute names to serialize (sparse fieldsets)
        :return: dict
        """
        schema = get_schema(type(self))
        seen = set(_seen or ())
        seen.add(id(self))
        result = {}
        for fld in schema.fields:
            if fld.name in self.exclude_attrs:
                continue
            if fields and fld.name not in fields:
                continue
            result[fld.name] = getattr(self, fld.name)

        unloaded = sqla_inspect(self).unloaded
        for rel in schema.relations:
            if rel.name in unloaded or rel.name in self.exclude_rels or not rel.loadable:
                continue
            value = getattr(self, rel.name)
            if rel.uselist:
                result[rel.name] = [item.to_dict(_seen=seen) for item in value if id(item) not in seen]
            elif value is None:
                result[rel.name] = None
            elif id(value) not in seen:
                result[rel.name] = value.to_dict(_seen=seen)
        return result


class SoftDeleteMixin:
    """
    Soft delete capability: rows are flagged with a deletion timestamp instead of being deleted.
    Flagged rows are hidden from the read and batch endpoints, unless the request
    explicitly filters on the deletion column (deleted_at[isnull] / deleted_at[notnull]).
    """

    soft_delete_column = "deleted_at"
    deleted_at = Column(DateTime, nullable=True, default=None, info={"filterable": True})

    def set_deleted(self, value=True):
        self.deleted_at = datetime.datetime.now() if value else None

    @classmethod
    def _s_soft_delete_criterion(cls):
        """
        :return: sqla expression selecting the rows that aren't soft deleted
        """
        return cls.deleted_at.is_(None)

    @classmethod
    def _s_soft_delete_values(cls):
        """
        :return: column values of a bulk soft delete
        """
        return {cls.soft_delete_column: datetime.datetime.now()}
