"""
Set reconciliation: make the rows matching the filters equal to the submitted list

    POST /admin/rest/order_item/set?order_id[eq]=7
    [{"product_id": 1, "quantity": 2}, {"product_id": 3, "quantity": 1}]

- stored rows without an equal submitted object are deleted (physically, bypassing soft delete)
- submitted objects without an equal stored row are created
- everything else is left untouched

Both lists are decided once, from the stored rows and the request body, before any hook runs.
"""
import restify
from .adapter import parse_objects, shallow_equal
from .config import get_config
from .handlers import parse_candidate, shape_rows, where_only, write
from .permissions import authorize, PERMISSION_SET
from .query import base_query, guard_unsafe


def reconcile(existing, submitted, strict=False):
    """
    :param existing: stored rows
    :param submitted: objects parsed from the request
    :param strict: compare every submitted field, zero values included
    :return: (rows to delete, objects to create)
    """
    to_delete = [row for row in existing if not any(shallow_equal(row, obj, strict) for obj in submitted)]
    to_create = [obj for obj in submitted if not any(shallow_equal(row, obj, strict) for row in existing)]
    return to_delete, to_create


def set_objects(context):
    """
    SET endpoint handler
    """
    submitted, parse_error = parse_candidate(context, lambda payload: parse_objects(context.model, payload))
    authorize(PERMISSION_SET, context.create_object(), context)
    if parse_error:
        raise parse_error

    # soft deleted rows are part of the stored set
    context.unscoped = True
    query = where_only(base_query(context), context, scoped=False)
    guard_unsafe(context)

    existing = query.all()
    to_delete, to_create = reconcile(existing, submitted, strict=bool(get_config("SET_STRICT_EQUALITY")))
    restify.log.debug(f"Set {context.schema.table}: {len(to_delete)} deleted, {len(to_create)} created")

    for row in to_delete:
        context.hooks.before_delete(context, row)
        context.session.delete(row)
        write(context)
        context.hooks.after_delete(context, row)

    for obj in to_create:
        context.hooks.before_create(context, obj)
        context.apply_overrides(obj)
        context.session.add(obj)
        write(context)
        context.hooks.after_create(context, obj)

    if context.request.wants_return:
        shape_rows(context, query.populate_existing().all())
    else:
        context.response.total = len(existing) - len(to_delete) + len(to_create)
