# handlers.py: the endpoint handlers
#
# Every handler receives the request Context and follows the same pipeline:
#   parse input -> authorize -> before hooks -> apply overrides -> write -> after hooks -> shape response
# Errors are raised as RestifyError subclasses, the dispatcher stores them in the response envelope.
#
# pylint: disable=logging-format-interpolation,protected-access
import re
from sqlalchemy import func, tuple_
from sqlalchemy.exc import SQLAlchemyError
import restify
from .adapter import column_values, parse_object, parse_objects
from .config import get_config
from .errors import BadRequestError, GenericError, NotFoundError
from .pagination import Pagination
from .permissions import (
    authorize,
    PERMISSION_AGGREGATE,
    PERMISSION_BATCH_CREATE,
    PERMISSION_BATCH_DELETE,
    PERMISSION_BATCH_UPDATE,
    PERMISSION_CREATE,
    PERMISSION_DELETE,
    PERMISSION_MODEL_INFO,
    PERMISSION_UPDATE,
    PERMISSION_VIEW_ALL,
    PERMISSION_VIEW_GET,
    PERMISSION_VIEW_PAGINATION,
)
from .query import apply_filters, base_query, filter_primary_key, guard_unsafe

AGGREGATE_RE = re.compile(r"^([a-z0-9_*\-]+)\.(count|sum|min|max|avg|first|last)$", re.IGNORECASE)
COLUMN_NAME_RE = re.compile(r"^\w+$")


def write(context):
    """
    Write point: flush or commit, database errors become a GenericError (500)
    """
    try:
        context.write_point()
    except SQLAlchemyError as exc:
        raise GenericError(exc)


def parse_candidate(context, parse):
    """
    Parse the request body with `parse`. Parse errors are only raised after the permission
    check, so a fresh object stands in for the candidate when the body is invalid.

    :return: (candidate, parse error or None)
    """
    try:
        return parse(context.request.get_payload()), None
    except BadRequestError as exc:
        return context.create_object(), exc


def where_only(query, context, scoped=True):
    """
    :return: `query` restricted by the filters and conditions only, as required by bulk statements
    """
    return apply_filters(query, context, load=False, order=False, group=False, select=False, limit=False, scoped=scoped)


def find_by_primary_key(context):
    """
    Load the row identified by the url, the filters and the conditions still apply

    :raises NotFoundError: no such row
    """
    query = apply_filters(base_query(context), context, order=False, group=False, limit=False)
    obj = filter_primary_key(query, context).first()
    if obj is None:
        raise NotFoundError()
    return obj


def primary_key_columns(context):
    return [getattr(context.model, fld.name) for fld in context.schema.primary_fields]


def reload_rows(context, keys):
    """
    :param keys: primary key tuples
    :return: the rows identified by `keys`
    """
    if not keys:
        return []
    columns = primary_key_columns(context)
    query = base_query(context).populate_existing()
    if len(columns) == 1:
        return query.filter(columns[0].in_([key[0] for key in keys])).all()
    return query.filter(tuple_(*columns).in_([tuple(key) for key in keys])).all()


def shape_rows(context, rows):
    for row in rows:
        context.hooks.after_get(context, row)
    context.response.set_list([context.shape(row) for row in rows])


def model_info(context):
    """
    Return the model description: fields and endpoints
    """
    authorize(PERMISSION_MODEL_INFO, context.create_object(), context)
    context.response.data = context.resource.info()


def create(context):
    """
    Create a single object, associations in the body are ignored
    """
    obj, parse_error = parse_candidate(context, lambda payload: parse_object(context.model, payload))
    authorize(PERMISSION_CREATE, obj, context)
    if parse_error:
        raise parse_error

    context.hooks.before_create(context, obj)
    context.apply_overrides(obj)
    context.session.add(obj)
    write(context)
    context.hooks.after_create(context, obj)
    context.response.data = context.shape(obj)


def batch_create(context):
    """
    Create a list of objects, written in chunks of BATCH_CHUNK_SIZE
    """
    objects, parse_error = parse_candidate(context, lambda payload: parse_objects(context.model, payload))
    authorize(PERMISSION_BATCH_CREATE, context.create_object(), context)
    if parse_error:
        raise parse_error

    chunk_size = max(int(get_config("BATCH_CHUNK_SIZE")), 1)
    for start in range(0, len(objects), chunk_size):
        chunk = objects[start : start + chunk_size]
        for obj in chunk:
            context.hooks.before_create(context, obj)
            context.apply_overrides(obj)
        context.session.add_all(chunk)
        write(context)
        for obj in chunk:
            context.hooks.after_create(context, obj)
            context.hooks.after_get(context, obj)

    context.response.set_list([context.shape(obj) for obj in objects])


def _update(context, partial):
    authorize(PERMISSION_UPDATE, context.create_object(), context)
    obj = find_by_primary_key(context)
    payload = context.request.get_payload()
    context.partial_update = partial
    parse_object(context.model, payload, obj=obj, partial=partial, skip_pk=True)

    context.hooks.before_update(context, obj)
    context.apply_overrides(obj)
    write(context)
    context.hooks.after_update(context, obj)
    context.session.refresh(obj)
    context.response.data = context.shape(obj)


def update(context):
    """
    Partial update: only the non-zero fields of the body are written
    """
    _update(context, partial=True)


def replace(context):
    """
    Full update: every field of the body is written, zero values included
    """
    _update(context, partial=False)


def delete(context):
    """
    Delete a single object, soft delete when the model supports it
    """
    authorize(PERMISSION_DELETE, context.create_object(), context)
    obj = find_by_primary_key(context)
    context.hooks.before_delete(context, obj)
    set_deleted = getattr(obj, "set_deleted", None)
    if callable(set_deleted):
        set_deleted(True)
    else:
        context.session.delete(obj)
    write(context)
    context.hooks.after_delete(context, obj)


def batch_update(context):
    """
    Update all the rows matching the filters with the non-zero fields of the body
    """
    obj, parse_error = parse_candidate(
        context, lambda payload: parse_object(context.model, payload, partial=True, skip_pk=True)
    )
    authorize(PERMISSION_BATCH_UPDATE, context.create_object(), context)
    if parse_error:
        raise parse_error

    query = where_only(base_query(context), context)
    guard_unsafe(context)

    context.partial_update = True
    context.hooks.before_update(context, obj)
    context.apply_overrides(obj)
    values = column_values(obj, non_zero=True, skip_pk=True)
    if not values:
        raise BadRequestError("nothing to update")

    keys = query.with_entities(*primary_key_columns(context)).all() if context.request.wants_return else None
    try:
        count = query.update(values, synchronize_session=False)
    except SQLAlchemyError as exc:
        raise GenericError(exc)
    write(context)
    restify.log.debug(f"Batch update of {count} {context.schema.table} rows")

    if keys is None:
        context.response.total = count
        return
    shape_rows(context, reload_rows(context, keys))


def batch_delete(context):
    """
    Delete all the rows matching the filters, soft delete when the model supports it.
    No per-row hooks: the rows are deleted with a single statement.
    """
    authorize(PERMISSION_BATCH_DELETE, context.create_object(), context)
    query = where_only(base_query(context), context)
    guard_unsafe(context)

    if context.request.wants_return:
        shape_rows(context, query.all())

    soft_delete_values = getattr(context.model, "_s_soft_delete_values", None)
    try:
        if soft_delete_values is not None:
            count = query.update(soft_delete_values(), synchronize_session=False)
        else:
            count = query.delete(synchronize_session=False)
    except SQLAlchemyError as exc:
        raise GenericError(exc)
    write(context)
    restify.log.debug(f"Batch delete of {count} {context.schema.table} rows")
    if not context.request.wants_return:
        context.response.total = count


def get_all(context):
    """
    Return all the objects matching the filters, without implicit limit
    """
    authorize(PERMISSION_VIEW_ALL, context.create_object(), context)
    context.hooks.before_get(context, context.create_object())
    query = apply_filters(base_query(context), context)
    shape_rows(context, query.all())


def paginate(context):
    """
    Return a page of the objects matching the filters (?page=2&size=20)
    """
    authorize(PERMISSION_VIEW_PAGINATION, context.create_object(), context)
    context.hooks.before_get(context, context.create_object())
    query = apply_filters(base_query(context), context, limit=False)

    records = query.order_by(None).count()
    if records > get_config("MAX_TABLE_COUNT"):
        restify.log.warning(f"Large table count for {context.schema.table}: {records}")
    pagination = Pagination.from_request(records, context.request)
    rows = query.limit(pagination.limit).offset(pagination.offset).all()
    shape_rows(context, rows)

    response = context.response
    response.total = pagination.records
    response.total_pages = pagination.pages
    response.current_page = pagination.page
    response.size = pagination.limit
    response.offset = pagination.offset
    response.page_range = pagination.page_range


def get(context):
    """
    Return a single object identified by its primary key
    """
    authorize(PERMISSION_VIEW_GET, context.create_object(), context)
    context.hooks.before_get(context, context.create_object())
    obj = find_by_primary_key(context)
    context.hooks.after_get(context, obj)
    context.response.data = context.shape(obj)


def parse_aggregates(context):
    """
    `fields=unit_price.sum,product_id.count,*.count`

    :return: list of (label, sqla expression)
    """
    tokens = [token.strip() for token in context.request.param("fields", "").split(",") if token.strip()]
    if not tokens:
        raise BadRequestError("fields parameter is required")

    result = []
    for token in tokens:
        match = AGGREGATE_RE.match(token)
        if not match:
            restify.log.debug(f"Invalid aggregate {token}")
            continue
        column, function = match.group(1), match.group(2).lower()
        if column == "*":
            if function != "count":
                continue
            result.append((f"{column}.{function}", func.count()))
            continue
        fld = context.schema.field_by_column(column)
        if fld is None:
            restify.log.debug(f"Invalid aggregate column {column}")
            continue
        result.append((f"{column}.{function}", getattr(func, function)(getattr(context.model, fld.name))))

    if not result:
        raise BadRequestError("fields parameter should contain aggregate functions field_name.aggregate_function")
    return result


def aggregate(context):
    """
    Aggregate the rows matching the filters, optionally grouped by a single column (?group_by=category)
    """
    authorize(PERMISSION_AGGREGATE, context.create_object(), context)
    aggregates = parse_aggregates(context)
    query = where_only(base_query(context), context)
    guard_unsafe(context)

    expressions = [expression.label(label) for label, expression in aggregates]
    group_by = context.request.param("group_by", "")
    group_fld = context.schema.field_by_column(group_by) if COLUMN_NAME_RE.match(group_by) else None
    if group_by and group_fld is None:
        restify.log.debug(f"Invalid aggregate group_by {group_by}")

    if group_fld is not None:
        group_attr = getattr(context.model, group_fld.name)
        query = query.with_entities(group_attr.label(group_fld.column), *expressions).group_by(group_attr)
    else:
        query = query.with_entities(*expressions)

    try:
        rows = query.all()
    except SQLAlchemyError as exc:
        raise GenericError(exc)
    if group_fld is None:
        # a single row without grouping
        context.response.data = dict(rows[0]._mapping)
        return
    context.response.set_list([dict(row._mapping) for row in rows])
