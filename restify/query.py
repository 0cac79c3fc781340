"""
Query builder: turns the request query parameters into a sqla query

The parameters are applied in a fixed order:
    associations -> order -> group_by -> fields -> join -> filters + conditions -> offset -> limit

Unknown relationship and column names in associations, join, order, group_by and fields are
logged and ignored, unknown filter columns fail the request.
"""
import re
from sqlalchemy import asc, desc
from sqlalchemy.orm import load_only, selectinload
import restify
from .attr_parse import parse_attr
from .config import get_config
from .errors import UnsafeRequestError
from .filters import apply_conditions, apply_filter_clauses, parse_filters
from .schema import get_schema

ORDER_DIRECTIONS = {"asc": asc, "desc": desc}
GROUP_BY_RE = re.compile(r"^[a-z0-9_\-.,]+$", re.IGNORECASE)


def base_query(context):
    """
    :return: query selecting the context model from the request session
    """
    return context.session.query(context.model)


def csv_param(context, name):
    return [item.strip() for item in context.request.param(name, "").split(",") if item.strip()]


def deep_associations(schema, prefix="", visited=None, max_depth=None):
    """
    Walk the relationships recursively

    :param schema: SchemaDescriptor to start from
    :param visited: tables on the current path, relationships back to these are skipped
    :param max_depth: maximum number of path segments (DEEP_ASSOCIATION_DEPTH)
    :return: list of dotted relationship paths, eg. ["orders", "orders.product"]
    """
    if max_depth is None:
        max_depth = get_config("DEEP_ASSOCIATION_DEPTH")
    visited = visited or (schema.table,)
    paths = []
    for rel in schema.relations:
        if not rel.loadable or rel.target_table in visited:
            continue
        path = f"{prefix}.{rel.name}" if prefix else rel.name
        if len(path.split(".")) > max_depth:
            continue
        paths.append(path)
        paths.extend(deep_associations(get_schema(rel.target), path, visited + (rel.target_table,), max_depth))
    return paths


def association_paths(context):
    """
    :return: the relationship paths requested with the `associations` parameter
    """
    value = context.request.param("associations", "").strip()
    if not value:
        return []
    if value.lower() in restify.RESTIFY.ALL_ASSOCIATIONS:
        return [rel.name for rel in context.schema.relations if rel.loadable]
    if value.lower() == restify.RESTIFY.DEEP_ASSOCIATIONS:
        return deep_associations(context.schema)
    return csv_param(context, "associations")


def loader_option(schema, path):
    """
    :param path: dotted relationship path
    :return: chained selectinload option, None if the path is invalid
    """
    option = None
    current = schema
    for name in path.split("."):
        rel = current.get_relation(name)
        if rel is None or not rel.loadable:
            restify.log.warning(f"Invalid relationship : {current.name}.{name}")
            return None
        attr = getattr(current.model, name)
        option = option.selectinload(attr) if option is not None else selectinload(attr)
        current = get_schema(rel.target)
    return option


def apply_preload(query, context, paths):
    for path in paths:
        option = loader_option(context.schema, path)
        if option is not None:
            query = query.options(option)
    return query


def apply_order(query, context):
    """
    `order=name.asc,unit_price.desc`
    tokens without a direction, with an unknown direction or with an unknown column are skipped
    """
    for token in csv_param(context, "order"):
        column, sep, direction = token.rpartition(".")
        if not sep or not column:
            restify.log.debug(f"Invalid order token {token}")
            continue
        fld = context.schema.field_by_column(column)
        if fld is None:
            restify.log.debug(f"Invalid order column {column}")
            continue
        order_fn = ORDER_DIRECTIONS.get(direction.lower())
        if order_fn is None:
            restify.log.debug(f"Invalid order direction {direction}")
            continue
        query = query.order_by(order_fn(getattr(context.model, fld.name)))
    return query


def apply_group_by(query, context):
    value = context.request.param("group_by", "")
    if not value:
        return query
    if not GROUP_BY_RE.match(value):
        restify.log.warning(f"Invalid group_by {value}")
        return query
    columns = []
    for name in value.split(","):
        fld = context.schema.field_by_column(name.strip())
        if fld is None:
            restify.log.debug(f"Invalid group_by column {name}")
            continue
        columns.append(getattr(context.model, fld.name))
    return query.group_by(*columns) if columns else query


def apply_fields(query, context):
    """
    `fields=name,unit_price` only loads (and serializes) the selected columns
    """
    selected = []
    for name in csv_param(context, "fields"):
        fld = context.schema.field_by_column(name) or context.schema.get_field(name)
        if fld is None:
            restify.log.debug(f"Invalid field {name}")
            continue
        selected.append(fld)
    if not selected:
        return query
    context.selected_fields = tuple(fld.name for fld in selected)
    return query.options(load_only(*[getattr(context.model, fld.name) for fld in selected]))


def apply_scope(query, context):
    """
    Hide the soft deleted rows unless the request asked for them
    """
    criterion = getattr(context.model, "_s_soft_delete_criterion", None)
    if criterion is None or context.unscoped:
        return query
    return query.filter(criterion())


def apply_filters(query, context, load=True, order=True, group=True, select=True, limit=True, scoped=True):
    """
    Apply the request parameters to `query`, the flags switch off the parts that don't apply
    (eg. bulk updates can't be ordered or limited)

    :param query: sqla query of the context model
    :param context: request Context
    :return: sqla query
    """
    if load:
        query = apply_preload(query, context, association_paths(context))
    if order:
        query = apply_order(query, context)
    if group:
        query = apply_group_by(query, context)
    if select:
        query = apply_fields(query, context)
    if load:
        query = apply_preload(query, context, csv_param(context, "join"))

    query = apply_filter_clauses(query, context, parse_filters(context.request.raw_query_string))
    query = apply_conditions(query, context)
    context.has_predicates = query.whereclause is not None
    if scoped:
        query = apply_scope(query, context)

    if limit:
        offset = context.request.args.get("offset", 0, type=int)
        if offset > 0:
            query = query.offset(offset)
        row_limit = context.request.args.get("limit", 0, type=int)
        if row_limit > 0:
            query = query.limit(row_limit)

    if context.request.param("debug") == restify.RESTIFY.SQL_DEBUG_VALUE:
        restify.log.info(f"SQL: {query.statement}")
    return query


def filter_primary_key(query, context):
    """
    Restrict `query` to the row identified by the url path parameters (composite keys are ANDed)
    """
    for fld in context.schema.primary_fields:
        value = parse_attr(fld.sql_column, context.path_params.get(fld.column))
        query = query.filter(getattr(context.model, fld.name) == value)
    return query


def guard_unsafe(context):
    """
    :raises UnsafeRequestError: the query has no predicate and the request isn't flagged `unsafe=1`
    """
    if not context.has_predicates and not context.request.is_unsafe:
        raise UnsafeRequestError()
