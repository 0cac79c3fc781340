"""
Filter grammar

Filters are query string parameters of the form `column[operator]=value`, eg.

    /admin/rest/product/all?unit_price[gte]=50&name[contains]=lamp&created_at[between]=2024-01-01,2024-02-01

The column is the database column name, the value is url-unescaped.
All the clauses are ANDed, their order doesn't matter.

Supported operators:
    eq, neq, gt, lt, gte, lte     comparison
    in, notin                     comma separated values
    between                       two comma separated timestamps
    contains                      LIKE %value%, `%` and `_` in the value match literally
    isnull, notnull               the value is ignored
    search                        fulltext MATCH

A column type may implement its own filtering with a `rest_filter(context, query, clause)` method
returning the filtered query.
"""
import operator
import re
from collections import namedtuple
from urllib.parse import unquote_plus
import restify
from .attr_parse import parse_attr, parse_datetime
from .errors import BadRequestError, ColumnNotExistError, GenericError, InvalidFilterError

DATE_PREFIX_RE = re.compile(r"^\d{4}[-/]\d{1,2}[-/]\d{1,2}")
FILTER_KEY_RE = re.compile(r"^(?P<column>[A-Za-z_][A-Za-z0-9_\-]*)\[(?P<operator>[A-Za-z]+)\]$")

FilterClause = namedtuple("FilterClause", ["column", "operator", "value"])

COMPARISONS = {
    "eq": operator.eq,
    "neq": operator.ne,
    "gt": operator.gt,
    "lt": operator.lt,
    "gte": operator.ge,
    "lte": operator.le,
}

OPERATORS = tuple(COMPARISONS) + ("in", "notin", "between", "contains", "isnull", "notnull", "search")

# operators of the forced conditions registered with Context.set_condition
CONDITION_OPERATORS = {
    "=": operator.eq,
    "==": operator.eq,
    "!=": operator.ne,
    "<>": operator.ne,
    ">": operator.gt,
    "<": operator.lt,
    ">=": operator.ge,
    "<=": operator.le,
    "IN": lambda column, value: column.in_(value),
    "NOT IN": lambda column, value: column.not_in(value),
    "LIKE": lambda column, value: column.like(value),
    "IS NULL": lambda column, value: column.is_(None),
    "IS NOT NULL": lambda column, value: column.is_not(None),
}


def parse_filters(query_string: str):
    """
    Extract the filter clauses from a raw query string.
    Parameters that don't have the `column[operator]` form are ignored.

    :param query_string: undecoded query string
    :return: list of FilterClause
    :raises InvalidFilterError: unsupported operator, the whole request fails
    """
    clauses = []
    for pair in query_string.split("&"):
        if not pair:
            continue
        key, _, value = pair.partition("=")
        match = FILTER_KEY_RE.match(unquote_plus(key))
        if not match:
            continue
        op = match.group("operator").lower()
        if op not in OPERATORS:
            raise InvalidFilterError(f"invalid filter condition {match.group('operator')}")
        clauses.append(FilterClause(match.group("column"), op, unquote_plus(value)))
    return clauses


def split_values(value: str):
    return value.split(",")


def between_values(value: str):
    """
    :return: (start, end) datetimes of a between filter value
    """
    values = split_values(value)
    if len(values) != 2:
        raise BadRequestError(f"invalid filter value for between operator, expected 2 values got {len(values)}")
    for item in values:
        if not DATE_PREFIX_RE.match(item.strip()):
            raise BadRequestError(f"invalid filter value for between operator, expected date got {item}")
    try:
        return tuple(parse_datetime(item.strip()) for item in values)
    except ValueError as exc:
        raise BadRequestError(f"invalid filter value for between operator, {exc}")


def clause_expression(column_attr, sql_column, clause):
    """
    :return: the sqla expression of a built-in filter clause, values are bound parameters
    """
    op, value = clause.operator, clause.value
    if op in COMPARISONS:
        return COMPARISONS[op](column_attr, parse_attr(sql_column, value))
    if op == "in":
        return column_attr.in_([parse_attr(sql_column, item) for item in split_values(value)])
    if op == "notin":
        return column_attr.not_in([parse_attr(sql_column, item) for item in split_values(value)])
    if op == "between":
        start, end = between_values(value)
        return column_attr.between(start, end)
    if op == "contains":
        return column_attr.contains(value, autoescape=True)
    if op == "isnull":
        return column_attr.is_(None)
    if op == "notnull":
        return column_attr.is_not(None)
    if op == "search":
        return column_attr.match(value)
    raise InvalidFilterError(f"invalid filter condition {op}")  # pragma: no cover


def apply_filter_clauses(query, context, clauses):
    """
    Add the client filters to `query`

    :raises ColumnNotExistError: a clause references an unknown column
    """
    model = context.model
    soft_delete_column = getattr(model, "soft_delete_column", None)
    for clause in clauses:
        fld = context.schema.field_by_column(clause.column)
        if fld is None:
            raise ColumnNotExistError(f"column does not exist: {clause.column}")
        if not fld.filterable:
            raise InvalidFilterError(f"column {clause.column} is not filterable")

        if clause.operator in ("isnull", "notnull") and clause.column == soft_delete_column:
            # the client asks for the soft deleted rows explicitly
            context.unscoped = True

        custom_filter = getattr(fld.sql_column.type, "rest_filter", None)
        if callable(custom_filter):
            query = custom_filter(context, query, clause)
            continue

        query = query.filter(clause_expression(getattr(model, fld.name), fld.sql_column, clause))
    return query


def apply_conditions(query, context):
    """
    Add the forced conditions of the context, these always come after the client filters
    """
    model = context.model
    for condition in context.conditions:
        fld = context.schema.get_field(condition.field) or context.schema.field_by_column(condition.field)
        if fld is None:
            raise GenericError(f"Invalid condition column {condition.field}")
        build = CONDITION_OPERATORS.get(condition.op.strip().upper())
        if build is None:
            raise GenericError(f"Invalid condition operator {condition.op}")
        restify.log.debug(f"Condition {context.schema.table}.{fld.column} {condition.op} {condition.value}")
        query = query.filter(build(getattr(model, fld.name), condition.value))
    return query
