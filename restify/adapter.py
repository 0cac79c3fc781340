"""
Object adapter: the handlers never touch the mapped attributes directly, they go through
these helpers to build instances from request bodies, read and copy column values and
compare objects.

A "zero" value (None, "", 0, False, empty collections) means "not set" for the partial
update, override and Set equality semantics.
"""
from decimal import Decimal
from .attr_parse import parse_attr
from .errors import BadRequestError
from .schema import get_schema

# attribute holding the names of the fields that were present in the request body
PROVIDED_FIELDS = "_restify_provided"


def is_zero(value) -> bool:
    """
    :return: True if `value` is the zero value of its type
    """
    if value is None:
        return True
    if isinstance(value, (str, bytes, list, tuple, dict, set)):
        return len(value) == 0
    if isinstance(value, (bool, int, float, Decimal)):
        return value == 0
    return False


def new_instance(model):
    """
    :return: a fresh, zero-valued instance of `model`
    """
    return model()


def provided_fields(obj):
    return getattr(obj, PROVIDED_FIELDS, ())


def parse_object(model, payload, obj=None, partial=False, skip_pk=False):
    """
    Copy the column values from a request body onto an (new) instance of `model`.
    Relationships and unknown keys are ignored: associations are never created from a body.

    :param model: mapped class
    :param payload: decoded json object
    :param obj: existing instance to update, a new instance is created when None
    :param partial: only copy non-zero values
    :param skip_pk: ignore primary key values in the body
    :return: the instance
    """
    if not isinstance(payload, dict):
        raise BadRequestError("invalid request body: expected a json object")

    schema = get_schema(model)
    if obj is None:
        obj = new_instance(model)
    provided = []
    for fld in schema.fields:
        if fld.name not in payload:
            continue
        if skip_pk and fld.primary_key:
            continue
        value = parse_attr(fld.sql_column, payload[fld.name])
        if partial and is_zero(value):
            continue
        setattr(obj, fld.name, value)
        provided.append(fld.name)
    setattr(obj, PROVIDED_FIELDS, tuple(provided))
    return obj


def parse_objects(model, payload):
    """
    :return: list of new instances for a json array body
    """
    if not isinstance(payload, list):
        raise BadRequestError("invalid request body: expected a json array")
    return [parse_object(model, item) for item in payload]


def column_values(obj, non_zero=False, skip_pk=False):
    """
    :return: dict of the column attribute values of `obj`
    """
    result = {}
    for fld in get_schema(type(obj)).fields:
        if skip_pk and fld.primary_key:
            continue
        value = getattr(obj, fld.name)
        if non_zero and is_zero(value):
            continue
        result[fld.name] = value
    return result


def _same(left, right) -> bool:
    return left == right or str(left) == str(right)


def shallow_equal(existing, submitted, strict=False) -> bool:
    """
    Compare the column values of two instances, relationships are never compared.

    By default a field is skipped when it's zero on either side, so a submitted object
    that omits a field matches any stored value for it.
    In strict mode every field the client submitted is compared, zero values included.
    """
    if strict:
        names = provided_fields(submitted)
        return all(_same(getattr(existing, name), getattr(submitted, name)) for name in names)

    for fld in get_schema(type(existing)).fields:
        left = getattr(existing, fld.name)
        right = getattr(submitted, fld.name)
        if is_zero(left) or is_zero(right):
            continue
        if not _same(left, right):
            return False
    return True
