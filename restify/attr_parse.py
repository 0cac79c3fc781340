import datetime
import decimal
import uuid
from dateutil import parser as date_parser
from dateutil.parser import ParserError
import sqlalchemy
import restify
from .errors import BadRequestError


def parse_datetime(value):
    """
    Parse a timestamp in one of the common representations ("2024-01-31 10:00:00", iso8601, ...)

    :raises ValueError: the value can't be parsed
    """
    if isinstance(value, datetime.datetime):
        return value
    try:
        return date_parser.parse(str(value))
    except (ParserError, OverflowError) as exc:
        raise ValueError(f"expected date got {value}") from exc


def parse_attr(column, attr_val):
    """
    Parse the supplied `attr_val` so it can be saved in the SQLAlchemy `column`

    :param column: SQLAlchemy column
    :param attr_val: json attribute value or query string value
    :return: processed value
    :raises BadRequestError: the value can't be converted to the column type
    """
    if attr_val is None:
        return attr_val

    try:
        python_type = column.type.python_type
    except NotImplementedError as exc:
        # custom column types do their own parsing
        restify.log.debug(exc)
        return attr_val

    # skip type coercion on JSON columns, since they could be anything
    if isinstance(column.type, sqlalchemy.types.JSON):
        return attr_val

    try:
        if python_type is datetime.datetime:
            return parse_datetime(attr_val)
        if python_type is datetime.date:
            return parse_datetime(attr_val).date()
        if python_type is datetime.time:
            return attr_val if isinstance(attr_val, datetime.time) else datetime.time.fromisoformat(str(attr_val))
        if python_type is bool:
            if isinstance(attr_val, str):
                return attr_val.lower() in ("1", "true", "yes", "on")
            return bool(attr_val)
        if python_type is uuid.UUID:
            return attr_val if isinstance(attr_val, uuid.UUID) else uuid.UUID(str(attr_val))
        if python_type is int and isinstance(attr_val, float) and not attr_val.is_integer():
            raise ValueError(f"expected an integer got {attr_val}")
        if python_type is decimal.Decimal:
            return decimal.Decimal(str(attr_val))
        if python_type is str and isinstance(attr_val, (dict, list)):
            raise ValueError(f"expected a string got {type(attr_val).__name__}")
        return python_type(attr_val)
    except (ValueError, TypeError, decimal.InvalidOperation) as exc:
        raise BadRequestError(f'invalid value for {column.name}: "{attr_val}" ({exc})')
