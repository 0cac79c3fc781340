"""
Column validation rules

Rules are declared in the column info dict, comma separated, rule arguments follow a "=":

    email = Column(String(128), info={"validation": "required,email"})
    code = Column(String(8), info={"validation": "alphanumeric,len=8"})
    state = Column(String(8), info={"validation": "oneof=new paid shipped"})

Empty values only fail the `required` rule, the other rules are skipped for them.
"""
import re
import uuid
from urllib.parse import urlparse
import restify
from .adapter import is_zero
from .errors import ValidationError
from .schema import get_schema

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
ALPHA_RE = re.compile(r"^[A-Za-z]+$")
ALPHANUMERIC_RE = re.compile(r"^[A-Za-z0-9]+$")
NUMERIC_RE = re.compile(r"^[-+]?\d+(\.\d+)?$")
SQL_INJECTION_RE = re.compile(
    r"(\b(union|select|insert|update|delete|drop|alter|truncate|exec)\b.+\b(from|into|table|where|set)\b)|(--)|(/\*)|(;\s*\w)",
    re.IGNORECASE,
)
XSS_RE = re.compile(r"(<\s*/?\s*script)|(javascript\s*:)|(\bon\w+\s*=)|(<\s*iframe)", re.IGNORECASE)


def _size(value):
    if isinstance(value, (str, bytes, list, tuple, dict)):
        return len(value)
    return value


def _number(arg):
    return float(arg) if "." in arg else int(arg)


def check_required(value, arg):
    if is_zero(value) or (isinstance(value, str) and not value.strip()):
        return "is required"
    return None


def check_email(value, arg):
    return None if EMAIL_RE.match(str(value)) else "must be a valid email address"


def check_alpha(value, arg):
    return None if ALPHA_RE.match(str(value)) else "must contain letters only"


def check_alphanumeric(value, arg):
    return None if ALPHANUMERIC_RE.match(str(value)) else "must contain letters and digits only"


def check_numeric(value, arg):
    return None if NUMERIC_RE.match(str(value)) else "must be numeric"


def check_min(value, arg):
    return None if _size(value) >= _number(arg) else f"must be at least {arg}"


def check_max(value, arg):
    return None if _size(value) <= _number(arg) else f"must be at most {arg}"


def check_len(value, arg):
    return None if _size(value) == _number(arg) else f"must have a length of {arg}"


def check_oneof(value, arg):
    options = arg.split()
    return None if str(value) in options else f"must be one of {', '.join(options)}"


def check_url(value, arg):
    parsed = urlparse(str(value))
    return None if parsed.scheme in ("http", "https") and parsed.netloc else "must be a valid url"


def check_uuid(value, arg):
    try:
        uuid.UUID(str(value))
    except ValueError:
        return "must be a valid uuid"
    return None


def check_no_sql_injection(value, arg):
    return "contains forbidden sql" if SQL_INJECTION_RE.search(str(value)) else None


def check_no_xss(value, arg):
    return "contains forbidden markup" if XSS_RE.search(str(value)) else None


RULES = {
    "required": check_required,
    "email": check_email,
    "alpha": check_alpha,
    "alphanumeric": check_alphanumeric,
    "numeric": check_numeric,
    "min": check_min,
    "max": check_max,
    "len": check_len,
    "oneof": check_oneof,
    "url": check_url,
    "uuid": check_uuid,
    "no_sql_injection": check_no_sql_injection,
    "no_xss": check_no_xss,
}


def parse_rules(rules: str):
    """
    :return: list of (rule name, argument) tuples
    """
    result = []
    for rule in rules.split(","):
        rule = rule.strip()
        if not rule:
            continue
        name, _, arg = rule.partition("=")
        result.append((name.strip().lower(), arg.strip()))
    return result


def validate_field(name, value, rules):
    """
    :return: list of {"field", "error"} dicts for the rules `value` doesn't satisfy
    """
    errors = []
    for rule, arg in parse_rules(rules):
        check = RULES.get(rule)
        if check is None:
            restify.log.warning(f"Unknown validation rule {rule} for {name}")
            continue
        if rule != "required" and is_zero(value):
            continue
        try:
            message = check(value, arg)
        except (TypeError, ValueError):
            message = f"invalid value for rule {rule}"
        if message:
            errors.append({"field": name, "error": message})
    return errors


def get_validation_errors(obj, non_zero_only=False):
    """
    Check the column validation rules of `obj`

    :param non_zero_only: only check the fields holding a non-zero value (partial updates)
    :return: list of {"field", "error"} dicts
    """
    errors = []
    for fld in get_schema(type(obj)).fields:
        if not fld.validation:
            continue
        value = getattr(obj, fld.name)
        if non_zero_only and is_zero(value):
            continue
        errors.extend(validate_field(fld.name, value, fld.validation))
    return errors


def validate(obj, non_zero_only=False):
    """
    :raises ValidationError: (412) with all the failures of `obj`
    """
    errors = get_validation_errors(obj, non_zero_only=non_zero_only)
    if errors:
        raise ValidationError(errors)
