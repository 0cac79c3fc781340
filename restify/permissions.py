"""
Permission gate

Every endpoint asks for a composite permission, eg. "VIEW+ALL". The permission is split into
its tokens and handed to the model's `rest_permission(permissions, context)` method or,
when the model doesn't implement one, to the API default permission handler
`handler(permissions, context)`. Without either, access is granted.
"""
from .errors import PermissionDeniedError

PERMISSION_MODEL_INFO = "VIEW+MODEL_INFO"
PERMISSION_CREATE = "CREATE"
PERMISSION_UPDATE = "UPDATE"
PERMISSION_BATCH_CREATE = "BATCH+CREATE"
PERMISSION_BATCH_UPDATE = "BATCH+UPDATE"
PERMISSION_DELETE = "DELETE"
PERMISSION_BATCH_DELETE = "BATCH+DELETE"
PERMISSION_VIEW_GET = "VIEW+GET"
PERMISSION_VIEW_ALL = "VIEW+ALL"
PERMISSION_AGGREGATE = "VIEW+AGGREGATE"
PERMISSION_VIEW_PAGINATION = "VIEW+PAGINATION"
PERMISSION_SET = "SET"


class Permissions(list):
    """
    The tokens of a composite permission

        Permissions.from_permission("VIEW+ALL") == ["VIEW", "ALL"]
    """

    @classmethod
    def from_permission(cls, permission: str) -> "Permissions":
        return cls(token for token in permission.split("+") if token)

    def _tokens(self):
        return {token.upper() for token in self}

    def has(self, *tokens) -> bool:
        """
        :return: True if any of `tokens` is part of the permission (case insensitive)
        """
        own = self._tokens()
        return any(token.upper() in own for token in tokens)

    def has_all(self, *tokens) -> bool:
        """
        :return: True if all of `tokens` are part of the permission (case insensitive)
        """
        own = self._tokens()
        return all(token.upper() in own for token in tokens)

    def __str__(self):
        return "+".join(self)


def check_permission(permission, obj, context) -> bool:
    """
    :param permission: composite permission, eg. PERMISSION_VIEW_ALL
    :param obj: candidate object, the model rest_permission method is called on it
    :param context: request Context
    :return: whether the request is allowed
    """
    permissions = Permissions.from_permission(permission)
    rest_permission = getattr(obj, "rest_permission", None)
    if callable(rest_permission):
        return bool(rest_permission(permissions, context))

    handler = getattr(context.api, "permission_handler", None)
    if handler is not None:
        return bool(handler(permissions, context))

    return True


def authorize(permission, obj, context) -> None:
    """
    :raises PermissionDeniedError: the permission gate refused the request
    """
    if not check_permission(permission, obj, context):
        raise PermissionDeniedError()
