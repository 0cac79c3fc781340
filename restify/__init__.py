# flake8: noqa: F401
#
# restify: generate REST endpoints (CRUD, batch, set, paginate, filter, aggregate)
# for Flask-SQLAlchemy models
#
from .restify_init import DB, log, RESTIFY, RestifyRequest
from .errors import (
    RestifyError,
    BadRequestError,
    UnsafeRequestError,
    ColumnNotExistError,
    InvalidFilterError,
    PermissionDeniedError,
    NotFoundError,
    ValidationError,
    HookError,
    GenericError,
)
from .base import RestifyBase, SoftDeleteMixin
from .features import DisableCreate, DisableUpdate, DisableList, DisableDelete, DisableSet, DisableAggregate
from .permissions import Permissions
from .context import Context
from .restify_api import RestifyAPI
from .__about__ import __version__, __description__

__all__ = (
    "__version__",
    "__description__",
    #
    "RestifyAPI",
    "RESTIFY",
    "DB",
    "log",
    # db:
    "RestifyBase",
    "SoftDeleteMixin",
    # features:
    "DisableCreate",
    "DisableUpdate",
    "DisableList",
    "DisableDelete",
    "DisableSet",
    "DisableAggregate",
    # permissions and hooks:
    "Permissions",
    "Context",
    # Errors:
    "RestifyError",
    "BadRequestError",
    "UnsafeRequestError",
    "ColumnNotExistError",
    "InvalidFilterError",
    "PermissionDeniedError",
    "NotFoundError",
    "ValidationError",
    "HookError",
    "GenericError",
    # request
    "RestifyRequest",
)
