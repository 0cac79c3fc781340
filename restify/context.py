"""
Per request state shared by the endpoint pipeline, the permission gate and the hooks
"""
from collections import namedtuple
from http import HTTPStatus
import restify
from . import tx
from .adapter import column_values, is_zero, new_instance
from .errors import RestifyError, ValidationError
from .schema import get_schema

Condition = namedtuple("Condition", ["field", "op", "value"])


class RestResponse:
    """
    The response envelope
    """

    def __init__(self) -> None:
        self.data = None
        self.success = True
        self.error = ""
        self.code = HTTPStatus.OK.value
        self.validation_error = []
        self.total = 1
        self.total_pages = 1
        self.current_page = 1
        self.size = 1
        self.offset = 0
        self.page_range = None

    def set_list(self, items):
        self.data = items
        self.total = self.size = len(items)

    def to_dict(self):
        result = {
            "data": self.data,
            "success": self.success,
            "error": self.error,
            "code": self.code,
            "validation_error": self.validation_error,
            "total": self.total,
            "total_pages": self.total_pages,
            "current_page": self.current_page,
            "size": self.size,
            "offset": self.offset,
        }
        if not self.success:
            result.update(data=None, total=0, total_pages=0, current_page=0, size=0, offset=0)
        elif self.page_range is not None:
            result["page_range"] = self.page_range
        return result


class Context:
    """
    Request context, created for every request by the endpoint dispatcher

    :param endpoint: the Endpoint being served
    :param request: the RestifyRequest
    :param path_params: primary key values from the url, keyed by column name
    """

    def __init__(self, endpoint, request, path_params=None) -> None:
        self.endpoint = endpoint
        self.resource = endpoint.resource
        self.api = self.resource.api
        self.model = self.resource.model
        self.schema = get_schema(self.model)
        self.request = request
        self.path_params = dict(path_params or {})
        self.conditions = []
        self._overrides = {}
        self.response = RestResponse()
        # set by the handlers: PATCH validates the non-zero fields only
        self.partial_update = False
        # set by the query builder: whether filters or conditions restrict the query
        self.has_predicates = False
        # include the soft deleted rows
        self.unscoped = False
        self.selected_fields = ()

    @property
    def session(self):
        return restify.DB.session

    @property
    def hooks(self):
        return self.api.hooks

    @property
    def code(self) -> int:
        return self.response.code

    @property
    def language(self) -> str:
        return self.request.language

    def create_object(self):
        """
        :return: a fresh instance of the context model
        """
        return new_instance(self.model)

    def set_condition(self, field, op, value):
        """
        Add a forced predicate, it's ANDed with the client filters and can't be bypassed

            context.set_condition("user_id", "=", current_user.id)
        """
        self.conditions.append(Condition(field, op, value))

    def override(self, value):
        """
        Force column values on the objects written by this request.
        Only the non-zero values of `value` are kept.

        :param value: instance of the context model or dict
        """
        if isinstance(value, dict):
            values = {k: v for k, v in value.items() if self.schema.get_field(k) is not None and not is_zero(v)}
        elif isinstance(value, self.model):
            values = column_values(value, non_zero=True)
        else:
            restify.log.warning(f"Ignoring override of type {type(value)} for {self.model}")
            return
        self._overrides.update(values)

    @property
    def overrides(self):
        return dict(self._overrides)

    def apply_overrides(self, obj):
        for name, value in self._overrides.items():
            setattr(obj, name, value)
        return obj

    def write_point(self):
        """
        Make the pending changes visible to the database, cfr. tx.write_point
        """
        tx.write_point(self.session)

    def shape(self, obj):
        """
        :return: serialized `obj`, restricted to the `fields` selected by the client
        """
        return obj.to_dict(fields=self.selected_fields)

    def set_error(self, exc: RestifyError):
        """
        Store the first error in the response envelope
        """
        if not self.response.success:
            return
        self.response.success = False
        self.response.code = exc.status_code
        self.response.error = exc.message
        if isinstance(exc, ValidationError):
            self.add_validation_errors(exc.errors)

    def add_validation_errors(self, errors):
        self.response.validation_error.extend(errors)

    def prepare_response(self):
        return self.response.to_dict()
