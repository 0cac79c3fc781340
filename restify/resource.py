"""
Resources and endpoints

A Resource binds a model to its schema, its features and the list of generated endpoints.
Resources are created by RestifyAPI.expose_object and aren't modified afterwards.
"""
import restify
from . import handlers
from .config import get_config
from .context import Context
from .errors import RestifyError
from .features import get_features
from .reconcile import set_objects
from .schema import get_schema

METHOD_GET = "GET"
METHOD_POST = "POST"
METHOD_PUT = "PUT"
METHOD_PATCH = "PATCH"
METHOD_DELETE = "DELETE"


class Endpoint:
    """
    A generated endpoint: HTTP method + url relative to the resource url

    :param url: relative url ("", "all", "batch", ...), the primary key segments are appended when pk_url is set
    :param handler: callable receiving the request Context
    """

    def __init__(
        self,
        resource,
        name,
        method,
        url,
        handler,
        description="",
        pk_url=False,
        accept_data=False,
        batch=False,
        filterable=False,
        pagination=False,
    ) -> None:
        self.resource = resource
        self.name = name
        self.method = method
        self.url = url
        self.handler = handler
        self.description = description
        self.pk_url = pk_url
        self.accept_data = accept_data
        self.batch = batch
        self.filterable = filterable
        self.pagination = pagination

    @property
    def rule(self) -> str:
        """
        :return: the flask url rule, eg. /admin/rest/order_item/<order_id>/<product_id>
        """
        segments = [self.resource.url]
        if self.url:
            segments.append(self.url)
        if self.pk_url:
            segments.extend(f"<{fld.column}>" for fld in self.resource.schema.primary_fields)
        return "/".join(segments)

    @property
    def absolute_url(self) -> str:
        return self.rule

    def dispatch(self, request, path_params=None):
        """
        Serve a request: create the context, run the handler and collect the envelope.
        The first RestifyError raised by the pipeline becomes the error of the response.

        :return: (response envelope dict, http status code)
        """
        context = Context(self, request, path_params)
        try:
            self.handler(context)
        except RestifyError as exc:
            context.set_error(exc)
        return context.prepare_response(), context.code

    def to_dict(self):
        return {
            "name": self.name,
            "method": self.method,
            "url": self.url,
            "absolute_url": self.absolute_url,
            "description": self.description,
            "pk_url": self.pk_url,
            "accept_data": self.accept_data,
            "batch": self.batch,
            "filterable": self.filterable,
            "pagination": self.pagination,
        }

    def __repr__(self):
        return f"<Endpoint {self.name} {self.method} {self.rule}>"


class Resource:
    """
    :param api: the RestifyAPI, it holds the hook registry and the default permission handler
    :param model: mapped RestifyBase subclass
    """

    def __init__(self, api, model, url_prefix=None) -> None:
        self.api = api
        self.model = model
        self.schema = get_schema(model)
        self.features = get_features(model)
        prefix = get_config("API_PREFIX") if url_prefix is None else url_prefix
        self.url = f"{prefix.rstrip('/')}/{self.table}"
        self.endpoints = []
        self._create_endpoints()

    @property
    def table(self) -> str:
        return self.schema.table

    @property
    def name(self) -> str:
        return self.schema.name

    def add_endpoint(self, name, method, url, handler, **kwargs) -> Endpoint:
        endpoint = Endpoint(self, name, method, url, handler, **kwargs)
        self.endpoints.append(endpoint)
        return endpoint

    def _create_endpoints(self):
        features = self.features
        self.add_endpoint("MODEL INFO", METHOD_GET, "", handlers.model_info, description="return information of the model")
        if features.set:
            self.add_endpoint(
                "SET", METHOD_POST, "set", set_objects, description="set objects in database", accept_data=True, batch=True, filterable=True
            )
        if features.list:
            self.add_endpoint("ALL", METHOD_GET, "all", handlers.get_all, description="return all objects in one call", filterable=True)
            self.add_endpoint(
                "PAGINATE", METHOD_GET, "paginate", handlers.paginate, description="paginate objects", filterable=True, pagination=True
            )
            self.add_endpoint("GET", METHOD_GET, "", handlers.get, description="get single object using primary key", pk_url=True)
        if features.create:
            self.add_endpoint("CREATE", METHOD_PUT, "", handlers.create, description="create an object using given values", accept_data=True)
            self.add_endpoint(
                "BATCH.CREATE", METHOD_PUT, "batch", handlers.batch_create, description="create a batch of objects", accept_data=True, batch=True
            )
        if features.update:
            self.add_endpoint(
                "BATCH.UPDATE",
                METHOD_PATCH,
                "batch",
                handlers.batch_update,
                description="update the objects matching the filters",
                accept_data=True,
                batch=True,
                filterable=True,
            )
            self.add_endpoint(
                "UPDATE", METHOD_PATCH, "", handlers.update, description="update the given fields of an object", pk_url=True, accept_data=True
            )
            self.add_endpoint(
                "REPLACE", METHOD_PUT, "", handlers.replace, description="update all the fields of an object", pk_url=True, accept_data=True
            )
        if features.delete:
            self.add_endpoint(
                "BATCH.DELETE", METHOD_DELETE, "batch", handlers.batch_delete, description="delete the objects matching the filters", batch=True, filterable=True
            )
            self.add_endpoint("DELETE", METHOD_DELETE, "", handlers.delete, description="delete an object using its primary key", pk_url=True)
        if features.aggregate:
            self.add_endpoint(
                "AGGREGATE", METHOD_GET, "aggregate", handlers.aggregate, description="aggregate the objects matching the filters", filterable=True
            )

    def info(self):
        """
        :return: the model description returned by the MODEL INFO endpoint
        """
        return {
            "name": self.name,
            "id": self.table,
            "fields": [
                {"label": fld.label, "name": fld.column, "type": fld.kind, "default": fld.default, "pk": fld.primary_key}
                for fld in self.schema.fields
                if fld.name not in getattr(self.model, "exclude_attrs", [])
            ],
            "endpoints": [endpoint.to_dict() for endpoint in self.endpoints],
        }

    def __repr__(self):
        return f"<Resource {self.name} {self.url}>"


class ResourceRegistry(dict):
    """
    Registered resources, keyed by table name
    """

    def register(self, resource: Resource) -> Resource:
        if resource.table in self:
            restify.log.warning(f"Resource {resource.table} registered twice, replacing {self[resource.table]}")
        self[resource.table] = resource
        return resource

    def describe(self):
        return [{"name": resource.name, "id": resource.table, "url": resource.url} for resource in self.values()]
