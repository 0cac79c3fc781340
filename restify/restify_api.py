# flask_restful API subclass
from functools import wraps
from http import HTTPStatus
import werkzeug
from flask import jsonify, make_response, request
from flask_restful import Api, Resource as FlaskResource
from flask.app import Flask
from typing import Callable
import restify
from . import tx
from .context import RestResponse
from .config import get_config, is_debug
from .hooks import HookRegistry
from .json_encoder import RestifyJSONProvider
from .resource import Resource, ResourceRegistry

HTTP_METHODS = ["GET", "POST", "PATCH", "DELETE", "PUT"]


class RestifyView(FlaskResource):
    """
    flask-restful view serving the endpoints that share a url rule,
    `endpoints` maps the HTTP method to the Endpoint
    """

    endpoints = {}

    def dispatch_endpoint(self, **path_params):
        endpoint = self.endpoints[request.method]
        return endpoint.dispatch(request, path_params)


class RestifyAPI(Api):
    """
    Subclass of the flask_restful API class where we add the expose_object method,
    this method creates the API url endpoints of a RestifyBase model

    :param app: Flask application
    :param permission_handler: default permission handler, `handler(permissions, context) -> bool`
    :param kwargs: RESTIFY configuration settings, eg. API_PREFIX="/api"
    """

    def __init__(self, app: Flask, permission_handler: Callable = None, **kwargs) -> None:
        app_db = kwargs.pop("app_db", None)
        restify.RESTIFY(app, app_db=app_db, **kwargs)
        super().__init__(app)
        app.json = RestifyJSONProvider(app)
        self.resources = ResourceRegistry()
        self.hooks = HookRegistry()
        self.permission_handler = permission_handler

        # no hooks can be registered once we're serving requests
        @app.before_request
        def freeze_hooks():
            if not self.hooks.frozen:
                self.hooks.freeze()

        self.expose_models_endpoint()

    def set_permission_handler(self, handler: Callable) -> None:
        """
        Install the permission handler used for models that don't implement rest_permission
        """
        self.permission_handler = handler

    def expose_object(self, model, url_prefix=None) -> Resource:
        """This methods creates the API url endpoints for the RestifyBase model
        :param model: RestifyBase subclass that we would like to expose
        :param url_prefix: url prefix, defaults to the API_PREFIX setting
        :return: the registered Resource

        for every url rule a class of the form

        @api_decorator
        class Product_API_paginate(RestifyView):
            endpoints = {"GET": <Endpoint PAGINATE>}

        is added as a flask-restful resource
        """
        resource = self.resources.register(Resource(self, model, url_prefix=url_prefix))

        rules = {}
        for endpoint in resource.endpoints:
            rules.setdefault(endpoint.rule, {})[endpoint.method] = endpoint

        for rule, endpoints in rules.items():
            properties = {"endpoints": endpoints, "model": model}
            for method in endpoints:
                properties[method.lower()] = RestifyView.dispatch_endpoint
            slug = rule.replace(resource.url, "").strip("/").replace("<", "").replace(">", "").replace("/", "_") or "resource"
            api_class_name = f"{resource.name}_API_{slug}"
            api_class = api_decorator(type(api_class_name, (RestifyView,), properties))
            restify.log.info(f"Exposing {model.__name__} on {rule}, methods: {', '.join(endpoints)}")
            self.add_resource(api_class, rule, endpoint=f"restify.{resource.table}.{slug}")

        return resource

    def expose(self, *models):
        return [self.expose_object(model) for model in models]

    def expose_models_endpoint(self):
        """
        GET {prefix}/models lists the exposed resources
        """
        api = self

        class ModelsView(FlaskResource):
            def get(self):
                response = RestResponse()
                response.set_list(api.resources.describe())
                return response.to_dict(), response.code

        prefix = get_config("API_PREFIX").rstrip("/")
        self.add_resource(api_decorator(ModelsView), f"{prefix}/models", endpoint="restify.models")


def api_decorator(cls):
    """Decorator for the API views:
        - add generic exception handling and the transaction boundary
        - add the model's custom decorators

    :param cls: The class that will be decorated (RestifyView subclass)
    :return: decorated class
    """
    model = getattr(cls, "model", None)
    for method_name in [m.lower() for m in HTTP_METHODS]:
        method = getattr(cls, method_name, None)
        if not method:
            continue

        decorated_method = http_method_decorator(method)
        # The user can add custom decorators, eg. for authentication
        for custom_decorator in getattr(model, "custom_decorators", []):
            decorated_method = custom_decorator(decorated_method)

        setattr(cls, method_name, decorated_method)
    return cls


def http_method_decorator(fun: Callable) -> Callable:
    """Decorator for the HTTP methods of the views
    - commit the database when the request succeeded and wrote something, rollback otherwise
    - convert the remaining exceptions to an error envelope

    :param fun: view method returning (envelope, status code)
    :return: wrapped fun
    """

    @wraps(fun)
    def method_wrapper(*args, **kwargs):
        token = tx.begin_request()
        try:
            result, status_code = fun(*args, **kwargs)
            if status_code < 400 and tx.should_commit():
                restify.DB.session.commit()
            elif status_code >= 400:
                restify.DB.session.rollback()
        except werkzeug.exceptions.HTTPException as exc:
            restify.DB.session.rollback()
            restify.log.error(exc.description)
            result, status_code = error_envelope(exc.description, exc.code)
        except Exception as exc:
            restify.log.exception(exc)
            restify.DB.session.rollback()
            message = str(exc) if is_debug() else "Logging Disabled"
            result, status_code = error_envelope(message, HTTPStatus.INTERNAL_SERVER_ERROR.value)
        finally:
            tx.end_request(token)

        return make_response(jsonify(result), status_code)

    return method_wrapper


def error_envelope(message, status_code):
    response = RestResponse()
    response.success = False
    response.error = message
    response.code = status_code
    return response.to_dict(), status_code
