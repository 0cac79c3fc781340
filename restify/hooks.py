"""
Lifecycle hook chain

A HookRegistry holds the ordered callbacks of every phase. The built-in callbacks are installed
first: they dispatch to the optional model methods (on_before_create, validate_create, ...) and
run the column validation rules. Callbacks registered by the application apply to every model
and run after the built-ins of the same phase.

Callbacks are called as `callback(obj, context)`. The first failing callback stops the chain.
"""
import restify
from .errors import RestifyError, HookError
from .validation import validate

BEFORE_CREATE = "before_create"
BEFORE_UPDATE = "before_update"
BEFORE_SAVE = "before_save"
BEFORE_DELETE = "before_delete"
BEFORE_GET = "before_get"
AFTER_CREATE = "after_create"
AFTER_UPDATE = "after_update"
AFTER_SAVE = "after_save"
AFTER_DELETE = "after_delete"
AFTER_GET = "after_get"

PHASES = (
    BEFORE_CREATE,
    BEFORE_UPDATE,
    BEFORE_SAVE,
    BEFORE_DELETE,
    BEFORE_GET,
    AFTER_CREATE,
    AFTER_UPDATE,
    AFTER_SAVE,
    AFTER_DELETE,
    AFTER_GET,
)


def model_hook(method_name):
    """
    :return: callback calling the model method `method_name`, if the model implements it
    """

    def callback(obj, context):
        method = getattr(obj, method_name, None)
        if callable(method):
            method(context)

    callback.__name__ = method_name
    return callback


def validate_fields(obj, context):
    """Full validation for create and replace, only the non-zero fields for partial updates"""
    validate(obj, non_zero_only=bool(getattr(context, "partial_update", False)))


class HookRegistry:
    """
    Registry of the lifecycle callbacks, owned by the RestifyAPI.
    Registration is append-only and the registry is frozen once the app starts serving requests.
    """

    def __init__(self) -> None:
        self._callbacks = {phase: [] for phase in PHASES}
        self._frozen = False
        self._install_model_hooks()

    def _install_model_hooks(self):
        self.register(BEFORE_CREATE, model_hook("on_before_create"))
        self.register(BEFORE_CREATE, model_hook("validate_create"))
        self.register(BEFORE_CREATE, validate_fields)
        self.register(BEFORE_UPDATE, model_hook("on_before_update"))
        self.register(BEFORE_UPDATE, model_hook("validate_update"))
        self.register(BEFORE_UPDATE, validate_fields)
        self.register(BEFORE_SAVE, model_hook("on_before_save"))
        self.register(BEFORE_DELETE, model_hook("on_before_delete"))
        self.register(BEFORE_GET, model_hook("on_before_get"))
        self.register(AFTER_CREATE, model_hook("on_after_create"))
        self.register(AFTER_UPDATE, model_hook("on_after_update"))
        self.register(AFTER_SAVE, model_hook("on_after_save"))
        self.register(AFTER_DELETE, model_hook("on_after_delete"))
        self.register(AFTER_GET, model_hook("on_after_get"))

    def register(self, phase, callback):
        """
        Append `callback` to the callbacks of `phase`
        :return: callback, so this can be used as a decorator factory
        """
        if phase not in self._callbacks:
            raise ValueError(f"Unknown hook phase {phase}")
        if self._frozen:
            raise RuntimeError(f"Can't register {phase} hooks after the app started serving requests")
        self._callbacks[phase].append(callback)
        return callback

    def on(self, phase):
        """
        decorator:

            @api.hooks.on("before_save")
            def stamp(obj, context):
                ...
        """

        def decorator(callback):
            return self.register(phase, callback)

        return decorator

    def on_before_create(self, callback):
        return self.register(BEFORE_CREATE, callback)

    def on_before_update(self, callback):
        return self.register(BEFORE_UPDATE, callback)

    def on_before_save(self, callback):
        return self.register(BEFORE_SAVE, callback)

    def on_before_delete(self, callback):
        return self.register(BEFORE_DELETE, callback)

    def on_after_create(self, callback):
        return self.register(AFTER_CREATE, callback)

    def on_after_update(self, callback):
        return self.register(AFTER_UPDATE, callback)

    def on_after_save(self, callback):
        return self.register(AFTER_SAVE, callback)

    def on_after_delete(self, callback):
        return self.register(AFTER_DELETE, callback)

    def on_after_get(self, callback):
        return self.register(AFTER_GET, callback)

    def freeze(self):
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def callbacks(self, phase):
        return tuple(self._callbacks[phase])

    def run(self, context, obj, *phases):
        """
        Run the callbacks of `phases` on `obj`, in order

        :raises RestifyError: structured errors raised by a callback are propagated
        :raises HookError: (500) any other exception raised by a callback
        """
        for phase in phases:
            for callback in self._callbacks[phase]:
                try:
                    callback(obj, context)
                except RestifyError:
                    raise
                except Exception as exc:
                    restify.log.exception(exc)
                    raise HookError(str(exc) or type(exc).__name__)

    def before_create(self, context, obj):
        self.run(context, obj, BEFORE_CREATE, BEFORE_SAVE)

    def before_update(self, context, obj):
        self.run(context, obj, BEFORE_UPDATE, BEFORE_SAVE)

    def before_delete(self, context, obj):
        self.run(context, obj, BEFORE_DELETE)

    def before_get(self, context, obj):
        self.run(context, obj, BEFORE_GET)

    def after_create(self, context, obj):
        self.run(context, obj, AFTER_CREATE, AFTER_SAVE)

    def after_update(self, context, obj):
        self.run(context, obj, AFTER_UPDATE, AFTER_SAVE)

    def after_delete(self, context, obj):
        self.run(context, obj, AFTER_DELETE)

    def after_get(self, context, obj):
        self.run(context, obj, AFTER_GET)
