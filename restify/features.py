"""
Capability markers: mix these into a model class to switch off the corresponding endpoints

    class Product(RestifyBase, DB.Model, DisableSet):
        ...
"""
from dataclasses import dataclass


class DisableCreate:
    """No CREATE and BATCH+CREATE endpoints"""


class DisableUpdate:
    """No UPDATE and BATCH+UPDATE endpoints"""


class DisableList:
    """No ALL and PAGINATE endpoints"""


class DisableDelete:
    """No DELETE and BATCH+DELETE endpoints"""


class DisableSet:
    """No SET endpoint"""


class DisableAggregate:
    """No AGGREGATE endpoint"""


@dataclass(frozen=True)
class Features:
    create: bool = True
    update: bool = True
    list: bool = True
    delete: bool = True
    set: bool = True
    aggregate: bool = True


def get_features(model) -> Features:
    """
    :return: the enabled features of `model`, resolved from its marker classes
    """
    return Features(
        create=not issubclass(model, DisableCreate),
        update=not issubclass(model, DisableUpdate),
        list=not issubclass(model, DisableList),
        delete=not issubclass(model, DisableDelete),
        set=not issubclass(model, DisableSet),
        aggregate=not issubclass(model, DisableAggregate),
    )
