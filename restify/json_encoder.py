# restify to json encoding

import datetime
import decimal
import enum
from flask.json.provider import DefaultJSONProvider
from uuid import UUID
import restify
from .base import RestifyBase
from .config import is_debug


class RestifyJSONProvider(DefaultJSONProvider):
    """
    Flask JSON encoding of the response envelopes
    """

    sort_keys = False

    # pylint: disable=too-many-return-statements,arguments-differ,method-hidden
    def default(self, obj, **kwargs):
        """
        override the default json encoding
        :param obj: object to be encoded
        :return: encoded/serialized object
        """
        if obj is None:
            return None
        if isinstance(obj, RestifyBase):
            # objects set on the response by hooks
            return obj.to_dict()
        if isinstance(obj, datetime.timedelta):
            return str(obj)
        if isinstance(obj, datetime.datetime):
            return obj.isoformat(" ")
        if isinstance(obj, (datetime.date, datetime.time)):
            return obj.isoformat()
        if isinstance(obj, (set, tuple)):
            return list(obj)
        if isinstance(obj, UUID):
            return str(obj)
        if isinstance(obj, decimal.Decimal):
            return float(obj)
        if isinstance(obj, enum.Enum):
            return obj.value
        if isinstance(obj, bytes):
            if obj == b"":
                return ""
            restify.log.debug("RestifyJSONProvider: serializing bytes obj")
            return obj.hex()

        restify.log.warning(f'JSON Encoding Error: Unknown object type "{type(obj)}" for {obj}')
        if not is_debug():
            return {"error": "RestifyJSONProvider invalid object"}
        return str(obj)
