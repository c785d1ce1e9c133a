"""
Workboard blueprint registry.
"""

from flask import request
from werkzeug.routing import IntegerConverter

from workboard.core.exceptions import ValidationError
from workboard.utils.helpers import INT_MAX


class IdConverter(IntegerConverter):
    """``<int:...>`` bounded to the ``Integer`` column range.

    A larger path id fails to match the route, so the client gets the usual
    404 instead of an overflow from the database driver.
    """

    def __init__(self, map, *args, **kwargs):
        kwargs.setdefault("max", INT_MAX)
        super().__init__(map, *args, **kwargs)


def json_body() -> dict:
    """Return the JSON request body as a dict; an empty body reads as ``{}``.

    A body that is present but is not a JSON object is rejected with 400.
    """
    if not request.data:
        return {}
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data
