"""Request-scoped context.

- ``request_var``: the ``Request`` being dispatched in the current task.

Set by the dispatcher for the duration of one request and reset when it
finishes, so concurrent requests never see each other's value.
"""

from contextvars import ContextVar

from wren.http.request import Request

request_var: ContextVar[Request] = ContextVar("wren_request")


def get_request() -> Request:
    """Return the current request.

    Raises ``LookupError`` outside of request handling.
    """
    return request_var.get()
