"""No-store cache headers for dynamic responses."""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from typing import Callable

NO_STORE_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}


class NoStoreMiddleware(BaseHTTPMiddleware):
    """
    Stop browsers and intermediaries from caching responses.

    A cached 302 would keep sending scanners to a destination after the link
    expired or was deleted.
    """

    async def dispatch(self, request: Request, call_next: Callable):
        response = await call_next(request)
        for name, value in NO_STORE_HEADERS.items():
            response.headers[name] = value
        return response


def add_no_store_middleware(app):
    app.add_middleware(NoStoreMiddleware)
