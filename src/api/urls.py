"""
URL builder adapter - Implements UrlGenerator protocol over Starlette routing.

Absolute URLs are derived from the incoming request, so links point at
the host the client actually used.
"""

from collections.abc import Mapping

from fastapi import Request


class RequestUrlGenerator:
    """Builds absolute URLs for named routes using ``request.url_for``."""

    def __init__(self, request: Request) -> None:
        self._request = request

    def generate(self, route_name: str, params: Mapping[str, str]) -> str:
        url = self._request.url_for(route_name)
        return str(url.include_query_params(**params))
