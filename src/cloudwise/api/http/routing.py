"""Route classes with non-default body handling."""

from collections.abc import Callable, Coroutine
from typing import Any

from fastapi import Request, Response
from fastapi.routing import APIRoute
from starlette.requests import ClientDisconnect


class RawBodyRoute(APIRoute):
    """Route that stores the untouched request bytes on ``request.state.raw_body``.

    Endpoints using it must not declare a body parameter; they read the
    captured bytes instead of a parsed body.
    """

    def get_route_handler(self) -> Callable[[Request], Coroutine[Any, Any, Response]]:
        original_handler = super().get_route_handler()

        async def raw_body_handler(request: Request) -> Response:
            try:
                request.state.raw_body = await request.body()
            except ClientDisconnect:
                request.state.raw_body = None
            return await original_handler(request)

        return raw_body_handler
