"""FastAPI route glue for generated handlers.

Generated handlers take a ``ResourceRequest``; ``endpoint`` wraps one so
FastAPI can call it with its own ``Request``. ``default_routes`` lists the
routes every resource gets unless it declares its own.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable
from typing import TYPE_CHECKING, Any

from fastapi import APIRouter, Request, Response
from pydantic import BaseModel, ConfigDict

from endpoints.request import ResourceRequest

if TYPE_CHECKING:
    from endpoints.controller import Controller


class Route(BaseModel):
    """One HTTP route bound to a generated handler."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    method: str
    path: str
    handler: Callable[..., Any]


async def to_resource_request(request: Request) -> ResourceRequest:
    """Build a ``ResourceRequest`` from a Starlette request."""
    return ResourceRequest(
        method=request.method,
        path_params={key: str(value) for key, value in request.path_params.items()},
        query=dict(request.query_params),
        content_type=request.headers.get("content-type"),
        body=await request.body(),
    )


def endpoint(handler: Callable[[ResourceRequest], Awaitable[Any]]) -> Callable[[Request], Awaitable[Response]]:
    """Wrap a generated handler as a FastAPI endpoint."""

    async def route(request: Request) -> Response:
        return await handler(await to_resource_request(request))

    route.__name__ = getattr(handler, "__name__", "route")
    return route


def default_routes(controller: Controller) -> list[Route]:
    """Standard JSON:API routes for a resource, relative to its prefix."""
    return [
        Route(method="POST", path="", handler=controller.create()),
        Route(method="GET", path="", handler=controller.read()),
        Route(method="GET", path="/{id}", handler=controller.read()),
        Route(method="GET", path="/{id}/{relation}", handler=controller.read(mode="related")),
        Route(method="PATCH", path="/{id}", handler=controller.update()),
        Route(method="DELETE", path="/{id}", handler=controller.destroy()),
    ]


def build_router(routes: Iterable[Route], prefix: str = "") -> APIRouter:
    """Register ``routes`` on a new router under ``prefix``."""
    router = APIRouter()
    for route in routes:
        router.add_api_route(
            f"{prefix}{route.path}",
            endpoint(route.handler),
            methods=[route.method],
            include_in_schema=False,
        )
    return router
