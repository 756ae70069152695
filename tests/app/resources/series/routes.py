"""Series are read-only over HTTP."""

from endpoints.routes import Route


def routes(controller):
    return [
        Route(method="GET", path="", handler=controller.read()),
        Route(method="GET", path="/{id}", handler=controller.read()),
        Route(method="GET", path="/{id}/{relation}", handler=controller.read(mode="related")),
    ]
