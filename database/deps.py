"""Dependency helpers exposing the application's meal store to endpoints.

The store is created and opened by the application lifespan and kept on
`app.state`; endpoints receive it through `Depends(get_store)`.
"""

from fastapi import Request

from .store import MealStore


def get_store(request: Request) -> MealStore:
    """Return the process-wide meal store opened at startup."""
    return request.app.state.store
