"""
FastAPI dependencies shared by the routers.

The provider client, dataset and strategy are built once in the application
lifespan (see main.py) and kept on app.state; routes reach them only through
these functions so tests can swap them with app.dependency_overrides.
"""

from fastapi import HTTPException, Request, status

from cardquery.services.query_service import QueryStrategy


def get_query_strategy(request: Request) -> QueryStrategy:
    """Return the query strategy constructed at startup."""
    strategy = getattr(request.app.state, "query_strategy", None)
    if strategy is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Query service is not initialized"
        )
    return strategy
