from typing import Annotated, Any

from fastapi import APIRouter, Query

from sitesearch.api.deps import QueryEngineDep, SessionDep
from sitesearch.models import SearchResult

router = APIRouter(tags=["search"])


@router.get("/search", response_model=SearchResult)
def search(
    session: SessionDep,
    query_engine: QueryEngineDep,
    query: str = "",
    site: str | None = None,
    offset: Annotated[int, Query(ge=0)] = 0,
    limit: Annotated[int | None, Query(ge=1, le=100)] = None,
) -> Any:
    """
    Ranked full-text search over the indexed pages.
    """
    return query_engine.search(session, query, site=site, offset=offset, limit=limit)
