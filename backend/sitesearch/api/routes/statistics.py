from typing import Any

from fastapi import APIRouter

from sitesearch.api.deps import IndexingServiceDep, SessionDep
from sitesearch.models import StatisticsResponse
from sitesearch.services.statistics import get_statistics

router = APIRouter(tags=["statistics"])


@router.get("/statistics", response_model=StatisticsResponse)
def statistics(session: SessionDep, indexing: IndexingServiceDep) -> Any:
    """
    Indexing status and counters of the configured sites.
    """
    return get_statistics(session=session, sites=indexing.sites)
