import logging
from typing import Any

from fastapi import APIRouter, BackgroundTasks

from sitesearch.api.deps import IndexingServiceDep
from sitesearch.models import OperationResult

router = APIRouter(tags=["indexing"])
logger = logging.getLogger(__name__)


@router.get("/startIndexing", response_model=OperationResult, response_model_exclude_none=True)
async def start_indexing(
    background_tasks: BackgroundTasks,
    indexing: IndexingServiceDep,
    url: str | None = None,
) -> Any:
    """
    Start indexing all configured sites, or only the site of ``url``.
    """
    runs = indexing.start_crawl(url)
    background_tasks.add_task(indexing.run, runs)
    return OperationResult()


@router.get("/stopIndexing", response_model=OperationResult, response_model_exclude_none=True)
async def stop_indexing(indexing: IndexingServiceDep) -> Any:
    """
    Stop every running indexing.
    """
    await indexing.stop_crawl()
    return OperationResult()


@router.post("/indexPage", response_model=OperationResult, response_model_exclude_none=True)
async def index_page(
    url: str,
    background_tasks: BackgroundTasks,
    indexing: IndexingServiceDep,
) -> Any:
    """
    Add a single page to the index, or refresh it when already indexed.
    """
    run = indexing.index_single_page(url)
    background_tasks.add_task(indexing.run, [run])
    return OperationResult()
