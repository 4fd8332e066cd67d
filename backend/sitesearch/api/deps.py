from collections.abc import Generator
from functools import lru_cache
from typing import Annotated

from fastapi import Depends
from sqlmodel import Session

from sitesearch.core.config import settings
from sitesearch.core.db import engine
from sitesearch.morphology.lemmatizer import LemmaCollector, NltkLemmatizer
from sitesearch.services.indexing import IndexingService
from sitesearch.services.search import QueryEngine


def get_db() -> Generator[Session, None, None]:
    with Session(engine) as session:
        yield session


@lru_cache
def get_collector() -> LemmaCollector:
    return LemmaCollector(NltkLemmatizer())


@lru_cache
def get_indexing_service() -> IndexingService:
    return IndexingService(engine, settings.SITES, get_collector())


def get_query_engine() -> QueryEngine:
    return QueryEngine(get_collector())


SessionDep = Annotated[Session, Depends(get_db)]
IndexingServiceDep = Annotated[IndexingService, Depends(get_indexing_service)]
QueryEngineDep = Annotated[QueryEngine, Depends(get_query_engine)]
