from sqlmodel import SQLModel

from .lemma import Lemma
from .message import OperationResult
from .page import Page
from .posting import Posting
from .search import SearchResult, SearchResultItem
from .site import Site, SiteStatus
from .statistics import (
    DetailedStatisticsItem,
    StatisticsData,
    StatisticsResponse,
    TotalStatistics,
)
