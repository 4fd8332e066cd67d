from sqlmodel import SQLModel


class TotalStatistics(SQLModel):
    sites: int = 0
    pages: int = 0
    lemmas: int = 0
    indexing: bool = False


class DetailedStatisticsItem(SQLModel):
    url: str
    name: str
    status: str
    statusTime: int
    error: str = ""
    pages: int = 0
    lemmas: int = 0


class StatisticsData(SQLModel):
    total: TotalStatistics
    detailed: list[DetailedStatisticsItem]


class StatisticsResponse(SQLModel):
    result: bool = True
    statistics: StatisticsData
