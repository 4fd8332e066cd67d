from sqlmodel import SQLModel


class SearchResultItem(SQLModel):
    site: str
    siteName: str
    uri: str
    title: str
    snippet: str
    relevance: float


class SearchResult(SQLModel):
    result: bool
    count: int = 0
    data: list[SearchResultItem] = []
    error: str = ""

    @classmethod
    def failure(cls, error: str) -> "SearchResult":
        return cls(result=False, count=0, data=[], error=error)
