from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import DateTime
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from .lemma import Lemma
    from .page import Page


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SiteStatus(str, Enum):
    INDEXING = "INDEXING"
    INDEXED = "INDEXED"
    FAILED = "FAILED"


# Shared properties
class SiteBase(SQLModel):
    url: str = Field(index=True, max_length=255)
    name: str = Field(max_length=255)


# Database model, database table inferred from class name
class Site(SiteBase, table=True):
    id: int | None = Field(default=None, primary_key=True)
    status: SiteStatus = Field(default=SiteStatus.INDEXING, index=True)
    status_time: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))  # type: ignore
    last_error: str | None = Field(default=None)
    pages: list["Page"] = Relationship(back_populates="site", cascade_delete=True)
    lemmas: list["Lemma"] = Relationship(back_populates="site", cascade_delete=True)

    def touch(self) -> None:
        self.status_time = utc_now()

    def mark_indexing(self) -> None:
        self.status = SiteStatus.INDEXING
        self.last_error = None
        self.touch()

    def mark_indexed(self) -> None:
        self.status = SiteStatus.INDEXED
        self.last_error = None
        self.touch()

    def mark_failed(self, error: str | None) -> None:
        self.status = SiteStatus.FAILED
        if error:
            self.last_error = error
        self.touch()

