from typing import TYPE_CHECKING

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from .page import Page


class Posting(SQLModel, table=True):
    """Occurrences of one lemma on one page."""

    __table_args__ = (UniqueConstraint("page_id", "lemma_id", name="uq_posting_page_lemma"),)

    id: int | None = Field(default=None, primary_key=True)
    page_id: int = Field(foreign_key="page.id", nullable=False, ondelete="CASCADE", index=True)
    lemma_id: int = Field(foreign_key="lemma.id", nullable=False, ondelete="CASCADE", index=True)
    rank: int
    page: "Page" = Relationship(back_populates="postings")
