from typing import TYPE_CHECKING

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from .site import Site


class Lemma(SQLModel, table=True):
    __table_args__ = (UniqueConstraint("site_id", "lemma", name="uq_lemma_site_value"),)

    id: int | None = Field(default=None, primary_key=True)
    site_id: int = Field(foreign_key="site.id", nullable=False, ondelete="CASCADE", index=True)
    lemma: str = Field(max_length=255, index=True)  # normal form of the word
    frequency: int = Field(default=1)  # number of site pages containing the lemma
    site: "Site" = Relationship(back_populates="lemmas")
