from typing import TYPE_CHECKING

from sqlalchemy import Text, UniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

from sitesearch.utils.html import page_title

if TYPE_CHECKING:
    from .posting import Posting
    from .site import Site


class Page(SQLModel, table=True):
    """A fetched page. One row per (site, path), the latest fetch wins."""

    __table_args__ = (UniqueConstraint("site_id", "path", name="uq_page_site_path"),)

    id: int | None = Field(default=None, primary_key=True)
    site_id: int = Field(foreign_key="site.id", nullable=False, ondelete="CASCADE", index=True)
    path: str = Field(max_length=1024)  # relative to the site root, with leading slash
    code: int
    content: str = Field(default="", sa_type=Text)
    site: "Site" = Relationship(back_populates="pages")
    postings: list["Posting"] = Relationship(back_populates="page", cascade_delete=True)

    @property
    def title(self) -> str:
        return page_title(self.content)
